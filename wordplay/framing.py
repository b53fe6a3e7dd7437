import asyncio
import sys
from typing import Optional

"""
framing.py — "one message in, one message out" over asyncio streams.

The game is played by people pasting into netcat, so there is no length
prefix and no strict line framing. What we do instead:
- Block until the first chunk shows up (readiness-driven, no spinning).
- If that chunk doesn't end in a newline, keep collecting for as long as more
  bytes keep arriving within COALESCE_WINDOW. That stitches `hel` + `lo`
  back into one greeting, but a bare `hello` with no newline still comes
  back after a short quiet gap.
- Stitching stops at MAX_MESSAGE_SIZE bytes or COALESCE_LIMIT seconds, so a
  client streaming junk without a newline still gets a reply.
- Socket errors get retried up to MAX_TRIES before we give up; it's a safety
  valve for misbehaving sockets, not part of the protocol. An error the
  stream has latched (reset, closed transport) is raised straight away.
"""

MAX_TRIES = 100  # attempts before an I/O error is surfaced
CHUNK_SIZE = 4096  # bytes per read() call
MAX_MESSAGE_SIZE = 64 * 1024  # hard cap on one stitched message
COALESCE_WINDOW = 0.1  # seconds to wait for the rest of a split message
COALESCE_LIMIT = 1.0  # seconds spent stitching one message, at most


async def read_message(
    reader: asyncio.StreamReader,
    buf: bytearray,
    idle_timeout: Optional[float] = None,
) -> int:
    """
    Read one message from the stream into `buf` (cleared first).

    Returns:
        number of bytes now in `buf` (never more than MAX_MESSAGE_SIZE).

    Raises:
        BrokenPipeError: the peer closed before sending anything.
        asyncio.TimeoutError: nothing arrived within `idle_timeout` seconds.
        OSError: the connection is gone, or kept failing for MAX_TRIES attempts.
    """
    buf.clear()
    tries = 0
    while True:
        try:
            chunk = await asyncio.wait_for(reader.read(CHUNK_SIZE), idle_timeout)
            break
        except asyncio.TimeoutError:
            # TimeoutError is an OSError on newer Pythons; don't retry it.
            raise
        except OSError as exc:
            # A latched error comes back on every read(); retrying is pointless.
            if reader.exception() is not None or tries >= MAX_TRIES:
                print(f"failed to read from socket after {tries + 1} tries: {exc!r}", file=sys.stderr)
                raise
            tries += 1

    if not chunk:
        raise BrokenPipeError("peer closed the connection")
    buf.extend(chunk)

    # The rest of a split reply, if any is on its way.
    deadline = asyncio.get_running_loop().time() + COALESCE_LIMIT
    while not buf.endswith(b"\n") and len(buf) < MAX_MESSAGE_SIZE:
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            break
        want = min(CHUNK_SIZE, MAX_MESSAGE_SIZE - len(buf))
        try:
            chunk = await asyncio.wait_for(reader.read(want), min(COALESCE_WINDOW, remaining))
        except asyncio.TimeoutError:
            break
        if not chunk:
            # EOF after a partial message: hand back what we have, the next
            # read reports the closure.
            break
        buf.extend(chunk)

    return len(buf)


async def write_message(writer: asyncio.StreamWriter, data: bytes) -> None:
    """
    Write all of `data` and wait until the transport has flushed it.

    The transport takes care of partial sends; drain() is where we find out
    about backpressure and socket errors, so that's what gets retried.
    """
    writer.write(data)
    tries = 0
    while True:
        try:
            await writer.drain()
            return
        except OSError as exc:
            # Once the transport is closing, another drain() sends nothing.
            if writer.transport.is_closing() or tries >= MAX_TRIES:
                print(f"failed to write to socket after {tries + 1} tries: {exc!r}", file=sys.stderr)
                raise
            tries += 1
