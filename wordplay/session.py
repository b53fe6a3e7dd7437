import asyncio
import enum
import random
import sys
import time
from typing import Callable, List, Optional

from .framing import read_message, write_message
from . import words as w

"""
session.py — the per-connection game.

Flow (client speaks first):
  hello  -> "hello! let's play a game :3"
  ok     -> four rounds of eight words; reply with answer(word) for each
  done   -> "good job! the flag is ..."

Anything else gets one short diagnostic and the session ends. The 5 second
limit is measured from session start and only checked right before each
round prompt goes out.
"""

ROUNDS = 4
WORDS_PER_ROUND = 8
TIME_LIMIT = 5.0  # seconds, whole session

GREETING_REPLY = b"hello! let's play a game :3\n"
BAD_GREETING = b"that's not a nice greeting...\n"
NOT_READY = b"okay, we can play later then..."
TOO_SLOW = b"you took too long!"
WRONG_WORD = b"you said the wrong word!\n"
WIN_PREFIX = b"good job! the flag is "


class Phase(enum.Enum):
    AWAIT_GREETING = "await_greeting"
    AWAIT_READY = "await_ready"
    AWAIT_ROUND = "await_round"
    WON = "won"
    REJECTED = "rejected"
    CLOSED = "closed"


class GameSession:
    """
    State for one client: its own shuffled word order, a start timestamp and
    a reusable receive buffer. Nothing in here is shared between sessions.
    """
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        flag: bytes,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        peer: Optional[str] = None,
        idle_timeout: Optional[float] = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.flag = flag
        self.clock = clock
        self.peer = peer or str(writer.get_extra_info("peername"))
        self.idle_timeout = idle_timeout

        # Clock starts before the first read.
        self.start_time = clock()
        self.permutation: List[bytes] = w.permute(rng or w.new_rng())
        self.round = 0
        self.phase = Phase.AWAIT_GREETING
        self.reason: Optional[str] = None
        self.buf = bytearray()

    def prompt(self, round_no: int) -> List[bytes]:
        """The eight words asked in `round_no`, in permutation order."""
        start = round_no * WORDS_PER_ROUND
        return self.permutation[start:start + WORDS_PER_ROUND]

    def expected(self, round_no: int) -> List[bytes]:
        """Correct replies for `round_no` (computed from the canonical list)."""
        return [w.answer(word) for word in self.prompt(round_no)]

    def took_too_long(self) -> bool:
        return self.clock() - self.start_time > TIME_LIMIT

    async def _read(self) -> bytes:
        await read_message(self.reader, self.buf, self.idle_timeout)
        return bytes(self.buf)

    async def _reject(self, reply: bytes, reason: str) -> Phase:
        await write_message(self.writer, reply)
        self.reason = reason
        self.phase = Phase.REJECTED
        return self.phase

    async def run(self) -> Phase:
        """Play the game to the end. Returns WON or REJECTED; I/O errors propagate."""
        # === 1) Greeting.
        msg = await self._read()
        if not msg.startswith(b"hello"):
            return await self._reject(BAD_GREETING, "bad greeting")
        await write_message(self.writer, GREETING_REPLY)
        self.phase = Phase.AWAIT_READY

        # === 2) Are they up for it?
        msg = await self._read()
        if not msg.startswith(b"ok"):
            return await self._reject(NOT_READY, "not ready")
        self.phase = Phase.AWAIT_ROUND

        # === 3) Rounds.
        for round_no in range(ROUNDS):
            self.round = round_no
            if self.took_too_long():
                return await self._reject(TOO_SLOW, f"timed out before round {round_no}")

            await write_message(self.writer, b" ".join(self.prompt(round_no)) + b"\n")
            msg = await self._read()

            # Trailing newline/CR must not spoil the last word; nothing else is trimmed.
            tokens = msg.rstrip().split(b" ")
            for k, ours in enumerate(self.expected(round_no)):
                theirs = tokens[k] if k < len(tokens) else b""
                if ours != theirs:
                    print(
                        f"[{self.peer}] expected {ours.decode()} got {theirs.decode(errors='replace')}",
                        file=sys.stderr,
                    )
                    return await self._reject(WRONG_WORD, f"wrong word in round {round_no}")

        # === 4) The only place the flag is ever written.
        self.round = ROUNDS
        await write_message(self.writer, WIN_PREFIX + self.flag + b"\n")
        self.phase = Phase.WON
        return self.phase
