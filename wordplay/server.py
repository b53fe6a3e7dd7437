import asyncio
import socket
import sys
from typing import Optional

from .session import GameSession, Phase
from . import words as w

"""
server.py — accepts connections and runs one GameSession per client.

Every connection gets its own task (asyncio.start_server does that for us),
its own random word order, and a clean two-way shutdown at the end. A session
blowing up is logged and forgotten; the listener keeps going until the
process is killed.
"""


class ChallengeServer:
    """Listens on host:port and hands each client to handle_conn()."""
    def __init__(self, host: str, port: int, flag: bytes, idle_timeout: Optional[float] = None) -> None:
        self.host = host
        self.port = port
        self.flag = flag
        self.idle_timeout = idle_timeout
        self.sessions_served = 0
        self.flags_awarded = 0
        self.server: Optional[asyncio.AbstractServer] = None

    async def bind(self) -> asyncio.AbstractServer:
        """Open the listening socket. OSError if the address can't be bound."""
        self.server = await asyncio.start_server(self.handle_conn, self.host, self.port)
        addrs = ", ".join(str(sock.getsockname()) for sock in self.server.sockets or [])
        print(f"starting server on {addrs}")
        return self.server

    async def start(self) -> None:
        """Bind (if not done yet) and serve forever."""
        server = self.server or await self.bind()
        async with server:
            await server.serve_forever()

    async def handle_conn(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = str(writer.get_extra_info("peername"))
        print(f"received connection: {peer}")

        session = GameSession(
            reader, writer, self.flag, rng=w.new_rng(), peer=peer, idle_timeout=self.idle_timeout
        )
        try:
            outcome = await session.run()
            if outcome is Phase.WON:
                self.flags_awarded += 1
                print(f"[{peer}] won the game")
            else:
                print(f"[{peer}] rejected: {session.reason}")
        except (ConnectionError, asyncio.IncompleteReadError) as exc:
            # BrokenPipeError lands here too; the client just left.
            print(f"[{peer}] peer went away: {exc!r}")
        except asyncio.TimeoutError:
            print(f"[{peer}] idle for more than {self.idle_timeout}s, dropping", file=sys.stderr)
        except Exception as exc:
            print(f"handling connection failed: {exc!r}", file=sys.stderr)
        finally:
            # Counted however it ended: win, rejection, error or idle drop.
            self.sessions_served += 1
            session.phase = Phase.CLOSED
            self.shutdown(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                print(f"[{peer}] error while closing: {exc!r}", file=sys.stderr)

    @staticmethod
    def shutdown(writer: asyncio.StreamWriter) -> None:
        """Shut the socket down for both reading and writing."""
        print("shutting down connection")
        sock = writer.get_extra_info("socket")
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
            print("successfully shut down connection")
        except OSError as exc:
            print(f"failed to shut down connection: {exc}", file=sys.stderr)
