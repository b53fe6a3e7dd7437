import asyncio
import contextlib
import io
import unittest

from wordplay.server import ChallengeServer
from wordplay.session import BAD_GREETING, TOO_SLOW
from wordplay.solver import solve

FLAG = b"flag{win}"


class ServerTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self._redirects = contextlib.ExitStack()
        self._redirects.enter_context(contextlib.redirect_stdout(self.out))
        self._redirects.enter_context(contextlib.redirect_stderr(self.err))

        self.challenge = ChallengeServer("127.0.0.1", 0, FLAG)
        server = await self.challenge.bind()
        self.port = server.sockets[0].getsockname()[1]
        self.serve_task = asyncio.create_task(self.challenge.start())

    async def asyncTearDown(self):
        self.serve_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self.serve_task
        self._redirects.close()

    async def wait_for(self, predicate):
        for _ in range(100):
            if predicate():
                return
            await asyncio.sleep(0.01)
        self.fail("condition never became true")


class TestChallengeServer(ServerTestCase):
    async def test_solver_wins(self):
        result = await solve("127.0.0.1", self.port)
        self.assertEqual(result, b"good job! the flag is flag{win}\n")
        await self.wait_for(lambda: self.challenge.flags_awarded == 1)
        self.assertIn("received connection", self.out.getvalue())
        self.assertIn("won the game", self.out.getvalue())

    async def test_parallel_sessions(self):
        results = await asyncio.gather(*(solve("127.0.0.1", self.port) for _ in range(5)))
        self.assertEqual(set(results), {b"good job! the flag is flag{win}\n"})
        await self.wait_for(lambda: self.challenge.flags_awarded == 5)

    async def test_each_session_gets_its_own_order(self):
        orders = []
        for _ in range(3):
            reader, writer = await asyncio.open_connection("127.0.0.1", self.port)
            writer.write(b"hello\n")
            await writer.drain()
            await reader.readline()
            writer.write(b"ok\n")
            await writer.drain()
            orders.append(await reader.readline())
            writer.close()
            await writer.wait_closed()
        self.assertGreater(len(set(orders)), 1)

    async def test_rejected_client_gets_shut_down(self):
        reader, writer = await asyncio.open_connection("127.0.0.1", self.port)
        writer.write(b"hi\n")
        await writer.drain()
        self.assertEqual(await reader.read(), BAD_GREETING)
        writer.close()
        await writer.wait_closed()
        await self.wait_for(lambda: self.challenge.sessions_served == 1)
        self.assertEqual(self.challenge.flags_awarded, 0)
        self.assertIn("rejected: bad greeting", self.out.getvalue())

    async def test_server_survives_a_peer_leaving(self):
        reader, writer = await asyncio.open_connection("127.0.0.1", self.port)
        writer.close()
        await writer.wait_closed()
        await self.wait_for(lambda: "peer went away" in self.out.getvalue())
        # Sessions that end on an I/O error still count as served.
        await self.wait_for(lambda: self.challenge.sessions_served == 1)
        self.assertEqual(self.challenge.flags_awarded, 0)

        result = await solve("127.0.0.1", self.port)
        self.assertTrue(result.endswith(FLAG + b"\n"))

    async def test_bind_conflict_raises(self):
        other = ChallengeServer("127.0.0.1", self.port, FLAG)
        with self.assertRaises(OSError):
            await other.bind()


class TestIdleTimeout(ServerTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.challenge.idle_timeout = 0.1

    async def test_silent_client_is_dropped(self):
        reader, writer = await asyncio.open_connection("127.0.0.1", self.port)
        self.assertEqual(await reader.read(), b"")
        writer.close()
        await writer.wait_closed()
        self.assertIn("idle for more than", self.err.getvalue())
        await self.wait_for(lambda: self.challenge.sessions_served == 1)


class TestSolverOnTimeout(unittest.IsolatedAsyncioTestCase):
    async def test_solver_reports_too_slow(self):
        async def handler(reader, writer):
            await reader.readline()
            writer.write(b"hello! let's play a game :3\n")
            await reader.readline()
            writer.write(TOO_SLOW)
            await writer.drain()
            writer.close()

        server = await asyncio.start_server(handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            self.assertEqual(await solve("127.0.0.1", port), TOO_SLOW)


if __name__ == "__main__":
    unittest.main()
