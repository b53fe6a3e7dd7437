import asyncio

from . import words as w

"""
solver.py — a client that plays the game correctly.

Handy for checking a deployment is alive and wins end to end. Each server
line is newline-terminated, so readline() is enough on this side.
"""


async def solve(host: str, port: int, rounds: int = 4) -> bytes:
    """Play a full game against host:port and return the server's last line."""
    reader, writer = await asyncio.open_connection(host, port)
    try:
        writer.write(b"hello\n")
        await writer.drain()
        greeting = await reader.readline()
        if not greeting.startswith(b"hello!"):
            return greeting

        writer.write(b"ok\n")
        await writer.drain()

        for _ in range(rounds):
            line = await reader.readline()
            prompt = line.rstrip(b"\n").split(b" ")
            if any(word not in w.WORDS for word in prompt):
                # Not a round prompt; most likely "you took too long!".
                return line
            writer.write(b" ".join(w.answer(word) for word in prompt) + b"\n")
            await writer.drain()

        return await reader.readline()
    finally:
        writer.close()
        await writer.wait_closed()
