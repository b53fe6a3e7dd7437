import argparse
import asyncio
import os
from typing import Optional

from . import __version__
from .server import ChallengeServer
from .solver import solve

"""
run_game.py — single entry point for the challenge.

Modes:
- server:  listen on --host:--port and hand out the flag to winners
- solve:   play one game against a running server and print the result

The flag comes from --flag, or from the FLAG environment variable if the
option is missing. No flag, no server.
"""

DEFAULT_HOST = "127.0.0.1"


# -------------------------
# Config helpers
# -------------------------

def port_number(value: str) -> int:
    """argparse type for a TCP port (0 lets the OS pick)."""
    port = int(value)
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def resolve_flag(cli_flag: Optional[str]) -> bytes:
    """--flag wins over $FLAG. SystemExit if neither is set."""
    flag = cli_flag if cli_flag is not None else os.environ.get("FLAG")
    if flag is None:
        raise SystemExit("couldn't get flag (either provide it in `--flag`, or a `FLAG` env var)")
    # fsencode gives back the original bytes for anything that came from argv/environ.
    return os.fsencode(flag)


# -------------------------
# Process runners
# -------------------------

async def run_server(host: str, port: int, flag: bytes, idle_timeout: Optional[float] = None) -> None:
    """Bind, then serve until killed."""
    server = ChallengeServer(host, port, flag, idle_timeout=idle_timeout)
    try:
        await server.bind()
    except OSError as exc:
        raise SystemExit(f"could not bind to {host}:{port}, dying ({exc})") from exc
    await server.start()


async def run_solver(host: str, port: int) -> None:
    """Play one game and print whatever the server said last."""
    result = await solve(host, port)
    print(result.decode(errors="replace").rstrip("\n"))


# -------------------------
# Argument parsing
# -------------------------

def parse_args(argv=None) -> argparse.Namespace:
    """
    Quick examples:
      Server:  python -m wordplay.run_game --port 1337 --flag 'flag{win}'
               FLAG='flag{win}' python -m wordplay.run_game --port 1337
      Solve:   python -m wordplay.run_game --mode solve --port 1337
    """
    p = argparse.ArgumentParser(description="word association protocol challenge")
    p.add_argument("--mode", choices=["server", "solve"], default="server")
    p.add_argument("--host", default=DEFAULT_HOST, help="address to bind/connect (default: loopback)")
    p.add_argument("-p", "--port", type=port_number, required=True, help="port for the server to listen on")
    p.add_argument(
        "-f", "--flag",
        help="flag to give the user on challenge completion; falls back to the FLAG env var",
    )
    p.add_argument("--idle-timeout", type=float, help="drop clients silent for this many seconds")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


# -------------------------
# Main entrypoint
# -------------------------

def main(argv=None) -> None:
    args = parse_args(argv)
    if args.mode == "server":
        flag = resolve_flag(args.flag)
        try:
            asyncio.run(run_server(args.host, args.port, flag, args.idle_timeout))
        except KeyboardInterrupt:
            pass

    elif args.mode == "solve":
        asyncio.run(run_solver(args.host, args.port))


if __name__ == "__main__":
    main()
