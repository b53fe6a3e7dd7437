"""
wordplay — a small TCP word-association challenge for CTF events.

Connect, say hello, say ok, then answer four rounds of eight words within
five seconds. Each word's answer is the word three places further along the
fixed word list. Get them all right and the server hands over the flag.

Plaintext on purpose: the puzzle is the protection, not the channel.

Run it with:  FLAG='flag{...}' python -m wordplay.run_game --port 1337
"""
__version__ = "0.1.0"

__all__ = ["words", "framing", "session", "server", "solver", "run_game"]
