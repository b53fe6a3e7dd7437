import random
from typing import List, Tuple

"""
words.py — the fixed vocabulary and the answer function for the game.

The client is shown words from a shuffled copy of WORDS and has to reply with
the word three places further along the *canonical* list (wrapping around).
The shuffle only decides which words get asked and in which order.
"""

WORDS: Tuple[bytes, ...] = (
    b"sky", b"lichen", b"window", b"road", b"wall", b"hill", b"sand", b"soil",
    b"loam", b"sun", b"star", b"root", b"rain", b"hand", b"green", b"blue",
    b"red", b"steam", b"steel", b"leaf", b"house", b"brush", b"stair", b"flower",
    b"log", b"vase", b"painting", b"cottage", b"frog", b"stone", b"pond", b"river",
)

ANSWER_SHIFT = 3

# word -> position, built once since WORDS never changes.
_INDEX = {word: i for i, word in enumerate(WORDS)}


def index_of(word: bytes) -> int:
    """Position of `word` in WORDS. KeyError if it isn't one of ours."""
    return _INDEX[word]


def answer(word: bytes) -> bytes:
    """The expected reply for a prompted word."""
    return WORDS[(index_of(word) + ANSWER_SHIFT) % len(WORDS)]


def new_rng() -> random.Random:
    """Fresh per-session random source backed by OS entropy (nothing to seed or leak)."""
    return random.SystemRandom()


def permute(rng: random.Random) -> List[bytes]:
    """
    Return a uniformly shuffled copy of WORDS.

    Plain Fisher–Yates: walk from the end, swap each slot with a random
    slot at or before it. randrange() is unbiased, so every ordering is
    equally likely.
    """
    words = list(WORDS)
    for i in range(len(words) - 1, 0, -1):
        j = rng.randrange(i + 1)
        words[i], words[j] = words[j], words[i]
    return words
