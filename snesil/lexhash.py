"""Search for a perfect multiplicative hash over the lexer's keywords."""

from __future__ import annotations

import argparse
from typing import Sequence

from .ops import NPUBOP, Op, op_info
from .util import hash_string

_MASK32 = 0xFFFFFFFF

# Keywords of the text format that are not instruction names.
_EXTRA_KEYWORDS = """
... env call phi jmp jnz ret hlt export function type data section align
dbgfile blit l w sh uh h sb ub b d s z loadw loadl loads loadd alloc1 alloc2
thread common
""".split()


def _keywords() -> tuple[str, ...]:
    ops = tuple(op_info(op).name for op in Op if Op.XXX < op < NPUBOP)
    return ops + tuple(_EXTRA_KEYWORDS)


TOKENS = _keywords()


def _find_collision(tokens: Sequence[str]) -> tuple[str, str] | None:
    first: dict[int, str] = {}
    for tok in tokens:
        h = hash_string(tok)
        if h in first:
            return tok, first[h]
        first[h] = tok
    return None


def check_collisions(tokens: Sequence[str]) -> list[int]:
    """Hashes of the tokens; raises ValueError if two of them are equal."""
    clash = _find_collision(tokens)
    if clash is not None:
        raise ValueError(f"hash collision between {clash[0]!r} and {clash[1]!r}")
    return [hash_string(tok) for tok in tokens]


def find_multiplier(
    tokens: Sequence[str], shift: int, max_tries: int | None = None
) -> int | None:
    """Smallest odd K such that (hash*K mod 2**32) >> shift is injective.

    Tries at most max_tries candidates (all odd 32-bit values if None)
    and returns None when none works.
    """
    hashes = check_collisions(tokens)
    k = 1
    tries = 0
    while True:
        slots = {((h * k) & _MASK32) >> shift for h in hashes}
        if len(slots) == len(hashes):
            return k
        k = (k + 2) & _MASK32
        tries += 1
        if k == 1 or (max_tries is not None and tries >= max_tries):
            return None


def _signed32(v: int) -> int:
    return v - 2**32 if v >= 2**31 else v


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="lexhash",
        description="Find shift and multiplier for a perfect keyword hash.",
    )
    parser.add_argument("tokens", nargs="*", help="keywords (default: lexer keywords)")
    parser.add_argument("--max-tries", type=int, default=None,
                        help="multipliers to try for each shift")
    args = parser.parse_args(argv)
    tokens = args.tokens or list(TOKENS)

    clash = _find_collision(tokens)
    if clash is not None:
        print("error: hash()")
        print(f"\t{clash[0]}")
        print(f"\t{clash[1]}")
        return 1

    bits = 9
    while (1 << bits) < len(tokens):
        bits += 1
    shift = 32 - bits
    while shift > 0:
        print(f"trying M={shift}...")
        k = find_multiplier(tokens, shift, args.max_tries)
        if k is not None:
            print(f"found K={_signed32(k)} for M={shift}")
            return 0
        shift -= 1
    print("no multiplier found")
    return 1