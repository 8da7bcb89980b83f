"""Search for a 64-bit de Bruijn constant and its bit-index table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

_MASK64 = (1 << 64) - 1


@dataclass
class BitSource:
    """Yields the bits of a seed, lowest first, then zeros."""

    state: int = 0x1E0298F7A7E

    def next_bit(self) -> int:
        bit = self.state & 1
        self.state >>= 1
        return bit


def search(source: BitSource) -> tuple[int, list[int]] | None:
    """Find n whose 64 six-bit windows are all distinct.

    Returns n with the table seen, where seen[window] - 1 is the index
    of the top bit of that window counted from bit 63; None if no such
    n exists for the choices the source makes.
    """
    seen = [0] * 64

    def extend(n: int, b: int) -> int | None:
        if b == 64:
            return n
        x = 63 & ((((n << (63 - b)) & _MASK64)) >> 58)
        y = source.next_bit()
        for _ in range(2):
            z = x | (y << 5)
            if not seen[z]:
                seen[z] = (63 - b) + 1
                found = extend(n | (y << b), b + 1)
                if found is not None:
                    return found
                seen[z] = 0
            y ^= 1
        return None

    n = extend(0, 0)
    if n is None:
        return None
    return n, seen


def format_table(seen: Sequence[int]) -> str:
    """Render the index table, eight entries per line."""
    parts = []
    for i, value in enumerate(seen):
        parts.append("\t" if i & 7 == 0 else " ")
        parts.append(f"{value - 1:2d},")
        if i & 7 == 7:
            parts.append("\n")
    return "".join(parts)


def main(argv: Sequence[str] | None = None) -> int:
    result = search(BitSource())
    if result is None:
        print("not found")
        return 0
    n, seen = result
    print(f"0x{n:x}")
    print(format_table(seen), end="")
    return 0