"""Fixed-size sets of small non-negative integers, stored as bit words."""

from __future__ import annotations

from typing import Iterator, Sequence, TextIO

from .ir import NBIT, TMP0, Tmp

_WORD_MASK = (1 << NBIT) - 1


class BitSet:
    """A set of integers below a capacity fixed at creation.

    The capacity is rounded up to a whole number of 64-bit words; set
    operations require both operands to have the same number of words.
    """

    __hash__ = None  # mutable

    def __init__(self, n: int) -> None:
        if n < 0:
            raise ValueError(f"negative bit set size: {n}")
        self.nt = (n + NBIT - 1) // NBIT
        self._bits = 0

    @property
    def capacity(self) -> int:
        """Number of elements the set can hold."""
        return self.nt * NBIT

    def _check(self, elt: int) -> None:
        if not 0 <= elt < self.capacity:
            raise IndexError(f"element {elt} outside bit set of {self.capacity}")

    def _same_size(self, other: BitSet) -> None:
        if self.nt != other.nt:
            raise ValueError("bit sets of different sizes")

    def __contains__(self, elt: int) -> bool:
        self._check(elt)
        return bool((self._bits >> elt) & 1)

    def __iter__(self) -> Iterator[int]:
        return self.iter_from(0)

    def __len__(self) -> int:
        return self._bits.bit_count()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitSet):
            return NotImplemented
        self._same_size(other)
        return self._bits == other._bits

    def __repr__(self) -> str:
        return f"BitSet({self.capacity}, {list(self)})"

    def add(self, elt: int) -> None:
        self._check(elt)
        self._bits |= 1 << elt

    def discard(self, elt: int) -> None:
        self._check(elt)
        self._bits &= ~(1 << elt)

    def clear(self) -> None:
        self._bits = 0

    def copy_from(self, other: BitSet) -> None:
        self._same_size(other)
        self._bits = other._bits

    def union_update(self, other: BitSet) -> None:
        self._same_size(other)
        self._bits |= other._bits

    def intersection_update(self, other: BitSet) -> None:
        self._same_size(other)
        self._bits &= other._bits

    def difference_update(self, other: BitSet) -> None:
        self._same_size(other)
        self._bits &= ~other._bits

    def iter_from(self, start: int) -> Iterator[int]:
        """Yield the members not below start, in increasing order."""
        if start < 0:
            raise ValueError(f"negative start: {start}")
        if start >= self.capacity:
            return
        rest = self._bits >> start
        pos = start
        while rest:
            low = (rest & -rest).bit_length() - 1
            pos += low
            yield pos
            rest >>= low + 1
            pos += 1

    def word(self, index: int) -> int:
        """The 64-bit word holding elements 64*index to 64*index+63."""
        if not 0 <= index < self.nt:
            raise IndexError(f"word {index} outside bit set of {self.nt} words")
        return (self._bits >> (NBIT * index)) & _WORD_MASK

    def dump(self, tmps: Sequence[Tmp], out: TextIO) -> None:
        """Write the names of the member temporaries (registers excluded)."""
        names = "".join(f" {tmps[t].name}" for t in self.iter_from(TMP0))
        out.write(f"[{names} ]\n")