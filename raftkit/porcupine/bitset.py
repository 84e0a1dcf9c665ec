"""Fixed-size bit set used to track which operations are linearized."""

from __future__ import annotations

_CHUNK_BITS = 64
_CHUNK_MASK = (1 << _CHUNK_BITS) - 1


class Bitset:
    """A set of bit positions stored in 64-bit chunks."""

    __slots__ = ("_chunks", "_bits")

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"bitset size must be non-negative, got {size}")
        self._chunks = -(-size // _CHUNK_BITS)
        self._bits = 0

    @property
    def capacity(self) -> int:
        """Number of addressable bit positions."""
        return self._chunks * _CHUNK_BITS

    def _check(self, pos: int) -> None:
        if not 0 <= pos < self.capacity:
            raise IndexError(f"bit position {pos} out of range")

    def clone(self) -> Bitset:
        """Return an independent copy."""
        other = Bitset(0)
        other._chunks = self._chunks
        other._bits = self._bits
        return other

    def set(self, pos: int) -> Bitset:
        """Set the bit at ``pos`` and return this bitset."""
        self._check(pos)
        self._bits |= 1 << pos
        return self

    def clear(self, pos: int) -> Bitset:
        """Clear the bit at ``pos`` and return this bitset."""
        self._check(pos)
        self._bits &= ~(1 << pos)
        return self

    def get(self, pos: int) -> bool:
        """Return whether the bit at ``pos`` is set."""
        self._check(pos)
        return bool(self._bits >> pos & 1)

    def popcount(self) -> int:
        """Return the number of set bits."""
        return self._bits.bit_count()

    def _chunk_values(self):
        return ((self._bits >> (chunk * _CHUNK_BITS)) & _CHUNK_MASK for chunk in range(self._chunks))

    def fingerprint(self) -> int:
        """Cheap hash: the population count XOR-ed with every chunk."""
        result = self.popcount()
        for value in self._chunk_values():
            result ^= value
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitset):
            return NotImplemented
        return self._chunks == other._chunks and self._bits == other._bits

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        members = [pos for pos in range(self.capacity) if self._bits >> pos & 1]
        return f"Bitset(capacity={self.capacity}, set={members})"