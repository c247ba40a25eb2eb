"""Spatial hash grid that buckets items by integer cell."""

from __future__ import annotations

import struct
from collections.abc import Iterator

_MASK = (1 << 64) - 1
_GOLDEN = 0x9E3779B9
SEED = 85523717

Cell = tuple[int, int, int]


def _hash_value(value) -> int:
    if isinstance(value, (int, bool)):
        return int(value) & _MASK
    if isinstance(value, float):
        if value == 0.0:
            return 0
        return struct.unpack("<I", struct.pack("<f", value))[0]
    raise TypeError(f"cannot hash value of type {type(value).__name__}")


def hash_combine(seed: int, value) -> int:
    """Mix ``value`` into ``seed`` with 64-bit wrap-around arithmetic."""
    seed &= _MASK
    mixed = (_hash_value(value) + _GOLDEN + (seed << 6) + (seed >> 2)) & _MASK
    return seed ^ mixed


class HashGrid:
    """Buckets of items keyed by cell hash.

    ``cell_size`` multiplies coordinates when mapping a point to its cell.
    """

    def __init__(self, cell_size: float = 1.0):
        self.cell_size = cell_size
        self.buckets: dict[int, list] = {}

    def clear(self) -> None:
        self.buckets.clear()

    def insert(self, hash_value: int, item) -> bool:
        """Add ``item`` to a bucket; return whether the bucket already existed."""
        existed = self.cell_exists(hash_value)
        self.buckets.setdefault(hash_value, []).append(item)
        return existed

    def cell_exists(self, hash_value: int) -> bool:
        return hash_value in self.buckets

    @staticmethod
    def hash_cell(cell: Cell) -> int:
        h = SEED
        for component in cell:
            h = hash_combine(h, int(component))
        return h

    @staticmethod
    def hash_point(i: float, j: float, k: float) -> int:
        h = SEED
        for component in (i, j, k):
            h = hash_combine(h, float(component))
        return h

    def point_to_cell(self, x: float, y: float, z: float) -> Cell:
        """Cell of a point, truncating each scaled coordinate towards zero."""
        return (int(x * self.cell_size), int(y * self.cell_size), int(z * self.cell_size))

    def query(self, hash_value: int) -> list:
        """Items of a bucket; a missing bucket is created empty."""
        return list(self.buckets.setdefault(hash_value, []))

    @staticmethod
    def neighbour_cells(cell: Cell) -> Iterator[Cell]:
        """The 27 cells around and including ``cell``, y outermost, z innermost."""
        i, j, k = cell
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                for dz in (-1, 0, 1):
                    yield (i + dx, j + dy, k + dz)