"""Axis-aligned extents in projected map coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Tuple

Bounds = Tuple[float, float, float, float]

TILE_SIZE = 10000.0


@dataclass(frozen=True)
class Extent:
    """Rectangle (min_x, min_y, max_x, max_y), normalized so min <= max."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def __post_init__(self) -> None:
        x1, x2 = sorted((float(self.min_x), float(self.max_x)))
        y1, y2 = sorted((float(self.min_y), float(self.max_y)))
        object.__setattr__(self, "min_x", x1)
        object.__setattr__(self, "max_x", x2)
        object.__setattr__(self, "min_y", y1)
        object.__setattr__(self, "max_y", y2)

    @classmethod
    def from_bounds(cls, bounds: Bounds) -> "Extent":
        return cls(*bounds)

    @property
    def bounds(self) -> Bounds:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def snap_to_grid(self, resolution: float) -> "Extent":
        """Round the extent outward to multiples of the resolution."""
        if resolution <= 0:
            raise ValueError("Resolution must be positive.")
        return Extent(
            math.floor(self.min_x / resolution) * resolution,
            math.floor(self.min_y / resolution) * resolution,
            math.ceil(self.max_x / resolution) * resolution,
            math.ceil(self.max_y / resolution) * resolution,
        )

    def size_x(self, resolution: float) -> int:
        """Number of cells across at ``resolution``."""
        return int(round(self.width / resolution))

    def size_y(self, resolution: float) -> int:
        """Number of cells down at ``resolution``."""
        return int(round(self.height / resolution))

    def intersects(self, other: "Extent") -> bool:
        """True when the two extents share a region of non-zero area."""
        return (
            self.min_x < other.max_x
            and other.min_x < self.max_x
            and self.min_y < other.max_y
            and other.min_y < self.max_y
        )

    def tile_origins(self, tile_size: float = TILE_SIZE) -> list[tuple[float, float]]:
        """Return the south-west corner of every tile cell covering the extent."""
        return list(_iter_tile_origins(self, tile_size))


def _iter_tile_origins(extent: Extent, tile_size: float) -> Iterator[tuple[float, float]]:
    """Yield tile origins from floor(min / size) to ceil(max / size) on each axis."""
    start_e = math.floor(extent.min_x / tile_size)
    end_e = math.ceil(extent.max_x / tile_size)
    start_n = math.floor(extent.min_y / tile_size)
    end_n = math.ceil(extent.max_y / tile_size)
    for east in range(start_e, end_e):
        for north in range(start_n, end_n):
            yield (east * tile_size, north * tile_size)
