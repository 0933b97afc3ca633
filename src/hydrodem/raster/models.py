"""Data models used by raster processing utilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Tuple

from hydrodem.raster.extent import Extent

GeoTransform = Tuple[float, float, float, float, float, float]

NODATA = -9999.0
DATA_TYPE = "Float32"
WINDOW_SIZE = 32


@dataclass(frozen=True)
class RasterInfo:
    """Size and georeferencing of a raster on disk."""

    path: Path
    size_x: int
    size_y: int
    geotransform: GeoTransform
    band_count: int
    nodata: float | None
    dtype: str
    crs: str | None = None

    @property
    def north_up(self) -> bool:
        """True when the first stored row is the northernmost one."""
        return self.geotransform[5] < 0

    @property
    def resolution_x(self) -> float:
        return abs(self.geotransform[1])

    @property
    def resolution_y(self) -> float:
        return abs(self.geotransform[5])

    @property
    def resolution(self) -> float:
        """Cell size used for placement; the vertical resolution."""
        return self.resolution_y

    @property
    def lower_left(self) -> tuple[float, float]:
        """World coordinates of the south-west corner."""
        origin_x, _, _, origin_y, _, _ = self.geotransform
        if self.north_up:
            return origin_x, origin_y - self.size_y * self.resolution_y
        return origin_x, origin_y

    @property
    def upper_right(self) -> tuple[float, float]:
        """World coordinates of the north-east corner."""
        origin_x, pixel_width, _, origin_y, _, _ = self.geotransform
        right = origin_x + self.size_x * pixel_width
        if self.north_up:
            return right, origin_y
        return right, origin_y + self.size_y * self.resolution_y

    @property
    def extent(self) -> Extent:
        return Extent(*self.lower_left, *self.upper_right)


@dataclass(frozen=True)
class MosaicPlacement:
    """Position of one source raster inside a mosaic canvas."""

    source: Path
    relative_path: str
    size_x: int
    size_y: int
    offset_x: int
    offset_y: int
    dest_size_x: int
    dest_size_y: int
    dtype: str = DATA_TYPE


@dataclass(frozen=True)
class MosaicResult:
    """Result of writing a mosaic descriptor."""

    path: Path
    extent: Extent
    resolution: float
    size_x: int
    size_y: int
    north_up: bool
    placements: tuple[MosaicPlacement, ...]
    skipped: tuple[Path, ...] = ()

    @property
    def geotransform(self) -> GeoTransform:
        if self.north_up:
            return (
                self.extent.min_x, self.resolution, 0.0, self.extent.max_y, 0.0, -self.resolution
            )
        return (self.extent.min_x, self.resolution, 0.0, self.extent.min_y, 0.0, self.resolution)


class ClipStatus(str, Enum):
    """Outcome of a window copy."""

    WRITTEN = "written"
    EMPTY = "empty"


@dataclass(frozen=True)
class ClipResult:
    """Result of clipping a raster to an extent."""

    status: ClipStatus
    path: Path | None
    size_x: int
    size_y: int
    extent: Extent | None
    resolution: Tuple[float, float]

    @property
    def written(self) -> bool:
        return self.status is ClipStatus.WRITTEN


@dataclass(frozen=True)
class PartitionPart:
    """Row band of a divided raster."""

    index: int
    target: Path
    extent: Extent
    row_start: int
    row_end: int

    @property
    def rows(self) -> int:
        """Number of rows in the band."""
        return self.row_end - self.row_start


@dataclass(frozen=True)
class PartitionResult:
    """Result of dividing a raster into overlapping bands."""

    source: Path
    overlap_rows: int
    parts: tuple[PartitionPart, ...]
    clips: tuple[ClipResult, ...] = field(default=())


@dataclass(frozen=True)
class GridResult:
    """Result of materializing an in-memory grid into a raster."""

    path: Path
    extent: Extent
    resolution: float
    size_x: int
    size_y: int
