"""Window copier: clip a raster to an arbitrary world extent."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import rasterio
from rasterio.errors import RasterioError
from rasterio.transform import Affine
from rasterio.windows import Window

from hydrodem.errors import RasterCreateError, RasterOpenError
from hydrodem.raster.extent import Extent
from hydrodem.raster.info import inspect_raster
from hydrodem.raster.models import (
    NODATA,
    WINDOW_SIZE,
    ClipResult,
    ClipStatus,
    RasterInfo,
)

LOGGER = logging.getLogger(__name__)

# Cell index arithmetic is rounded to this many decimals before floor/ceil so
# float noise in world coordinates does not add a spurious row or column.
_INDEX_DECIMALS = 6


@dataclass(frozen=True)
class ClipWindow:
    """Clamped source cell window, with rows counted from the bottom edge."""

    col_min: int
    col_max: int
    row_min: int
    row_max: int

    @property
    def size_x(self) -> int:
        return self.col_max - self.col_min

    @property
    def size_y(self) -> int:
        return self.row_max - self.row_min

    @property
    def empty(self) -> bool:
        return self.size_x <= 0 or self.size_y <= 0


def _clamp(value: int, upper: int) -> int:
    return min(upper, max(0, value))


def _floor_index(value: float) -> int:
    return math.floor(round(value, _INDEX_DECIMALS))


def _ceil_index(value: float) -> int:
    return math.ceil(round(value, _INDEX_DECIMALS))


def clip_window(info: RasterInfo, extent: Extent) -> ClipWindow:
    """Convert a world extent to a source cell window clamped to the raster."""
    base_x, base_y = info.lower_left
    res_x = info.resolution_x
    res_y = info.resolution_y
    return ClipWindow(
        col_min=_clamp(_floor_index((extent.min_x - base_x) / res_x), info.size_x),
        col_max=_clamp(_ceil_index((extent.max_x - base_x) / res_x), info.size_x),
        row_min=_clamp(_floor_index((extent.min_y - base_y) / res_y), info.size_y),
        row_max=_clamp(_ceil_index((extent.max_y - base_y) / res_y), info.size_y),
    )


def _window_extent(info: RasterInfo, window: ClipWindow) -> Extent:
    base_x, base_y = info.lower_left
    return Extent(
        base_x + window.col_min * info.resolution_x,
        base_y + window.row_min * info.resolution_y,
        base_x + window.col_max * info.resolution_x,
        base_y + window.row_max * info.resolution_y,
    )


def _target_transform(info: RasterInfo, extent: Extent) -> Affine:
    """Anchor the destination on the source's own pixel grid."""
    if info.north_up:
        return Affine(info.resolution_x, 0.0, extent.min_x, 0.0, -info.resolution_y, extent.max_y)
    return Affine(info.resolution_x, 0.0, extent.min_x, 0.0, info.resolution_y, extent.min_y)


def _source_row_offset(info: RasterInfo, window: ClipWindow) -> int:
    """Return the storage row of the window's first stored row."""
    if info.north_up:
        return info.size_y - window.row_max
    return window.row_min


def _as_nodata(block: np.ndarray, source_nodata: float | None) -> np.ndarray:
    """Return a float32 copy with NaN and source NODATA set to -9999."""
    block = block.astype(np.float32, copy=True)
    mask = np.isnan(block)
    if source_nodata is not None and not np.isnan(source_nodata):
        mask |= block == np.float32(source_nodata)
    block[mask] = NODATA
    return block


def clip_raster(
    source_path: Path,
    target_path: Path,
    extent: Extent,
    *,
    driver: str = "HFA",
    window_size: int = WINDOW_SIZE,
) -> ClipResult:
    """Copy the part of a raster covered by an extent into a new raster."""
    if window_size <= 0:
        raise ValueError("window_size must be positive")
    info = inspect_raster(source_path)
    window = clip_window(info, extent)
    resolution = (info.resolution_x, info.resolution_y)
    if window.empty:
        LOGGER.warning(
            "Extent %s does not intersect %s; nothing to clip.", extent.bounds, source_path
        )
        return ClipResult(ClipStatus.EMPTY, None, 0, 0, None, resolution)

    LOGGER.info(
        "Target file will be %sx%s (%s cells)",
        window.size_x,
        window.size_y,
        window.size_x * window.size_y,
    )
    target_extent = _window_extent(info, window)
    row_offset = _source_row_offset(info, window)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        src = rasterio.open(source_path)
    except RasterioError as exc:
        raise RasterOpenError(f"Could not open {source_path} to source clip data: {exc}") from exc
    with src:
        try:
            dest = rasterio.open(
                target_path,
                "w",
                driver=driver,
                width=window.size_x,
                height=window.size_y,
                count=1,
                dtype="float32",
                crs=src.crs,
                transform=_target_transform(info, target_extent),
                nodata=NODATA,
            )
        except RasterioError as exc:
            raise RasterCreateError(
                f"Could not create {driver} dataset {target_path}: {exc}"
            ) from exc
        with dest:
            for row in range(0, window.size_y, window_size):
                height = min(window_size, window.size_y - row)
                for col in range(0, window.size_x, window_size):
                    width = min(window_size, window.size_x - col)
                    block = src.read(
                        1,
                        window=Window(window.col_min + col, row_offset + row, width, height),
                    )
                    dest.write(
                        _as_nodata(block, src.nodata),
                        1,
                        window=Window(col, row, width, height),
                    )

    return ClipResult(
        ClipStatus.WRITTEN,
        target_path,
        window.size_x,
        window.size_y,
        target_extent,
        resolution,
    )
