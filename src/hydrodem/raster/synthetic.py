"""Materialize in-memory grids as georeferenced rasters."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import rasterio
from numpy.typing import ArrayLike
from rasterio.errors import RasterioError
from rasterio.transform import from_origin
from rasterio.windows import Window

from hydrodem.errors import RasterCreateError
from hydrodem.raster.extent import Extent
from hydrodem.raster.models import NODATA, GridResult

LOGGER = logging.getLogger(__name__)


def _as_grid(values: ArrayLike, size_x: int, size_y: int) -> np.ndarray:
    """Return values as a (size_y, size_x) float32 array, row 0 northernmost."""
    grid = np.asarray(values, dtype=np.float32)
    if grid.size != size_x * size_y:
        raise ValueError(
            f"Grid has {grid.size} values but the extent needs {size_x}x{size_y}."
        )
    return grid.reshape((size_y, size_x))


def array_to_raster(
    target_path: Path,
    extent: Extent,
    resolution: float,
    values: ArrayLike,
    *,
    driver: str = "HFA",
    crs: str | None = None,
) -> GridResult:
    """Write a dense row-major grid covering the snapped extent."""
    snapped = extent.snap_to_grid(resolution)
    size_x = snapped.size_x(resolution)
    size_y = snapped.size_y(resolution)
    if size_x <= 0 or size_y <= 0:
        raise ValueError("Extent is smaller than one cell at this resolution.")
    grid = _as_grid(values, size_x, size_y)
    LOGGER.info("Target file will be %sx%s (%s cells)", size_x, size_y, size_x * size_y)

    target_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        dest = rasterio.open(
            target_path,
            "w",
            driver=driver,
            width=size_x,
            height=size_y,
            count=1,
            dtype="float32",
            crs=crs,
            transform=from_origin(snapped.min_x, snapped.max_y, resolution, resolution),
            nodata=NODATA,
        )
    except RasterioError as exc:
        raise RasterCreateError(f"Could not create {driver} dataset {target_path}: {exc}") from exc
    with dest:
        for row in range(size_y):
            dest.write(grid[row : row + 1, :], 1, window=Window(0, row, size_x, 1))

    return GridResult(
        path=target_path,
        extent=snapped,
        resolution=resolution,
        size_x=size_x,
        size_y=size_y,
    )
