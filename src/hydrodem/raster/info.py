"""Raster inspection helpers."""

from __future__ import annotations

from pathlib import Path

import rasterio
from rasterio.errors import RasterioError

from hydrodem.errors import RasterOpenError
from hydrodem.raster.models import RasterInfo


def inspect_raster(path: Path) -> RasterInfo:
    """Collect size and georeferencing for a raster on disk."""
    try:
        with rasterio.open(path) as dataset:
            return RasterInfo(
                path=Path(path),
                size_x=dataset.width,
                size_y=dataset.height,
                geotransform=tuple(dataset.transform.to_gdal()),
                band_count=dataset.count,
                nodata=dataset.nodata,
                dtype=dataset.dtypes[0],
                crs=dataset.crs.to_string() if dataset.crs else None,
            )
    except RasterioError as exc:
        raise RasterOpenError(f"Could not open raster {path}: {exc}") from exc
