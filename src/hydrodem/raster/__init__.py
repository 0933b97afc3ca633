"""Raster mosaic, clip, partition and grid-writing helpers."""

from hydrodem.raster.clip import clip_raster, clip_window
from hydrodem.raster.crs import MODEL_CRS, transform_extent
from hydrodem.raster.extent import TILE_SIZE, Extent
from hydrodem.raster.info import inspect_raster
from hydrodem.raster.models import (
    NODATA,
    ClipResult,
    ClipStatus,
    GridResult,
    MosaicPlacement,
    MosaicResult,
    PartitionPart,
    PartitionResult,
    RasterInfo,
)
from hydrodem.raster.mosaic import build_mosaic, plan_mosaic
from hydrodem.raster.partition import divide_raster, partition_extents
from hydrodem.raster.service import RasterService
from hydrodem.raster.synthetic import array_to_raster

__all__ = [
    "ClipResult",
    "ClipStatus",
    "Extent",
    "GridResult",
    "MODEL_CRS",
    "MosaicPlacement",
    "MosaicResult",
    "NODATA",
    "PartitionPart",
    "PartitionResult",
    "RasterInfo",
    "RasterService",
    "TILE_SIZE",
    "array_to_raster",
    "build_mosaic",
    "clip_raster",
    "clip_window",
    "divide_raster",
    "inspect_raster",
    "partition_extents",
    "plan_mosaic",
    "transform_extent",
]
