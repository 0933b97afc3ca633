"""Virtual mosaic (VRT) builder for tiles with differing origins."""

from __future__ import annotations

import logging
import math
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Sequence

from rasterio.crs import CRS
from rasterio.dtypes import _gdal_typename

from hydrodem.errors import MosaicError, RasterOpenError
from hydrodem.raster.extent import Extent
from hydrodem.raster.info import inspect_raster
from hydrodem.raster.models import DATA_TYPE, NODATA, MosaicPlacement, MosaicResult, RasterInfo

LOGGER = logging.getLogger(__name__)


def plan_mosaic(
    sources: Sequence[RasterInfo],
    output_path: Path,
    *,
    strict: bool = False,
) -> MosaicResult:
    """Compute the canvas and per-source placements for a mosaic."""
    if not sources:
        raise MosaicError("At least one readable source raster is required.")

    north_up = sources[0].north_up
    mixed = [info.path for info in sources if info.north_up != north_up]
    if mixed:
        message = (
            "Mosaic sources mix vertical orientations; "
            f"{len(mixed)} source(s) differ from {sources[0].path.name}."
        )
        if strict:
            raise MosaicError(message)
        LOGGER.warning(message)

    min_x = min(info.lower_left[0] for info in sources)
    min_y = min(info.lower_left[1] for info in sources)
    max_x = max(info.upper_right[0] for info in sources)
    max_y = max(info.upper_right[1] for info in sources)
    resolution = min(info.resolution for info in sources)
    if resolution <= 0 or not math.isfinite(resolution):
        raise MosaicError("Could not compute a resolution for the mosaic.")
    LOGGER.info(
        "Mosaic stretches over extent (%s, %s) to (%s, %s).",
        min_x,
        min_y,
        max_x,
        max_y,
    )

    relative_root = output_path.parent
    placements = []
    for info in sources:
        ll_x, ll_y = info.lower_left
        ur_x, ur_y = info.upper_right
        offset_x = int(round((ll_x - min_x) / resolution))
        if north_up:
            offset_y = int(round((max_y - ur_y) / resolution))
        else:
            offset_y = int(round((ll_y - min_y) / resolution))
        rel_path = os.path.relpath(info.path, relative_root)
        placements.append(
            MosaicPlacement(
                source=info.path,
                relative_path=Path(rel_path).as_posix(),
                size_x=info.size_x,
                size_y=info.size_y,
                offset_x=offset_x,
                offset_y=offset_y,
                dest_size_x=max(1, int(round((ur_x - ll_x) / resolution))),
                dest_size_y=max(1, int(round((ur_y - ll_y) / resolution))),
                dtype=_gdal_typename(info.dtype),
            )
        )

    extent = Extent(min_x, min_y, max_x, max_y)
    return MosaicResult(
        path=output_path,
        extent=extent,
        resolution=resolution,
        size_x=max(1, extent.size_x(resolution)),
        size_y=max(1, extent.size_y(resolution)),
        north_up=north_up,
        placements=tuple(placements),
    )


def write_vrt(result: MosaicResult, *, crs: str | None = None) -> Path:
    """Write a mosaic plan as a GDAL VRT descriptor."""
    root = ET.Element(
        "VRTDataset",
        rasterXSize=str(result.size_x),
        rasterYSize=str(result.size_y),
    )
    if crs:
        srs = CRS.from_user_input(crs).to_wkt()
        ET.SubElement(root, "SRS").text = " ".join(srs.split())
    ET.SubElement(root, "GeoTransform").text = ", ".join(
        f"{value:.10f}" for value in result.geotransform
    )
    band_node = ET.SubElement(root, "VRTRasterBand", dataType=DATA_TYPE, band="1")
    ET.SubElement(band_node, "NoDataValue").text = str(NODATA)

    for placement in result.placements:
        source_node = ET.SubElement(band_node, "SimpleSource")
        ET.SubElement(
            source_node,
            "SourceFilename",
            relativeToVRT="1",
        ).text = placement.relative_path
        ET.SubElement(source_node, "SourceBand").text = "1"
        ET.SubElement(
            source_node,
            "SourceProperties",
            RasterXSize=str(placement.size_x),
            RasterYSize=str(placement.size_y),
            DataType=placement.dtype,
            BlockXSize=str(placement.size_x),
            BlockYSize="1",
        )
        ET.SubElement(
            source_node,
            "SrcRect",
            xOff="0",
            yOff="0",
            xSize=str(placement.size_x),
            ySize=str(placement.size_y),
        )
        ET.SubElement(
            source_node,
            "DstRect",
            xOff=str(placement.offset_x),
            yOff=str(placement.offset_y),
            xSize=str(placement.dest_size_x),
            ySize=str(placement.dest_size_y),
        )

    result.path.parent.mkdir(parents=True, exist_ok=True)
    tree = ET.ElementTree(root)
    tree.write(result.path, encoding="utf-8", xml_declaration=True)
    return result.path


def finish_mosaic(
    output_path: Path,
    probes: Sequence[tuple[Path, RasterInfo | None]],
    *,
    strict: bool = False,
) -> MosaicResult:
    """Plan and write a mosaic once every source has been probed."""
    readable = [info for _, info in probes if info is not None]
    skipped = tuple(path for path, info in probes if info is None)
    result = plan_mosaic(readable, output_path, strict=strict)
    crs = next((info.crs for info in readable if info.crs), None)
    LOGGER.info("Writing mosaic to %s...", output_path)
    write_vrt(result, crs=crs)
    return MosaicResult(
        path=result.path,
        extent=result.extent,
        resolution=result.resolution,
        size_x=result.size_x,
        size_y=result.size_y,
        north_up=result.north_up,
        placements=result.placements,
        skipped=skipped,
    )


def probe_source(path: Path) -> RasterInfo | None:
    """Inspect a mosaic source, returning None when it cannot be opened."""
    try:
        return inspect_raster(path)
    except RasterOpenError as exc:
        LOGGER.warning("Could not open %s to add to mosaic: %s", path, exc)
        return None


def build_mosaic(
    output_path: Path,
    source_paths: Sequence[Path],
    *,
    strict: bool = False,
) -> MosaicResult:
    """Merge source rasters into a single VRT mosaic without copying pixels."""
    if not source_paths:
        raise MosaicError("At least one source raster path is required.")
    probes = [(Path(path), probe_source(Path(path))) for path in source_paths]
    return finish_mosaic(output_path, probes, strict=strict)
