from __future__ import annotations

import asyncio
import xml.etree.ElementTree as ET

import numpy as np
import pytest
import rasterio

from hydrodem.errors import MosaicError
from hydrodem.raster.info import inspect_raster
from hydrodem.raster.models import NODATA
from hydrodem.raster.mosaic import build_mosaic, plan_mosaic
from hydrodem.raster.service import RasterService
from tests.utils import write_raster


def _block(value: float, shape: tuple[int, int] = (4, 4)) -> np.ndarray:
    return np.full(shape, value, dtype=np.float32)


def test_build_mosaic_requires_inputs(tmp_path) -> None:
    with pytest.raises(MosaicError, match="At least one"):
        build_mosaic(tmp_path / "out.vrt", [])


def test_build_mosaic_side_by_side(tmp_path) -> None:
    left = write_raster(tmp_path / "left.tif", _block(1.0), bounds=(0.0, 0.0, 8.0, 8.0))
    right = write_raster(tmp_path / "right.tif", _block(2.0), bounds=(8.0, 0.0, 16.0, 8.0))

    result = build_mosaic(tmp_path / "mosaic.vrt", [left, right])

    assert result.extent.bounds == (0.0, 0.0, 16.0, 8.0)
    assert result.resolution == 2.0
    assert (result.size_x, result.size_y) == (8, 4)
    assert [placement.offset_x for placement in result.placements] == [0, 4]
    assert [placement.offset_y for placement in result.placements] == [0, 0]
    assert result.skipped == ()

    with rasterio.open(result.path) as dataset:
        data = dataset.read(1)
        assert dataset.nodata == NODATA
        assert dataset.transform.c == 0.0
        assert dataset.transform.f == 8.0
    assert data.shape == (4, 8)
    assert np.all(data[:, :4] == 1.0)
    assert np.all(data[:, 4:] == 2.0)


def test_build_mosaic_descriptor_uses_relative_paths(tmp_path) -> None:
    source = write_raster(
        tmp_path / "cells" / "a.tif", _block(1.0), bounds=(0.0, 0.0, 8.0, 8.0)
    )

    result = build_mosaic(tmp_path / "mosaic.vrt", [source])

    root = ET.parse(result.path).getroot()
    filename = root.find("./VRTRasterBand/SimpleSource/SourceFilename")
    assert filename is not None
    assert filename.text == "cells/a.tif"
    assert filename.get("relativeToVRT") == "1"
    band = root.find("./VRTRasterBand")
    assert band is not None
    assert band.get("dataType") == "Float32"
    assert root.find("./SRS") is not None


def test_plan_mosaic_offsets_from_top_for_north_up(tmp_path) -> None:
    south = write_raster(tmp_path / "south.tif", _block(1.0), bounds=(0.0, 0.0, 8.0, 8.0))
    north = write_raster(tmp_path / "north.tif", _block(2.0), bounds=(0.0, 8.0, 8.0, 16.0))

    plan = plan_mosaic(
        [inspect_raster(south), inspect_raster(north)], tmp_path / "mosaic.vrt"
    )

    assert plan.north_up
    assert [placement.offset_y for placement in plan.placements] == [4, 0]
    assert (plan.size_x, plan.size_y) == (4, 8)


def test_plan_mosaic_uses_finest_resolution(tmp_path) -> None:
    fine = write_raster(tmp_path / "fine.tif", _block(1.0), bounds=(0.0, 0.0, 8.0, 8.0))
    coarse = write_raster(
        tmp_path / "coarse.tif", _block(2.0, (2, 2)), bounds=(8.0, 0.0, 16.0, 8.0)
    )

    plan = plan_mosaic([inspect_raster(fine), inspect_raster(coarse)], tmp_path / "m.vrt")

    assert plan.resolution == 2.0
    coarse_placement = plan.placements[1]
    assert (coarse_placement.size_x, coarse_placement.size_y) == (2, 2)
    assert (coarse_placement.dest_size_x, coarse_placement.dest_size_y) == (4, 4)
    assert coarse_placement.offset_x == 4
    for placement in plan.placements:
        assert placement.offset_x >= 0 and placement.offset_y >= 0
        assert placement.offset_x + placement.dest_size_x <= plan.size_x
        assert placement.offset_y + placement.dest_size_y <= plan.size_y


def test_plan_mosaic_bottom_up_canvas(tmp_path) -> None:
    south = write_raster(
        tmp_path / "south.tif", _block(1.0), bounds=(0.0, 0.0, 8.0, 8.0), north_up=False
    )
    north = write_raster(
        tmp_path / "north.tif", _block(2.0), bounds=(0.0, 8.0, 8.0, 16.0), north_up=False
    )

    plan = plan_mosaic([inspect_raster(south), inspect_raster(north)], tmp_path / "m.vrt")

    assert not plan.north_up
    assert [placement.offset_y for placement in plan.placements] == [0, 4]
    assert plan.geotransform[5] == 2.0


def test_plan_mosaic_mixed_orientation(tmp_path) -> None:
    top = write_raster(tmp_path / "top.tif", _block(1.0), bounds=(0.0, 0.0, 8.0, 8.0))
    bottom = write_raster(
        tmp_path / "bottom.tif", _block(2.0), bounds=(8.0, 0.0, 16.0, 8.0), north_up=False
    )
    sources = [inspect_raster(top), inspect_raster(bottom)]

    plan = plan_mosaic(sources, tmp_path / "m.vrt")
    assert plan.north_up

    with pytest.raises(MosaicError, match="orientations"):
        plan_mosaic(sources, tmp_path / "m.vrt", strict=True)


def test_build_mosaic_skips_unreadable_sources(tmp_path) -> None:
    good = write_raster(tmp_path / "good.tif", _block(1.0), bounds=(0.0, 0.0, 8.0, 8.0))
    broken = tmp_path / "broken.tif"
    broken.write_text("not a raster", encoding="utf-8")

    result = build_mosaic(tmp_path / "mosaic.vrt", [good, broken])

    assert result.skipped == (broken,)
    assert result.extent.bounds == (0.0, 0.0, 8.0, 8.0)
    assert len(result.placements) == 1


def test_build_mosaic_fails_without_readable_sources(tmp_path) -> None:
    broken = tmp_path / "broken.tif"
    broken.write_text("not a raster", encoding="utf-8")

    with pytest.raises(MosaicError):
        build_mosaic(tmp_path / "mosaic.vrt", [broken, tmp_path / "missing.tif"])


def test_service_merge_probes_all_sources(tmp_path) -> None:
    sources = [
        write_raster(
            tmp_path / f"cell_{index}.tif",
            _block(float(index)),
            bounds=(index * 8.0, 0.0, index * 8.0 + 8.0, 8.0),
        )
        for index in range(3)
    ]
    sources.append(tmp_path / "missing.tif")

    result = asyncio.run(RasterService().merge(tmp_path / "mosaic.vrt", sources))

    assert result.extent.bounds == (0.0, 0.0, 24.0, 8.0)
    assert result.skipped == (tmp_path / "missing.tif",)
    assert [placement.offset_x for placement in result.placements] == [0, 4, 8]


def test_service_merge_requires_sources(tmp_path) -> None:
    with pytest.raises(MosaicError, match="No sources"):
        asyncio.run(RasterService().merge(tmp_path / "mosaic.vrt", []))


def test_offset_sources_place_by_pixel_offset(tmp_path) -> None:
    first = write_raster(
        tmp_path / "first.tif", _block(1.0, (100, 100)), bounds=(0.0, 0.0, 200.0, 200.0)
    )
    second = write_raster(
        tmp_path / "second.tif", _block(2.0, (100, 100)), bounds=(200.0, 0.0, 400.0, 200.0)
    )

    result = build_mosaic(tmp_path / "mosaic.vrt", [first, second])

    assert result.placements[1].offset_x == 100
    assert (result.size_x, result.size_y) == (200, 100)
