from __future__ import annotations

import asyncio
from pathlib import Path

import numpy as np
import pytest

from hydrodem.errors import PartitionError
from hydrodem.raster.extent import Extent
from hydrodem.raster.models import RasterInfo
from hydrodem.raster.partition import divide_raster, partition_extents
from hydrodem.raster.service import RasterService
from tests.utils import read_band, write_raster


def _info(size_y: int, size_x: int = 5, resolution: float = 2.0) -> RasterInfo:
    return RasterInfo(
        path=Path("source.img"),
        size_x=size_x,
        size_y=size_y,
        geotransform=(0.0, resolution, 0.0, size_y * resolution, 0.0, -resolution),
        band_count=1,
        nodata=None,
        dtype="float32",
    )


def _targets(count: int) -> list[Path]:
    return [Path(f"part_{index}.img") for index in range(count)]


def test_partition_extents_three_bands() -> None:
    parts = partition_extents(_info(10), _targets(3), 2)

    assert [(part.row_start, part.row_end) for part in parts] == [(0, 4), (2, 7), (5, 10)]
    assert parts[0].extent == Extent(0.0, 0.0, 10.0, 8.0)
    assert parts[2].extent == Extent(0.0, 10.0, 10.0, 20.0)
    assert [part.index for part in parts] == [0, 1, 2]


def test_partition_extents_single_part_covers_raster() -> None:
    (part,) = partition_extents(_info(7), _targets(1), 3)

    assert (part.row_start, part.row_end) == (0, 7)
    assert part.rows == 7


def test_partition_extents_uneven_share_without_overlap() -> None:
    parts = partition_extents(_info(101), _targets(4), 0)

    assert [(part.row_start, part.row_end) for part in parts] == [
        (0, 25),
        (25, 50),
        (50, 75),
        (75, 101),
    ]
    assert sum(part.rows for part in parts) == 101


def test_partition_extents_cover_with_overlap() -> None:
    for size_y in range(1, 41):
        for count in range(1, 6):
            for overlap in range(0, 4):
                if count > 1 and size_y - overlap < count:
                    continue
                parts = partition_extents(_info(size_y), _targets(count), overlap)
                share = (size_y + (count - 1) * overlap) / count
                assert parts[0].row_start == 0
                assert parts[-1].row_end == size_y
                for lower, upper in zip(parts, parts[1:]):
                    assert lower.row_end - upper.row_start == overlap
                    assert upper.row_start > lower.row_start
                for part in parts:
                    assert abs(part.rows - share) <= 1
                excess = sum(part.rows for part in parts) - (count - 1) * overlap - size_y
                assert abs(excess) <= 1


def test_partition_extents_rejects_bad_arguments() -> None:
    with pytest.raises(ValueError):
        partition_extents(_info(10), [], 0)
    with pytest.raises(ValueError):
        partition_extents(_info(10), _targets(2), -1)
    with pytest.raises(ValueError, match="Overlap"):
        partition_extents(_info(4), _targets(3), 5)
    with pytest.raises(ValueError, match="cannot be divided"):
        partition_extents(_info(4), _targets(3), 2)


def _source(tmp_path) -> tuple[Path, np.ndarray]:
    data = np.arange(50, dtype=np.float32).reshape((10, 5))
    return write_raster(tmp_path / "domain.tif", data, bounds=(0.0, 0.0, 10.0, 20.0)), data


def test_divide_raster_writes_bands(tmp_path) -> None:
    source, data = _source(tmp_path)
    targets = [tmp_path / f"domain_{index}.tif" for index in range(3)]

    result = divide_raster(source, targets, 2, driver="GTiff")

    assert len(result.clips) == 3
    assert result.overlap_rows == 2
    np.testing.assert_array_equal(read_band(targets[0]), data[6:10])
    np.testing.assert_array_equal(read_band(targets[1]), data[3:8])
    np.testing.assert_array_equal(read_band(targets[2]), data[0:5])


def test_divide_raster_reports_failed_part(tmp_path) -> None:
    source, _ = _source(tmp_path)
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    targets = [tmp_path / "ok.tif", blocker / "bad.tif"]

    with pytest.raises(PartitionError, match="part 1"):
        divide_raster(source, targets, 1, driver="GTiff")


def test_service_divide_runs_parts_concurrently(tmp_path) -> None:
    source, data = _source(tmp_path)
    targets = [tmp_path / f"band_{index}.tif" for index in range(2)]

    result = asyncio.run(RasterService(driver="GTiff").divide(source, targets, 2))

    assert [(part.row_start, part.row_end) for part in result.parts] == [(0, 6), (4, 10)]
    assert all(clip.written for clip in result.clips)
    np.testing.assert_array_equal(read_band(targets[0]), data[4:10])
    np.testing.assert_array_equal(read_band(targets[1]), data[0:6])


def test_service_divide_fails_when_any_part_fails(tmp_path) -> None:
    source, _ = _source(tmp_path)
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")

    with pytest.raises(PartitionError, match="part 0"):
        asyncio.run(
            RasterService(driver="GTiff").divide(source, [blocker / "a.tif", tmp_path / "b.tif"], 0)
        )
