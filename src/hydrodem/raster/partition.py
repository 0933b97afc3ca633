"""Split a raster into overlapping row bands for domain decomposition."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Sequence

from hydrodem.errors import HydroDemError, PartitionError
from hydrodem.raster.clip import clip_raster
from hydrodem.raster.extent import Extent
from hydrodem.raster.info import inspect_raster
from hydrodem.raster.models import PartitionPart, PartitionResult, RasterInfo

LOGGER = logging.getLogger(__name__)


def _boundaries(size_y: int, count: int, overlap_rows: int) -> list[int]:
    """Row boundaries ``b_0 = 0 .. b_K = size_y`` stepping by ``(size_y - overlap) / K``."""
    step = (size_y - overlap_rows) / count
    inner = [math.floor(round(index * step, 6)) for index in range(1, count)]
    return [0, *inner, size_y]


def partition_extents(
    info: RasterInfo,
    targets: Sequence[Path],
    overlap_rows: int,
) -> tuple[PartitionPart, ...]:
    """Return the row band for each target, southernmost first.

    Part ``i`` spans rows ``b_i`` to ``b_{i+1} + overlap`` from the bottom edge,
    so neighbours share exactly ``overlap`` rows, heights add up to
    ``size_y + (K - 1) * overlap`` and each part is within one row of the
    nominal share.
    """
    count = len(targets)
    if count < 1:
        raise ValueError("At least one partition target is required.")
    if overlap_rows < 0:
        raise ValueError("overlap_rows must be >= 0")
    if count > 1 and info.size_y < overlap_rows:
        raise ValueError("Overlap is larger than each partition.")
    if count > 1 and info.size_y - overlap_rows < count:
        raise ValueError(f"{info.size_y} rows cannot be divided into {count} partitions.")

    base_x, base_y = info.lower_left
    right_x = base_x + info.size_x * info.resolution_x
    res = info.resolution_y
    bounds = _boundaries(info.size_y, count, overlap_rows)
    parts = []
    for index, target in enumerate(targets):
        row_start = bounds[index]
        row_end = min(info.size_y, bounds[index + 1] + overlap_rows)
        parts.append(
            PartitionPart(
                index=index,
                target=Path(target),
                extent=Extent(base_x, base_y + row_start * res, right_x, base_y + row_end * res),
                row_start=row_start,
                row_end=row_end,
            )
        )
    return tuple(parts)


def divide_raster(
    source_path: Path,
    targets: Sequence[Path],
    overlap_rows: int,
    *,
    driver: str = "HFA",
) -> PartitionResult:
    """Clip one raster into len(targets) overlapping row bands."""
    info = inspect_raster(source_path)
    parts = partition_extents(info, targets, overlap_rows)
    clips = []
    errors: list[str] = []
    for part in parts:
        try:
            clip = clip_raster(source_path, part.target, part.extent, driver=driver)
        except (HydroDemError, OSError) as exc:
            LOGGER.error("Partition %s of %s failed: %s", part.index, source_path, exc)
            errors.append(f"part {part.index}: {exc}")
            continue
        if not clip.written:
            errors.append(f"part {part.index}: empty window")
            continue
        clips.append(clip)
    if errors:
        raise PartitionError(f"Could not divide {source_path}: {errors[0]}")
    return PartitionResult(
        source=Path(source_path),
        overlap_rows=overlap_rows,
        parts=parts,
        clips=tuple(clips),
    )
