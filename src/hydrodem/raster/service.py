"""Async raster service used by the acquisition and domain layers."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from numpy.typing import ArrayLike

from hydrodem.batch import gather_outcomes
from hydrodem.errors import MosaicError, PartitionError
from hydrodem.raster.clip import clip_raster
from hydrodem.raster.extent import Extent
from hydrodem.raster.info import inspect_raster
from hydrodem.raster.models import (
    WINDOW_SIZE,
    ClipResult,
    GridResult,
    MosaicResult,
    PartitionResult,
    RasterInfo,
)
from hydrodem.raster.mosaic import finish_mosaic, probe_source
from hydrodem.raster.partition import partition_extents
from hydrodem.raster.synthetic import array_to_raster

LOGGER = logging.getLogger(__name__)


class RasterService:
    """Run blocking raster operations off the event loop.

    Every call is a suspension point; sibling calls launched together complete
    in no particular order.
    """

    def __init__(
        self,
        *,
        driver: str = "HFA",
        window_size: int = WINDOW_SIZE,
        crs: str | None = None,
        strict_orientation: bool = False,
    ) -> None:
        self.driver = driver
        self.window_size = window_size
        self.crs = crs
        self.strict_orientation = strict_orientation

    async def inspect(self, path: Path) -> RasterInfo:
        """Read raster metadata off the event loop."""
        return await asyncio.to_thread(inspect_raster, path)

    async def merge(self, output_path: Path, sources: Sequence[Path]) -> MosaicResult:
        """Probe every source concurrently, then write the mosaic descriptor."""
        if not sources:
            raise MosaicError(f"No sources supplied for mosaic {output_path}.")
        paths = [Path(path) for path in sources]
        outcomes = await gather_outcomes(
            (str(path), asyncio.to_thread(probe_source, path)) for path in paths
        )
        probes: list[tuple[Path, RasterInfo | None]] = []
        for path, outcome in zip(paths, outcomes):
            if not outcome.ok:
                LOGGER.warning("Probe of %s failed: %s", path, outcome.error)
            probes.append((path, outcome.value))
        return await asyncio.to_thread(
            finish_mosaic,
            output_path,
            probes,
            strict=self.strict_orientation,
        )

    async def clip(
        self,
        source: Path,
        target: Path,
        extent: Extent,
        *,
        driver: str | None = None,
    ) -> ClipResult:
        """Clip ``source`` to ``extent`` off the event loop."""
        return await asyncio.to_thread(
            clip_raster,
            source,
            target,
            extent,
            driver=driver or self.driver,
            window_size=self.window_size,
        )

    async def divide(
        self,
        source: Path,
        targets: Sequence[Path],
        overlap_rows: int,
        *,
        driver: str | None = None,
    ) -> PartitionResult:
        """Clip all bands concurrently; the first failure fails the whole."""
        info = await self.inspect(source)
        parts = partition_extents(info, targets, overlap_rows)
        outcomes = await gather_outcomes(
            (f"part {part.index}", self.clip(source, part.target, part.extent, driver=driver))
            for part in parts
        )
        for outcome in outcomes:
            if not outcome.ok:
                raise PartitionError(
                    f"Could not divide {source}: {outcome.label}: {outcome.error}"
                ) from outcome.error
            if not outcome.value.written:
                raise PartitionError(f"Could not divide {source}: {outcome.label}: empty window")
        return PartitionResult(
            source=Path(source),
            overlap_rows=overlap_rows,
            parts=parts,
            clips=tuple(outcome.value for outcome in outcomes),
        )

    async def write_array(
        self,
        target: Path,
        extent: Extent,
        resolution: float,
        values: ArrayLike,
        *,
        driver: str | None = None,
    ) -> GridResult:
        """Write a dense array to a raster off the event loop."""
        return await asyncio.to_thread(
            array_to_raster,
            target,
            extent,
            resolution,
            values,
            driver=driver or self.driver,
            crs=self.crs,
        )
