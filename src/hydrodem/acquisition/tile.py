"""Per-tile acquisition lifecycle: download, extract, mosaic."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

from hydrodem.acquisition.archive import ArchiveExtractor
from hydrodem.acquisition.catalog import CatalogClient, Product, match_products
from hydrodem.acquisition.download import DownloadQueue
from hydrodem.batch import gather_outcomes, raise_for_failures
from hydrodem.errors import (
    ArchiveError,
    DownloadError,
    HydroDemError,
    MosaicError,
    TileAcquisitionError,
)
from hydrodem.logging_utils import context_logger
from hydrodem.raster.service import RasterService

LOGGER = logging.getLogger(__name__)

ARCHIVES_REQUIRED = len(Product)


class TilePhase(str, Enum):
    """Lifecycle position of a tile, derived from its flags."""

    UNASSESSED = "unassessed"
    NOT_DOWNLOADED = "not-downloaded"
    DOWNLOADED = "downloaded-not-extracted"
    EXTRACTED = "extracted-not-rasterized"
    PREPARED = "prepared"
    FAILED = "failed"


@dataclass
class TileFlags:
    assessed: bool = False
    downloaded: bool = False
    extracted: bool = False
    rasterized: bool = False
    required: bool = False
    prepared: bool = False
    failed: bool = False

    def phase(self) -> TilePhase:
        """Return the phase named by the first unmet flag."""
        if self.failed:
            return TilePhase.FAILED
        if not self.assessed:
            return TilePhase.UNASSESSED
        if not self.downloaded:
            return TilePhase.NOT_DOWNLOADED
        if not self.extracted:
            return TilePhase.DOWNLOADED
        if not self.rasterized:
            return TilePhase.EXTRACTED
        return TilePhase.PREPARED


@dataclass(frozen=True)
class TileArtifacts:
    """Rasterized products of a prepared tile."""

    tile: str
    rasters: Mapping[Product, Path]


class TileAcquisition:
    """Drive one tile from whatever is on disk to the prepared state."""

    def __init__(
        self,
        name: str,
        *,
        directory: Path,
        catalog: CatalogClient,
        queue: DownloadQueue,
        extractor: ArchiveExtractor,
        rasters: RasterService,
    ) -> None:
        self.name = name
        self.directory = Path(directory)
        self.catalog = catalog
        self.queue = queue
        self.extractor = extractor
        self.rasters = rasters
        self.flags = TileFlags()
        self.log = context_logger(LOGGER, tile=name)
        self._ready: asyncio.Task[TileArtifacts] | None = None

    def __repr__(self) -> str:
        return f"TileAcquisition({self.name!r}, phase={self.phase.value})"

    @property
    def phase(self) -> TilePhase:
        return self.flags.phase()

    def archive_paths(self) -> list[Path]:
        """Return the tile's archives in the download directory."""
        return sorted(self.directory.glob(f"{self.name}*_D?M_*.zip"))

    def extracted_paths(self) -> list[Path]:
        """Return the extracted directories, one per product."""
        return [self.directory / f"{self.name}_{product.label}" for product in Product]

    def raster_paths(self) -> dict[Product, Path]:
        """Return the VRT path of each product."""
        return {product: self.directory / f"{self.name}_{product.label}.vrt" for product in Product}

    async def assess_state(self) -> TilePhase:
        """Re-derive every flag from the files on disk."""

        def archives_present() -> bool:
            return len(self.archive_paths()) >= ARCHIVES_REQUIRED

        def readable(paths: list[Path]) -> bool:
            return all(os.access(path, os.R_OK) for path in paths)

        downloaded, extracted, rasterized = await asyncio.gather(
            asyncio.to_thread(archives_present),
            asyncio.to_thread(readable, self.extracted_paths()),
            asyncio.to_thread(readable, list(self.raster_paths().values())),
        )
        self.flags.downloaded = downloaded
        self.flags.extracted = extracted
        self.flags.rasterized = rasterized
        self.flags.assessed = True
        phase = self.phase
        if phase is TilePhase.PREPARED:
            self.log.info("Tile already prepared.")
        else:
            self.log.info("Tile state: %s.", phase.value)
        return phase

    async def require(self) -> TileArtifacts:
        """Wait until the tile is prepared and return its rasters.

        May be awaited before assessment; every caller shares one readiness
        task, so all concurrent waiters are notified and a cancelled waiter
        leaves the others running.
        """
        self.flags.required = True
        if self._ready is None:
            self._ready = asyncio.ensure_future(self._become_ready())
        return await asyncio.shield(self._ready)

    async def _become_ready(self) -> TileArtifacts:
        if not self.flags.assessed:
            await self.assess_state()
        return await self.prepare_for_use()

    async def prepare_for_use(self) -> TileArtifacts:
        """Run the phase for the first unmet flag until the tile is prepared."""
        try:
            while True:
                phase = self.phase
                if phase is TilePhase.NOT_DOWNLOADED:
                    await self.download()
                elif phase is TilePhase.DOWNLOADED:
                    await self.extract()
                elif phase is TilePhase.EXTRACTED:
                    await self.rasterize()
                elif phase is TilePhase.PREPARED:
                    self.flags.prepared = True
                    return TileArtifacts(self.name, self.raster_paths())
                else:
                    raise TileAcquisitionError(
                        self.name, f"cannot prepare from state {phase.value}"
                    )
        except TileAcquisitionError:
            self.flags.failed = True
            raise
        except HydroDemError as exc:
            self.flags.failed = True
            self.log.error("Preparation failed: %s", exc)
            raise TileAcquisitionError(self.name, str(exc)) from exc

    async def download(self) -> None:
        """Fetch every product archive the catalogue offers for the tile."""
        self.log.info("Attempting to download tile...")
        entries = await self.catalog.list_entries(self.name)
        matches = match_products(entries)
        if not matches:
            raise TileAcquisitionError(self.name, "required LiDAR files could not be found")
        found = {match.product for match in matches}
        missing = [product.label for product in Product if product not in found]
        if missing:
            raise TileAcquisitionError(
                self.name, f"no {', '.join(missing)} dataset is offered for this tile"
            )
        for match in matches:
            self.log.debug("Dataset %s provides required data.", match.entry.guid)
        outcomes = await gather_outcomes(
            (
                match.archive_name,
                self.queue.fetch(match.url(self.catalog.download_endpoint), match.archive_name),
            )
            for match in matches
        )
        raise_for_failures(outcomes, "downloads failed", DownloadError)
        self.log.info("All downloads have finished.")
        self.flags.downloaded = True

    async def extract(self) -> None:
        """Extract every archive of the tile into its product directory."""
        self.log.info("Attempting to extract tile...")
        archives = await asyncio.to_thread(self.archive_paths)
        if not archives:
            raise ArchiveError(f"No archives found for tile {self.name}.")
        outcomes = await gather_outcomes(
            (archive.name, self.extractor.extract(archive)) for archive in archives
        )
        raise_for_failures(outcomes, "extraction failed", ArchiveError)
        missing = [path.name for path in self.extracted_paths() if not path.is_dir()]
        if missing:
            raise ArchiveError(f"Extraction did not produce {', '.join(missing)}.")
        self.flags.extracted = True

    async def rasterize(self) -> None:
        """Build one VRT per product directory from its ASCII grid cells."""
        self.log.info("Attempting to rasterise tile...")

        def product_directories() -> list[tuple[Path, list[Path]]]:
            found = sorted(
                path for path in self.directory.glob(f"{self.name}_D?M") if path.is_dir()
            )
            return [(path, sorted(path.rglob("*.asc"))) for path in found]

        directories = await asyncio.to_thread(product_directories)
        if not directories:
            raise MosaicError(f"No extracted directories found for tile {self.name}.")

        async def merge(directory: Path, cells: list[Path]) -> Path:
            if not cells:
                raise MosaicError(f"No elevation cells found in {directory}.")
            result = await self.rasters.merge(self.directory / f"{directory.name}.vrt", cells)
            self.log.info("Finished building %s VRT.", directory.name)
            return result.path

        outcomes = await gather_outcomes(
            (directory.name, merge(directory, cells)) for directory, cells in directories
        )
        raise_for_failures(outcomes, "rasterisation failed", MosaicError)
        missing = [path.name for path in self.raster_paths().values() if not path.exists()]
        if missing:
            raise MosaicError(f"Rasterisation did not produce {', '.join(missing)}.")
        self.flags.rasterized = True
