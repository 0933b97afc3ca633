"""Tile acquisition: catalogue, download queue, extraction and tile lifecycle."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx

from hydrodem.acquisition.archive import ArchiveExtractor, archive_target_dir, extract_archive
from hydrodem.acquisition.catalog import (
    CATALOG_ENDPOINT,
    DOWNLOAD_ENDPOINT,
    CatalogClient,
    CatalogEntry,
    Product,
    ProductMatch,
    match_products,
)
from hydrodem.acquisition.download import DownloadQueue
from hydrodem.acquisition.gridref import encode_grid_reference, tile_names_for_extent
from hydrodem.acquisition.tile import TileAcquisition, TileArtifacts, TilePhase
from hydrodem.raster.service import RasterService

DEFAULT_TIMEOUT = 60.0


class AcquisitionServices:
    """Shared collaborators for every tile acquired in one run.

    Owns the HTTP client unless one is supplied, and the single download queue
    all tiles submit to. Use as an async context manager so queued fetches are
    drained and the client is closed.
    """

    def __init__(
        self,
        directory: Path,
        *,
        rasters: RasterService,
        client: Optional[httpx.AsyncClient] = None,
        catalog_endpoint: str = CATALOG_ENDPOINT,
        download_endpoint: str = DOWNLOAD_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.directory = Path(directory)
        self.rasters = rasters
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self.catalog = CatalogClient(
            self.client,
            endpoint=catalog_endpoint,
            download_endpoint=download_endpoint,
        )
        self.queue = DownloadQueue(self.directory, self.client)
        self.extractor = ArchiveExtractor()

    def tile(self, name: str) -> TileAcquisition:
        """Return a state machine for one tile sharing these services."""
        return TileAcquisition(
            name,
            directory=self.directory,
            catalog=self.catalog,
            queue=self.queue,
            extractor=self.extractor,
            rasters=self.rasters,
        )

    async def aclose(self) -> None:
        """Drain queued downloads, then close the client if it is owned here."""
        try:
            await self.queue.close()
        finally:
            if self._owns_client:
                await self.client.aclose()

    async def __aenter__(self) -> "AcquisitionServices":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = [
    "AcquisitionServices",
    "ArchiveExtractor",
    "CatalogClient",
    "CatalogEntry",
    "DownloadQueue",
    "Product",
    "ProductMatch",
    "TileAcquisition",
    "TileArtifacts",
    "TilePhase",
    "archive_target_dir",
    "encode_grid_reference",
    "extract_archive",
    "match_products",
    "tile_names_for_extent",
]
