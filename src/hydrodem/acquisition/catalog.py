"""LiDAR catalogue queries and product filename matching."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

import httpx

from hydrodem.errors import CatalogError

LOGGER = logging.getLogger(__name__)

CATALOG_ENDPOINT = "http://www.geostore.com/environment-agency/rest/product/EA_SUPPLIED_OS_10KM/"
DOWNLOAD_ENDPOINT = "http://www.geostore.com/environment-agency/rest/product/download/"
SOURCE_LABEL = "EA"

GRID_NAME_PATTERN = re.compile(r"[A-Z]{2}[0-9]{2}(?:[a-z]{2})?")


class Product(Enum):
    """Raster products assembled for every tile."""

    DTM = ("DTM", re.compile(r"LIDAR-DTM-2M-[A-Z]{2}[0-9]{2}(?:[a-z]{2})?\.zip"))
    DSM = ("DEM", re.compile(r"LIDAR-DSM-2M-[A-Z]{2}[0-9]{2}(?:[a-z]{2})?\.zip"))

    @property
    def label(self) -> str:
        """Suffix used for archive, directory and VRT names."""
        return self.value[0]

    @property
    def pattern(self) -> re.Pattern[str]:
        return self.value[1]


@dataclass(frozen=True)
class CatalogEntry:
    """Dataset advertised by the catalogue for a tile."""

    file_name: str
    guid: str


@dataclass(frozen=True)
class ProductMatch:
    """Catalogue entry recognised as one of the required products."""

    entry: CatalogEntry
    product: Product
    grid_name: str

    @property
    def archive_name(self) -> str:
        """Local filename the archive is stored under, e.g. ``SU10_DTM_EA.zip``."""
        return f"{self.grid_name}_{self.product.label}_{SOURCE_LABEL}.zip"

    def url(self, download_endpoint: str = DOWNLOAD_ENDPOINT) -> str:
        """Return the download URL for this entry."""
        return f"{download_endpoint}{self.entry.guid}"


def match_products(entries: Iterable[CatalogEntry]) -> list[ProductMatch]:
    """Keep entries whose filenames match a product pattern."""
    matches = []
    for entry in entries:
        for product in Product:
            if product.pattern.search(entry.file_name) is None:
                continue
            grid = GRID_NAME_PATTERN.search(entry.file_name.rsplit("-", 1)[-1])
            if grid is None:
                continue
            matches.append(ProductMatch(entry, product, grid.group(0)))
            break
    return matches


def _parse_entries(payload: Any) -> list[CatalogEntry]:
    """Return the catalogue entries with a filename and guid; other items are skipped."""
    if not isinstance(payload, list):
        raise CatalogError("Catalogue response is not a list of datasets.")
    entries = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        file_name = item.get("fileName")
        guid = item.get("guid")
        if isinstance(file_name, str) and guid is not None:
            entries.append(CatalogEntry(file_name=file_name, guid=str(guid)))
    return entries


class CatalogClient:
    """Query the catalogue for the datasets covering a tile."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        endpoint: str = CATALOG_ENDPOINT,
        download_endpoint: str = DOWNLOAD_ENDPOINT,
    ) -> None:
        self.client = client
        self.endpoint = endpoint
        self.download_endpoint = download_endpoint

    async def list_entries(self, tile: str) -> list[CatalogEntry]:
        """Return every dataset the catalogue lists for ``tile``."""
        try:
            response = await self.client.get(
                f"{self.endpoint}{tile}",
                params={"catalogName": "Survey"},
            )
        except httpx.HTTPError as exc:
            raise CatalogError(f"Catalogue request for {tile} failed: {exc}") from exc
        if response.status_code != 200:
            raise CatalogError(
                f"Catalogue request for {tile} returned status code {response.status_code}."
            )
        try:
            payload = json.loads(response.text)
        except json.JSONDecodeError as exc:
            raise CatalogError(f"Catalogue response for {tile} is not JSON: {exc}") from exc
        entries = _parse_entries(payload)
        LOGGER.info("Identified %s LiDAR datasets.", len(entries), extra={"tile": tile})
        return entries
