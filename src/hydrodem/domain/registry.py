"""Select the domain implementation for a domain type."""

from __future__ import annotations

from hydrodem.acquisition import AcquisitionServices
from hydrodem.domain.base import Domain, DomainRequest, DomainType
from hydrodem.domain.synthetic import SyntheticDomain
from hydrodem.domain.tiled import TiledDomain
from hydrodem.errors import DomainError
from hydrodem.raster.extent import TILE_SIZE
from hydrodem.raster.service import RasterService


def parse_domain_type(value: str | DomainType) -> DomainType:
    """Return the DomainType for a name such as ``bng`` or ``lab``."""
    if isinstance(value, DomainType):
        return value
    try:
        return DomainType(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in DomainType)
        raise DomainError(f"Unknown domain type: {value} (expected one of {choices})") from exc


def create_domain(
    domain_type: str | DomainType,
    request: DomainRequest,
    *,
    rasters: RasterService,
    acquisition: AcquisitionServices | None = None,
    tile_size: float = TILE_SIZE,
) -> Domain:
    """Return the domain variant for ``domain_type``.

    Tiled domains need acquisition services; synthetic domains ignore them.
    """
    kind = parse_domain_type(domain_type)
    if kind is DomainType.SYNTHETIC:
        return SyntheticDomain(request, rasters=rasters)
    if acquisition is None:
        raise DomainError("Tiled domains require acquisition services.")
    return TiledDomain(request, rasters=rasters, acquisition=acquisition, tile_size=tile_size)
