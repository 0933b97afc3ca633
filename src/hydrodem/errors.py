"""Exception hierarchy for terrain assembly."""

from __future__ import annotations

from typing import Sequence


class HydroDemError(RuntimeError):
    """Base class for hydrodem failures."""


class ConfigError(HydroDemError):
    """Raised when settings or model definitions cannot be loaded."""


class RasterError(HydroDemError):
    """Base class for raster processing failures."""


class RasterOpenError(RasterError):
    """Raised when a source raster cannot be opened."""


class RasterCreateError(RasterError):
    """Raised when a destination driver or dataset cannot be created."""


class MosaicError(RasterError):
    """Raised when a mosaic descriptor cannot be produced."""


class PartitionError(RasterError):
    """Raised when one or more partition clips fail."""


class AcquisitionError(HydroDemError):
    """Base class for tile acquisition failures."""


class CatalogError(AcquisitionError):
    """Raised when the remote catalogue cannot be queried."""


class DownloadError(AcquisitionError):
    """Raised when a queued fetch fails."""


class ArchiveError(AcquisitionError):
    """Raised when an archive cannot be extracted."""


class TileAcquisitionError(AcquisitionError):
    """Raised when a tile cannot be brought to the prepared state."""

    def __init__(self, tile: str, message: str) -> None:
        super().__init__(f"Tile {tile}: {message}")
        self.tile = tile


class DomainError(HydroDemError):
    """Raised when a domain cannot be prepared."""


class DomainAssemblyError(DomainError):
    """Raised when part of a domain fan-out fails.

    ``first`` is the first failure in submission order; ``errors`` holds every
    failure keyed by the item label so later failures are never masked.
    """

    def __init__(self, message: str, errors: Sequence[tuple[str, BaseException]]) -> None:
        detail = "; ".join(f"{label}: {error}" for label, error in errors)
        super().__init__(f"{message} ({detail})" if detail else message)
        self.errors = tuple(errors)
        self.first = errors[0][1] if errors else None


class ModelError(HydroDemError):
    """Raised when model output cannot be written."""
