"""Shared domain types and the capability protocol every domain implements."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Protocol

from hydrodem.errors import DomainError
from hydrodem.logging_utils import context_logger
from hydrodem.raster.extent import Extent


class DomainType(str, Enum):
    """Kinds of domain a model can be built on."""

    TILED = "bng"
    SYNTHETIC = "lab"


class RasterKind(str, Enum):
    """Domain rasters, valued by the model data-source name they feed."""

    TOPOGRAPHY = "structure,dem"
    INITIAL_DEPTH = "depth"
    INITIAL_FSL = "fsl"
    VELOCITY_X = "velocityX"
    VELOCITY_Y = "velocityY"


MODEL_FILENAMES: dict[RasterKind, str] = {
    RasterKind.TOPOGRAPHY: "MODEL_TOPOGRAPHY.img",
    RasterKind.INITIAL_DEPTH: "MODEL_INITIAL_DEPTH.img",
    RasterKind.INITIAL_FSL: "MODEL_INITIAL_FSL.img",
    RasterKind.VELOCITY_X: "MODEL_INITIAL_VEL_X.img",
    RasterKind.VELOCITY_Y: "MODEL_INITIAL_VEL_Y.img",
}


@dataclass(frozen=True)
class DomainRequest:
    """Inputs shared by every domain variant."""

    name: str
    extent: Extent
    resolution: float
    directory: Path
    constants: Mapping[str, float] = field(default_factory=dict)
    test_case: str | None = None


@dataclass(frozen=True)
class DataSource:
    """One ``dataSource`` entry of the model configuration."""

    type: str
    value: str
    source: str
    copy_from: Path | None = None


@dataclass(frozen=True)
class DomainResult:
    """Rasters produced by a prepared domain."""

    name: str
    extent: Extent
    resolution: float
    rasters: Mapping[RasterKind, Path]
    manning_coefficient: float | None = None


class Domain(Protocol):
    """Capability interface consumed by the model writer."""

    name: str
    extent: Extent
    resolution: float

    async def prepare(self) -> DomainResult:
        ...

    @property
    def topography(self) -> Path | None:
        ...

    @property
    def initial_depth(self) -> Path | None:
        ...

    @property
    def initial_fsl(self) -> Path | None:
        ...

    @property
    def initial_velocity_x(self) -> Path | None:
        ...

    @property
    def initial_velocity_y(self) -> Path | None:
        ...

    def data_sources(self) -> list[DataSource]:
        ...


class DomainBase:
    """Raster bookkeeping shared by the concrete domains."""

    def __init__(self, request: DomainRequest) -> None:
        self.request = request
        self.name = request.name
        self.extent = request.extent
        self.resolution = request.resolution
        self.manning_coefficient: float | None = None
        self._rasters: dict[RasterKind, Path] = {}
        self.log = context_logger(logging.getLogger(type(self).__module__), domain=self.name)

    async def prepare(self) -> DomainResult:
        """Produce every raster the domain provides and return them."""
        raise DomainError(f"Domain {self.name} has no prepare step.")

    def raster(self, kind: RasterKind) -> Path | None:
        """Return the prepared raster of one kind, or None if the domain lacks it."""
        return self._rasters.get(kind)

    @property
    def topography(self) -> Path | None:
        return self.raster(RasterKind.TOPOGRAPHY)

    @property
    def initial_depth(self) -> Path | None:
        return self.raster(RasterKind.INITIAL_DEPTH)

    @property
    def initial_fsl(self) -> Path | None:
        return self.raster(RasterKind.INITIAL_FSL)

    @property
    def initial_velocity_x(self) -> Path | None:
        return self.raster(RasterKind.VELOCITY_X)

    @property
    def initial_velocity_y(self) -> Path | None:
        return self.raster(RasterKind.VELOCITY_Y)

    def result(self) -> DomainResult:
        """Return the rasters prepared so far as a DomainResult."""
        return DomainResult(
            name=self.name,
            extent=self.extent,
            resolution=self.resolution,
            rasters=dict(self._rasters),
            manning_coefficient=self.manning_coefficient,
        )

    def data_sources(self) -> list[DataSource]:
        """Return the model data sources in configuration order.

        Topography is mandatory. Initial water is a depth raster, else a
        free-surface raster, else a constant zero depth; velocities fall back
        to constant zero.
        """
        if self.topography is None:
            raise DomainError(f"Domain {self.name} has no topography raster.")

        def raster_source(kind: RasterKind) -> DataSource:
            return DataSource("raster", kind.value, MODEL_FILENAMES[kind], self.raster(kind))

        sources = [raster_source(RasterKind.TOPOGRAPHY)]
        if self.initial_depth is not None:
            sources.append(raster_source(RasterKind.INITIAL_DEPTH))
        elif self.initial_fsl is not None:
            sources.append(raster_source(RasterKind.INITIAL_FSL))
        else:
            sources.append(DataSource("constant", RasterKind.INITIAL_DEPTH.value, "0.0"))
        for kind in (RasterKind.VELOCITY_X, RasterKind.VELOCITY_Y):
            if self.raster(kind) is not None:
                sources.append(raster_source(kind))
            else:
                sources.append(DataSource("constant", kind.value, "0.0"))
        return sources
