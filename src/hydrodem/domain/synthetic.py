"""Synthetic domains generated from analytical test cases."""

from __future__ import annotations

import asyncio
from pathlib import Path

from hydrodem.batch import gather_outcomes, raise_for_failures
from hydrodem.domain.base import DomainBase, DomainRequest, DomainResult, RasterKind
from hydrodem.domain.testcases import TestCase, get_test_case
from hydrodem.raster.service import RasterService

SYNTHETIC_FILENAMES: dict[RasterKind, str] = {
    RasterKind.TOPOGRAPHY: "TEST_DOMAIN_DTM.img",
    RasterKind.INITIAL_DEPTH: "TEST_DOMAIN_DEPTH.img",
    RasterKind.INITIAL_FSL: "TEST_DOMAIN_FSL.img",
    RasterKind.VELOCITY_X: "TEST_DOMAIN_VELX.img",
    RasterKind.VELOCITY_Y: "TEST_DOMAIN_VELY.img",
}


class SyntheticDomain(DomainBase):
    """Write every grid a test case provides straight to rasters."""

    def __init__(self, request: DomainRequest, *, rasters: RasterService) -> None:
        super().__init__(request)
        self.rasters = rasters

    def grid_path(self, kind: RasterKind) -> Path:
        """Return where the grid of one kind is written."""
        return self.request.directory / SYNTHETIC_FILENAMES[kind]

    def test_case(self) -> TestCase:
        """Return the test case named by the request, or by the domain name."""
        return get_test_case(self.request.test_case or self.name, self.request.constants)

    async def prepare(self) -> DomainResult:
        """Evaluate the test case and write every grid it provides."""
        case = self.test_case()
        self.log.info("Synthetic domain required: %s", case.name)
        self.log.info("%s", case.description)

        resolution = case.resolution or self.resolution
        extent = (case.extent or self.extent).snap_to_grid(resolution)
        size_x = extent.size_x(resolution)
        size_y = extent.size_y(resolution)

        providers = {
            RasterKind.TOPOGRAPHY: case.topography,
            RasterKind.INITIAL_DEPTH: case.initial_depth,
            RasterKind.INITIAL_FSL: case.initial_fsl,
            RasterKind.VELOCITY_X: case.initial_velocity_x,
            RasterKind.VELOCITY_Y: case.initial_velocity_y,
        }
        grids = {}
        for kind, provider in providers.items():
            grid = provider(size_x, size_y, resolution)
            if grid is not None:
                self.log.info("Test case provides %s.", SYNTHETIC_FILENAMES[kind])
                grids[kind] = grid

        await asyncio.to_thread(self.request.directory.mkdir, parents=True, exist_ok=True)
        outcomes = await gather_outcomes(
            (
                SYNTHETIC_FILENAMES[kind],
                self.rasters.write_array(self.grid_path(kind), extent, resolution, grid),
            )
            for kind, grid in grids.items()
        )
        raise_for_failures(outcomes, f"Synthetic domain {self.name} could not be written")

        self.extent = extent
        self.resolution = resolution
        self.manning_coefficient = case.manning_coefficient
        for kind in grids:
            self._rasters[kind] = self.grid_path(kind)
        return self.result()
