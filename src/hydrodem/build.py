"""Build orchestration: wire settings into services and run a model build."""

from __future__ import annotations

import asyncio
import logging

from hydrodem.acquisition import AcquisitionServices
from hydrodem.config import Settings
from hydrodem.model import Model, ModelDefinition, ModelOutput
from hydrodem.raster.service import RasterService

LOGGER = logging.getLogger(__name__)


def raster_service(settings: Settings) -> RasterService:
    """Return a raster service configured from settings."""
    return RasterService(
        driver=settings.driver,
        window_size=settings.window_size,
        crs=settings.crs,
    )


async def build_model(definition: ModelDefinition, settings: Settings) -> ModelOutput:
    """Prepare the domain for a definition and write the model directory."""
    rasters = raster_service(settings)
    async with AcquisitionServices(
        settings.download_dir,
        rasters=rasters,
        catalog_endpoint=settings.catalog_endpoint,
        download_endpoint=settings.download_endpoint,
        timeout=settings.http_timeout,
    ) as acquisition:
        model = Model(
            definition,
            rasters=rasters,
            work_directory=settings.download_dir,
            acquisition=acquisition,
            tile_size=settings.tile_size,
        )
        await model.prepare()
        return await model.write()


def run_build(definition: ModelDefinition, settings: Settings) -> ModelOutput:
    """Run a full model build and return the written files."""
    LOGGER.info("Building model %s into %s.", definition.name, definition.target_directory)
    return asyncio.run(build_model(definition, settings))
