"""Real-world domains assembled from national grid terrain tiles."""

from __future__ import annotations

from pathlib import Path

from hydrodem.acquisition import AcquisitionServices, Product, tile_names_for_extent
from hydrodem.batch import gather_outcomes, raise_for_failures
from hydrodem.domain.base import DomainBase, DomainRequest, DomainResult, RasterKind
from hydrodem.errors import DomainError
from hydrodem.raster.extent import TILE_SIZE
from hydrodem.raster.models import MosaicResult
from hydrodem.raster.service import RasterService


class TiledDomain(DomainBase):
    """Acquire every tile under the extent, mosaic them and clip the terrain.

    The DTM is the topography source unless another ``terrain`` product is
    chosen; both product mosaics are always built.
    """

    def __init__(
        self,
        request: DomainRequest,
        *,
        rasters: RasterService,
        acquisition: AcquisitionServices,
        tile_size: float = TILE_SIZE,
        terrain: Product = Product.DTM,
    ) -> None:
        super().__init__(request)
        self.rasters = rasters
        self.acquisition = acquisition
        self.tile_size = tile_size
        self.terrain = terrain
        self.mosaics: dict[Product, MosaicResult] = {}

    @property
    def directory(self) -> Path:
        return self.request.directory

    def mosaic_path(self, product: Product) -> Path:
        """Return the VRT path for the product mosaic."""
        return self.directory / f"DOMAIN_{product.label}.vrt"

    def clip_path(self) -> Path:
        """Return the clipped terrain path."""
        return self.directory / f"CLIP_{self.terrain.label}.img"

    def tile_names(self) -> list[str]:
        """Return the names of every tile under the domain extent."""
        return tile_names_for_extent(self.extent, self.tile_size)

    async def prepare(self) -> DomainResult:
        """Prepare every tile, mosaic both products and clip the terrain."""
        names = self.tile_names()
        self.log.info("Domain requires %d tile(s): %s", len(names), ", ".join(names))
        tiles = [self.acquisition.tile(name) for name in names]
        outcomes = await gather_outcomes((tile.name, tile.require()) for tile in tiles)
        prepared = raise_for_failures(
            outcomes, f"Tiles for domain {self.name} could not be prepared"
        )
        self.log.info("All tiles are prepared; building domain mosaics.")

        merges = await gather_outcomes(
            (
                product.label,
                self.rasters.merge(
                    self.mosaic_path(product),
                    [artifacts.rasters[product] for artifacts in prepared],
                ),
            )
            for product in Product
        )
        results = raise_for_failures(merges, f"Mosaics for domain {self.name} could not be built")
        self.mosaics = dict(zip(Product, results))

        clip = await self.rasters.clip(
            self.mosaics[self.terrain].path,
            self.clip_path(),
            self.extent,
        )
        if not clip.written or clip.path is None:
            raise DomainError(f"Domain {self.name} does not overlap the assembled terrain.")
        self.log.info("Domain terrain clipped to %s (%dx%d).", clip.path, clip.size_x, clip.size_y)
        self._rasters[RasterKind.TOPOGRAPHY] = clip.path
        return self.result()
