"""CRS helpers for extents supplied outside the model grid's CRS."""

from __future__ import annotations

from pyproj import CRS, Transformer

from hydrodem.raster.extent import Extent

# British National Grid, the CRS of the tiled terrain catalogue.
MODEL_CRS = "EPSG:27700"


def normalize_crs(value: str | CRS) -> CRS:
    """Normalize CRS input into a pyproj CRS object."""
    return CRS.from_user_input(value)


def transformer(src: str | CRS, dst: str | CRS) -> Transformer:
    """Return a transformer that keeps x/y (lon/lat) axis order."""
    return Transformer.from_crs(normalize_crs(src), normalize_crs(dst), always_xy=True)


def _edge_points(extent: Extent, densify_pts: int) -> tuple[list[float], list[float]]:
    """Return densified points along the extent's four edges."""
    steps = max(2, densify_pts + 2)
    xs: list[float] = []
    ys: list[float] = []
    for index in range(steps):
        t = index / (steps - 1)
        x = extent.min_x + extent.width * t
        y = extent.min_y + extent.height * t
        xs.extend([x, x, extent.min_x, extent.max_x])
        ys.extend([extent.min_y, extent.max_y, y, y])
    return xs, ys


def transform_extent(
    extent: Extent,
    src: str | CRS,
    dst: str | CRS = MODEL_CRS,
    *,
    densify_pts: int = 21,
) -> Extent:
    """Return the extent enclosing ``extent`` once reprojected to ``dst``."""
    if normalize_crs(src) == normalize_crs(dst):
        return extent
    xs, ys = _edge_points(extent, densify_pts)
    out_xs, out_ys = transformer(src, dst).transform(xs, ys)
    return Extent(min(out_xs), min(out_ys), max(out_xs), max(out_ys))
