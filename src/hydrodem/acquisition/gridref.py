"""British National Grid references for 10 km terrain tiles."""

from __future__ import annotations

import math

from hydrodem.errors import DomainError
from hydrodem.raster.extent import TILE_SIZE, Extent

GRID_LETTERS = "ABCDEFGHJKLMNOPQRSTUVWXYZ"
SQUARE_SIZE = 100000
MAX_SQUARE_E = 6
MAX_SQUARE_N = 12


def encode_grid_reference(easting: float, northing: float, precision: int = 1) -> str:
    """Encode a coordinate as a grid reference, or "" outside the grid.

    ``precision`` is the number of digits kept per axis; 1 names a 10 km cell
    such as ``SU10``.
    """
    square_e = math.floor(easting / SQUARE_SIZE)
    square_n = math.floor(northing / SQUARE_SIZE)
    if not (0 <= square_e <= MAX_SQUARE_E and 0 <= square_n <= MAX_SQUARE_N):
        return ""
    inverted_n = 19 - square_n
    first = GRID_LETTERS[inverted_n - inverted_n % 5 + (square_e + 10) // 5]
    second = GRID_LETTERS[inverted_n * 5 % 25 + square_e % 5]
    digits_e = f"{int(easting % SQUARE_SIZE):05d}"[:precision]
    digits_n = f"{int(northing % SQUARE_SIZE):05d}"[:precision]
    return f"{first}{second}{digits_e}{digits_n}"


def tile_names_for_extent(extent: Extent, tile_size: float = TILE_SIZE) -> list[str]:
    """Return the tile name for every cell covering an extent.

    Raises DomainError when a cell lies outside the encodable grid.
    """
    names = []
    for east, north in extent.tile_origins(tile_size):
        name = encode_grid_reference(east, north, 1)
        if not name:
            raise DomainError(f"Tile at ({east}, {north}) lies outside the national grid.")
        names.append(name)
    return names
