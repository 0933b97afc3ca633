from __future__ import annotations

import pytest

from hydrodem.acquisition.gridref import encode_grid_reference, tile_names_for_extent
from hydrodem.errors import DomainError
from hydrodem.raster.extent import Extent


@pytest.mark.parametrize(
    ("easting", "northing", "expected"),
    [
        (0.0, 0.0, "SV00"),
        (415000.0, 105000.0, "SU10"),
        (530000.0, 180000.0, "TQ38"),
        (460000.0, 1210000.0, "HP61"),
    ],
)
def test_encode_grid_reference(easting: float, northing: float, expected: str) -> None:
    assert encode_grid_reference(easting, northing, 1) == expected


def test_encode_grid_reference_precision() -> None:
    assert encode_grid_reference(415000.0, 105000.0, 2) == "SU1505"


@pytest.mark.parametrize(
    ("easting", "northing"),
    [(-1.0, 0.0), (0.0, -1.0), (700000.0, 0.0), (0.0, 1300000.0)],
)
def test_encode_grid_reference_outside_grid(easting: float, northing: float) -> None:
    assert encode_grid_reference(easting, northing, 1) == ""


def test_tile_names_for_extent() -> None:
    names = tile_names_for_extent(Extent(0.0, 0.0, 15000.0, 12000.0))

    assert names == ["SV00", "SV01", "SV10", "SV11"]


def test_tile_names_for_extent_outside_grid() -> None:
    with pytest.raises(DomainError, match="outside the national grid"):
        tile_names_for_extent(Extent(-5000.0, 0.0, 5000.0, 5000.0))
