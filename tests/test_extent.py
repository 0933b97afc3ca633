from __future__ import annotations

import pytest

from hydrodem.raster.extent import Extent


def test_extent_normalizes_crossed_bounds() -> None:
    extent = Extent(10.0, 20.0, 0.0, 5.0)

    assert extent.bounds == (0.0, 5.0, 10.0, 20.0)
    assert extent.width == 10.0
    assert extent.height == 15.0


def test_snap_to_grid_rounds_outward() -> None:
    snapped = Extent(1.0, 1.5, 9.0, 8.2).snap_to_grid(2.0)

    assert snapped.bounds == (0.0, 0.0, 10.0, 10.0)
    assert snapped.size_x(2.0) == 5
    assert snapped.size_y(2.0) == 5


def test_snap_to_grid_returns_new_extent() -> None:
    original = Extent(1.0, 1.0, 3.0, 3.0)
    original.snap_to_grid(2.0)

    assert original.bounds == (1.0, 1.0, 3.0, 3.0)


def test_snap_to_grid_rejects_non_positive_resolution() -> None:
    with pytest.raises(ValueError, match="positive"):
        Extent(0.0, 0.0, 1.0, 1.0).snap_to_grid(0.0)


def test_tile_origins_cover_partial_cells() -> None:
    origins = Extent(0.0, 0.0, 15000.0, 12000.0).tile_origins()

    assert origins == [
        (0.0, 0.0),
        (0.0, 10000.0),
        (10000.0, 0.0),
        (10000.0, 10000.0),
    ]


def test_tile_origins_exclude_cells_touching_the_far_edge() -> None:
    assert Extent(0.0, 0.0, 10000.0, 10000.0).tile_origins() == [(0.0, 0.0)]


def test_tile_origins_start_from_floored_minimum() -> None:
    origins = Extent(12000.0, 25000.0, 14000.0, 26000.0).tile_origins()

    assert origins == [(10000.0, 20000.0)]


def test_intersects() -> None:
    base = Extent(0.0, 0.0, 10.0, 10.0)

    assert base.intersects(Extent(5.0, 5.0, 15.0, 15.0))
    assert not base.intersects(Extent(10.0, 0.0, 20.0, 10.0))
    assert not base.intersects(Extent(20.0, 20.0, 30.0, 30.0))
