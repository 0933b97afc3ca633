"""Analytical benchmark cases used to build synthetic domains.

Each case describes its terrain and initial conditions as closed-form
functions of the cell centre position relative to the domain centre.
"""

from __future__ import annotations

import math
from typing import Callable, Mapping, Protocol

import numpy as np

from hydrodem.errors import DomainError
from hydrodem.raster.extent import Extent

GRAVITY = 9.806

Grid = np.ndarray
CellFormula = Callable[[np.ndarray, np.ndarray], np.ndarray]


class TestCase(Protocol):
    """Grid provider for a synthetic domain."""

    name: str
    description: str
    extent: Extent | None
    resolution: float | None
    manning_coefficient: float

    def topography(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        ...

    def initial_depth(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        ...

    def initial_fsl(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        ...

    def initial_velocity_x(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        ...

    def initial_velocity_y(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        ...


def centred_coordinates(size_x: int, size_y: int, resolution: float) -> tuple[Grid, Grid]:
    """Return (x, y) offsets from the domain centre, shaped (size_y, size_x).

    Row 0 is the northernmost row, so y decreases down the array.
    """
    columns = (np.arange(size_x) - (size_x + 1) // 2) * resolution
    rows = ((size_y + 1) // 2 - np.arange(size_y)) * resolution
    return np.meshgrid(columns.astype(np.float64), rows.astype(np.float64))


class GridCase:
    """Base for cases whose grids are evaluated cell by cell."""

    name = ""
    description = ""
    extent: Extent | None = None
    resolution: float | None = None
    manning_coefficient = 0.0

    def __init__(self, constants: Mapping[str, float] | None = None) -> None:
        self.constants = dict(constants or {})

    def constant(self, key: str, default: float) -> float:
        """Return a named constant, or ``default`` when not overridden."""
        return float(self.constants.get(key, default))

    def evaluate(self, formula: CellFormula, size_x: int, size_y: int, resolution: float) -> Grid:
        """Evaluate ``formula`` over the centred cell coordinates."""
        x, y = centred_coordinates(size_x, size_y, resolution)
        return np.asarray(formula(x, y), dtype=np.float32)

    def topography(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        return None

    def initial_depth(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        return None

    def initial_fsl(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        return None

    def initial_velocity_x(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        return None

    def initial_velocity_y(self, size_x: int, size_y: int, resolution: float) -> Grid | None:
        return None


class LakeAtRest(GridCase):
    """Smooth island in still water; the free surface must stay flat.

    Xing et al. (2010), Advances in Water Resources 33:1476-1493.
    """

    name = "LAKE AT REST"
    description = (
        "2D domain with a smooth island in the centre and no friction. "
        "No change in water level should occur."
    )

    def __init__(self, constants: Mapping[str, float] | None = None) -> None:
        super().__init__(constants)
        self.shape_factor = self.constant("a", 2000.0)
        self.scale_factor = self.constant("b", 5000.0)
        self.water_level = self.constant("n", 0.0)
        self.island_level = self.constant("i", 100.0)
        self.sea_depth = self.constant("s", 50.0)

    def bed(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Island bed elevation, floored at the sea bed."""
        island = self.island_level - self.scale_factor * (x**2 + y**2) / self.shape_factor**2
        return np.maximum(island, self.water_level - self.sea_depth)

    def fsl(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Still water level, or the bed where the island is dry."""
        bed = self.bed(x, y)
        return np.where(self.water_level > bed, self.water_level, bed)

    def topography(self, size_x: int, size_y: int, resolution: float) -> Grid:
        return self.evaluate(self.bed, size_x, size_y, resolution)

    def initial_fsl(self, size_x: int, size_y: int, resolution: float) -> Grid:
        return self.evaluate(self.fsl, size_x, size_y, resolution)


class SloshingBowl(GridCase):
    """Planar surface oscillating in a parabolic bowl.

    Wang et al. (2011), Journal of Hydraulic Research 49(3):307-316.
    """

    name = "SLOSHING PARABOLIC BOWL"
    description = (
        "2D sloshing parabolic bowl, with or without friction. Normally needs "
        "a MUSCL-Hancock scheme to keep diffusion from degrading the results."
    )

    def __init__(self, constants: Mapping[str, float] | None = None) -> None:
        super().__init__(constants)
        self.h0 = self.constant("h0", 10.0)
        self.alpha = self.constant("alpha", 3000.0)
        self.beta = self.constant("beta", 5.0)
        self.tau = self.constant("tau", 0.0)
        self.peak_amplitude = math.sqrt(8 * GRAVITY * self.h0 / self.alpha**2)
        self.s = math.sqrt(self.peak_amplitude**2 - self.tau**2) / 2.0

    def bed(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Parabolic bed elevation."""
        return self.h0 * (x**2 + y**2) / self.alpha**2

    def fsl(self, x: np.ndarray, y: np.ndarray, t: float = 0.0) -> np.ndarray:
        """Free-surface level at time ``t``, never below the bed."""
        decay = self.beta * math.exp(-self.tau * t * 0.5) / GRAVITY
        slope_x = (self.tau / 2.0) * math.sin(self.s * t) + self.s * math.cos(self.s * t)
        slope_y = (self.tau / 2.0) * math.cos(self.s * t) - self.s * math.sin(self.s * t)
        surface = self.h0 - decay * slope_x * x - decay * slope_y * y
        bed = self.bed(x, y)
        return np.where(surface > bed, surface, bed)

    def velocity_x(self, t: float = 0.0) -> float:
        """Uniform x velocity at time ``t``."""
        return self.beta * math.exp(-self.tau * t * 0.5) * math.sin(self.s * t)

    def velocity_y(self, t: float = 0.0) -> float:
        """Uniform y velocity at time ``t``."""
        return -self.beta * math.exp(-self.tau * t * 0.5) * math.cos(self.s * t)

    def topography(self, size_x: int, size_y: int, resolution: float) -> Grid:
        return self.evaluate(self.bed, size_x, size_y, resolution)

    def initial_fsl(self, size_x: int, size_y: int, resolution: float) -> Grid:
        return self.evaluate(self.fsl, size_x, size_y, resolution)

    def initial_velocity_x(self, size_x: int, size_y: int, resolution: float) -> Grid:
        return np.full((size_y, size_x), self.velocity_x(), dtype=np.float32)

    def initial_velocity_y(self, size_x: int, size_y: int, resolution: float) -> Grid:
        return np.full((size_y, size_x), self.velocity_y(), dtype=np.float32)


TestCaseFactory = Callable[[Mapping[str, float]], TestCase]

_TEST_CASES: dict[str, TestCaseFactory] = {
    LakeAtRest.name: LakeAtRest,
    SloshingBowl.name: SloshingBowl,
}


def available_test_cases() -> list[str]:
    """Return the registered test case names."""
    return sorted(_TEST_CASES)


def get_test_case(name: str, constants: Mapping[str, float] | None = None) -> TestCase:
    """Return the test case registered under ``name`` (case-insensitive)."""
    try:
        factory = _TEST_CASES[name.strip().upper()]
    except KeyError as exc:
        raise DomainError(f"Unknown test case: {name}") from exc
    return factory(constants or {})
