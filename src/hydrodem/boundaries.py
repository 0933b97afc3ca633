"""Boundary-condition time series written alongside the model."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)

RAINFALL_FILENAME = "rainfall.csv"
DRAINAGE_FILENAME = "drainage.csv"
RAINFALL_HEADER = ("Time (s)", "Rainfall intensity (mm/hr)")
DRAINAGE_HEADER = ("Time (s)", "Drainage rate (mm/hr)")


@dataclass(frozen=True)
class Boundaries:
    """Uniform atmospheric boundaries: a rainfall block and constant drainage.

    ``rainfall_duration`` is in seconds. Rainfall falls at
    ``rainfall_intensity`` for the first period and stops afterwards.
    """

    rainfall_intensity: float = 0.0
    rainfall_duration: float = 0.0
    drainage_rate: float = 0.0

    def rainfall_rows(self, duration: float) -> list[tuple[float, float]]:
        """Return (time, intensity) rows; empty when no rainfall is configured."""
        if self.rainfall_duration <= 0:
            return []
        rows = []
        time = 0.0
        while time <= duration:
            intensity = self.rainfall_intensity if time < self.rainfall_duration else 0.0
            rows.append((time, intensity))
            time += self.rainfall_duration
        return rows

    def drainage_rows(self, duration: float) -> list[tuple[float, float]]:
        """Return (time, rate) rows spanning the run; empty when drainage is zero."""
        if not self.drainage_rate:
            return []
        return [(0.0, self.drainage_rate), (float(duration), self.drainage_rate)]

    def write(self, duration: float, directory: Path) -> list[Path]:
        """Write the CSV files this definition needs and return their paths."""
        written = []
        for filename, header, rows in (
            (RAINFALL_FILENAME, RAINFALL_HEADER, self.rainfall_rows(duration)),
            (DRAINAGE_FILENAME, DRAINAGE_HEADER, self.drainage_rows(duration)),
        ):
            if not rows:
                continue
            path = directory / filename
            LOGGER.info("Writing boundary series %s.", filename)
            with path.open("w", encoding="utf-8", newline="") as handle:
                writer = csv.writer(handle, lineterminator="\n")
                writer.writerow(header)
                writer.writerows(rows)
            written.append(path)
        return written
