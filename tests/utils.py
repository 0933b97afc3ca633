from __future__ import annotations

import io
import os
import zipfile
from pathlib import Path
from typing import Tuple

import numpy as np
import rasterio
from rasterio.transform import Affine, from_bounds


def write_raster(
    path: Path,
    data: np.ndarray,
    *,
    bounds: Tuple[float, float, float, float],
    crs: str | None = "EPSG:27700",
    nodata: float | None = None,
    north_up: bool = True,
) -> Path:
    height, width = data.shape
    if north_up:
        transform = from_bounds(*bounds, width=width, height=height)
    else:
        min_x, min_y, max_x, max_y = bounds
        transform = Affine(
            (max_x - min_x) / width, 0.0, min_x, 0.0, (max_y - min_y) / height, min_y
        )
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=data.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dataset:
        dataset.write(data, 1)
    return path


def ascii_grid_text(
    data: np.ndarray,
    *,
    lower_left: Tuple[float, float],
    cellsize: float,
    nodata: float = -9999.0,
) -> str:
    """Render an Esri ASCII grid, the cell format of the terrain archives."""
    rows, cols = data.shape
    header = [
        f"ncols {cols}",
        f"nrows {rows}",
        f"xllcorner {lower_left[0]}",
        f"yllcorner {lower_left[1]}",
        f"cellsize {cellsize}",
        f"NODATA_value {nodata}",
    ]
    body = [" ".join(f"{value:g}" for value in row) for row in data]
    return "\n".join(header + body) + "\n"


def write_ascii_grid(path: Path, data: np.ndarray, **kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(ascii_grid_text(data, **kwargs), encoding="utf-8")
    return path


def zip_bytes(members: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, text in members.items():
            archive.writestr(name, text)
    return buffer.getvalue()


def read_band(path: Path) -> np.ndarray:
    with rasterio.open(path) as dataset:
        return dataset.read(1)


def with_src_env(base_env: dict[str, str] | None = None) -> dict[str, str]:
    """Return an environment with repo src/ on PYTHONPATH."""
    env = dict(base_env or os.environ)
    repo_root = Path(__file__).resolve().parents[1]
    src_path = repo_root / "src"
    if src_path.exists():
        existing = env.get("PYTHONPATH", "")
        entries = [entry for entry in existing.split(os.pathsep) if entry]
        src_str = str(src_path)
        if src_str not in entries:
            entries.insert(0, src_str)
        env["PYTHONPATH"] = os.pathsep.join(entries)
    return env
