"""Settings discovery for downloads, endpoints and raster output."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from hydrodem.acquisition.catalog import CATALOG_ENDPOINT, DOWNLOAD_ENDPOINT
from hydrodem.errors import ConfigError
from hydrodem.raster.crs import MODEL_CRS
from hydrodem.raster.extent import TILE_SIZE
from hydrodem.raster.models import WINDOW_SIZE

ENV_SETTINGS = "HYDRODEM_SETTINGS"
DEFAULT_SETTINGS_NAME = "hydrodem.json"

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Run-wide settings; every field has a working default."""

    download_dir: Path = Path("downloads")
    catalog_endpoint: str = CATALOG_ENDPOINT
    download_endpoint: str = DOWNLOAD_ENDPOINT
    http_timeout: float = 60.0
    tile_size: float = TILE_SIZE
    driver: str = "HFA"
    window_size: int = WINDOW_SIZE
    crs: str = MODEL_CRS

    def __post_init__(self) -> None:
        if self.http_timeout <= 0:
            raise ConfigError("http_timeout must be positive")
        if self.tile_size <= 0:
            raise ConfigError("tile_size must be positive")
        if self.window_size < 1:
            raise ConfigError("window_size must be at least 1")

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


_COERCE = {
    "download_dir": Path,
    "catalog_endpoint": str,
    "download_endpoint": str,
    "http_timeout": float,
    "tile_size": float,
    "driver": str,
    "window_size": int,
    "crs": str,
}


def settings_from_mapping(data: Mapping[str, Any], *, base_dir: Path | None = None) -> Settings:
    """Build settings from a JSON mapping, ignoring unknown keys."""
    known = {item.name for item in fields(Settings)}
    values: dict[str, Any] = {}
    for key, raw in data.items():
        if key not in known:
            LOGGER.debug("Ignoring unknown setting %s.", key)
            continue
        try:
            values[key] = _COERCE[key](raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for setting {key}: {raw!r}") from exc
    download_dir = values.get("download_dir")
    if base_dir is not None and download_dir is not None and not download_dir.is_absolute():
        values["download_dir"] = base_dir / download_dir
    return Settings(**values)


def _default_candidate_paths() -> list[Path]:
    return [Path.cwd() / DEFAULT_SETTINGS_NAME]


def _load_candidate(candidate: Path) -> Settings | None:
    """Return settings from ``candidate``, or None when the file is absent."""
    if not candidate.exists():
        return None
    try:
        data = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read settings {candidate}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {candidate} must hold a JSON object.")
    LOGGER.debug("Loaded settings from %s.", candidate)
    return settings_from_mapping(data, base_dir=candidate.parent)


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from an explicit path, $HYDRODEM_SETTINGS or ./hydrodem.json.

    An explicit or environment path that does not exist is an error; a missing
    default file yields the built-in defaults.
    """
    explicit = path or (Path(os.environ[ENV_SETTINGS]) if os.environ.get(ENV_SETTINGS) else None)
    if explicit is not None:
        settings = _load_candidate(explicit)
        if settings is None:
            raise ConfigError(f"Settings file not found: {explicit}")
        return settings
    for candidate in _default_candidate_paths():
        settings = _load_candidate(candidate)
        if settings is not None:
            return settings
    return Settings()
