"""Command-line interface for hydrodem."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

from hydrodem import __version__
from hydrodem.acquisition import tile_names_for_extent
from hydrodem.build import raster_service, run_build
from hydrodem.config import Settings, load_settings
from hydrodem.contracts import SCHEMA_VERSION, load_model_definition
from hydrodem.domain import DomainType, available_test_cases
from hydrodem.errors import HydroDemError
from hydrodem.logging_utils import LogOptions, configure_logging
from hydrodem.model import DEFAULT_OVERLAP_ROWS, DEFAULT_RESOLUTION, ModelDefinition
from hydrodem.raster.crs import transform_extent
from hydrodem.raster.extent import Extent

LOGGER = logging.getLogger("hydrodem.cli")

EXTENT_METAVAR = ("MIN_X", "MIN_Y", "MAX_X", "MAX_Y")


def _add_extent_argument(parser: argparse.ArgumentParser, *, required: bool = True) -> None:
    """Add the ``--extent`` option shared by several subcommands."""
    parser.add_argument(
        "--extent",
        nargs=4,
        type=float,
        metavar=EXTENT_METAVAR,
        required=required,
        help="Extent in projected model coordinates.",
    )


def _add_tiles_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the tile listing subcommand."""
    tiles = subparsers.add_parser("tiles", help="List the grid tiles covering an extent.")
    _add_extent_argument(tiles)
    tiles.add_argument(
        "--crs",
        help="CRS the extent is given in (defaults to the model CRS).",
    )


def _add_mosaic_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the VRT mosaic subcommand."""
    mosaic = subparsers.add_parser("mosaic", help="Merge rasters into a VRT mosaic.")
    mosaic.add_argument("sources", nargs="+", help="Source raster paths.")
    mosaic.add_argument("--output", required=True, help="Target VRT path.")
    mosaic.add_argument(
        "--strict",
        action="store_true",
        help="Fail when sources disagree on vertical orientation.",
    )


def _add_clip_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the clip subcommand."""
    clip = subparsers.add_parser("clip", help="Clip a raster to an extent.")
    clip.add_argument("source", help="Source raster path.")
    clip.add_argument("target", help="Target raster path.")
    _add_extent_argument(clip)
    clip.add_argument("--driver", help="GDAL driver for the target (default from settings).")


def _add_divide_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the domain decomposition subcommand."""
    divide = subparsers.add_parser("divide", help="Divide a raster into overlapping row bands.")
    divide.add_argument("source", help="Source raster path.")
    divide.add_argument("--parts", type=int, required=True, help="Number of bands.")
    divide.add_argument(
        "--overlap",
        type=int,
        default=DEFAULT_OVERLAP_ROWS,
        help="Rows shared by adjacent bands.",
    )
    divide.add_argument(
        "--output-dir",
        help="Directory for the bands (defaults to the source directory).",
    )
    divide.add_argument("--driver", help="GDAL driver for the bands (default from settings).")


def _add_build_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the model build subcommand."""
    build = subparsers.add_parser("build", help="Build a model directory.")
    build.add_argument("--definition", help="Model definition JSON file.")
    build.add_argument("--name", help="Short model name (test case name for lab domains).")
    build.add_argument(
        "--type",
        dest="domain_type",
        choices=[item.value for item in DomainType],
        default=DomainType.TILED.value,
        help="Domain type: bng (tiled terrain) or lab (synthetic test case).",
    )
    _add_extent_argument(build, required=False)
    build.add_argument("--directory", help="Target directory for the model.")
    build.add_argument("--resolution", type=float, default=DEFAULT_RESOLUTION)
    build.add_argument("--duration", type=float, help="Simulation duration in seconds.")
    build.add_argument("--output-frequency", type=float, help="Output interval in seconds.")
    build.add_argument("--decompose", type=int, default=1, help="Number of sub-domains.")
    build.add_argument("--overlap", type=int, default=DEFAULT_OVERLAP_ROWS)
    build.add_argument(
        "--test-case",
        choices=available_test_cases(),
        type=str.upper,
        help="Analytical test case for lab domains.",
    )
    build.add_argument("--rainfall-intensity", type=float, help="Rainfall intensity (mm/hr).")
    build.add_argument("--rainfall-duration", type=float, help="Rainfall duration (s).")
    build.add_argument("--drainage", type=float, help="Drainage capacity (mm/hr).")
    build.add_argument("--download-dir", help="Override the tile download directory.")


def _add_version_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the version subcommand."""
    subparsers.add_parser("version", help="Print the current version.")


def _definition_payload_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Translate build flags into a model definition payload."""
    payload: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "name": args.name,
        "domain_type": args.domain_type,
        "extent": list(args.extent) if args.extent else None,
        "duration": args.duration,
        "target_directory": args.directory,
        "resolution": args.resolution,
        "output_frequency": args.output_frequency,
        "decomposition": args.decompose,
        "overlap_rows": args.overlap,
        "test_case": args.test_case,
    }
    boundaries = {
        "rainfall_intensity": args.rainfall_intensity,
        "rainfall_duration": args.rainfall_duration,
        "drainage_rate": args.drainage,
    }
    boundaries = {key: value for key, value in boundaries.items() if value is not None}
    if boundaries:
        payload["boundaries"] = boundaries
    return {key: value for key, value in payload.items() if value is not None}


def _load_definition(args: argparse.Namespace, parser: argparse.ArgumentParser) -> ModelDefinition:
    """Return the model definition from ``--definition`` or from flags."""
    if args.definition:
        path = Path(args.definition)
        return ModelDefinition.from_mapping(load_model_definition(path), base_dir=path.parent)
    missing = [
        flag
        for flag, value in (
            ("--name", args.name),
            ("--extent", args.extent),
            ("--duration", args.duration),
            ("--directory", args.directory),
        )
        if value is None
    ]
    if missing:
        parser.error(f"build needs --definition or {', '.join(missing)}")
    return ModelDefinition.from_mapping(_definition_payload_from_args(args))


def _run_command(
    args: argparse.Namespace, settings: Settings, parser: argparse.ArgumentParser
) -> int:
    """Dispatch a parsed subcommand and return its exit code."""
    if args.command == "tiles":
        extent = Extent(*args.extent)
        if args.crs:
            extent = transform_extent(extent, args.crs, settings.crs)
        for name in tile_names_for_extent(extent, settings.tile_size):
            print(name)
        return 0
    if args.command == "mosaic":
        rasters = raster_service(settings)
        rasters.strict_orientation = args.strict
        sources = [Path(path) for path in args.sources]
        result = asyncio.run(rasters.merge(Path(args.output), sources))
        for skipped in result.skipped:
            LOGGER.warning("Skipped unreadable source %s.", skipped)
        LOGGER.info(
            "Mosaic written to %s (%dx%d at %g).",
            result.path,
            result.size_x,
            result.size_y,
            result.resolution,
        )
        return 0
    if args.command == "clip":
        rasters = raster_service(settings)
        clip = asyncio.run(
            rasters.clip(
                Path(args.source), Path(args.target), Extent(*args.extent), driver=args.driver
            )
        )
        if not clip.written:
            LOGGER.error("Extent does not overlap %s; nothing written.", args.source)
            return 1
        LOGGER.info("Clip written to %s (%dx%d).", clip.path, clip.size_x, clip.size_y)
        return 0
    if args.command == "divide":
        source = Path(args.source)
        output_dir = Path(args.output_dir) if args.output_dir else source.parent
        output_dir.mkdir(parents=True, exist_ok=True)
        suffix = source.suffix if source.suffix and source.suffix != ".vrt" else ".img"
        targets = [output_dir / f"{source.stem}_{index}{suffix}" for index in range(args.parts)]
        rasters = raster_service(settings)
        result = asyncio.run(rasters.divide(source, targets, args.overlap, driver=args.driver))
        for part in result.parts:
            LOGGER.info(
                "Band %d: rows %d-%d -> %s", part.index, part.row_start, part.row_end, part.target
            )
        return 0
    if args.command == "build":
        definition = _load_definition(args, parser)
        if args.download_dir:
            settings = settings.with_overrides(download_dir=Path(args.download_dir))
        output = run_build(definition, settings)
        LOGGER.info("Model configuration written to %s.", output.configuration)
        return 0
    parser.error(f"Unknown command: {args.command}")
    return 2


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="hydrodem",
        description="Terrain and model input builder for shallow-water flood models",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON on stderr.",
    )
    parser.add_argument(
        "--log-file",
        help="Optional path for JSON log output.",
    )
    parser.add_argument(
        "--settings",
        help="Settings JSON file (defaults to $HYDRODEM_SETTINGS or ./hydrodem.json).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_tiles_parser(subparsers)
    _add_mosaic_parser(subparsers)
    _add_clip_parser(subparsers)
    _add_divide_parser(subparsers)
    _add_build_parser(subparsers)
    _add_version_parser(subparsers)

    args = parser.parse_args(argv)
    log_file_value = getattr(args, "log_file", None)
    log_options = LogOptions(
        verbose=getattr(args, "verbose", 0) or 0,
        quiet=bool(getattr(args, "quiet", False)),
        log_file=Path(log_file_value) if log_file_value else None,
        json_console=bool(getattr(args, "log_json", False)),
    )
    configure_logging(log_options)

    if args.command == "version":
        print(__version__)
        return 0

    try:
        settings = load_settings(Path(args.settings) if args.settings else None)
        return _run_command(args, settings, parser)
    except (HydroDemError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1
