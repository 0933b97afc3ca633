"""Model definition, domain preparation and model directory output."""

from __future__ import annotations

import asyncio
import logging
import shutil
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from hydrodem.acquisition import AcquisitionServices
from hydrodem.boundaries import DRAINAGE_FILENAME, RAINFALL_FILENAME, Boundaries
from hydrodem.contracts import validate_model_definition
from hydrodem.domain import DataSource, Domain, DomainRequest, DomainResult, DomainType
from hydrodem.domain import create_domain, parse_domain_type
from hydrodem.errors import HydroDemError, ModelError
from hydrodem.raster.extent import TILE_SIZE, Extent
from hydrodem.raster.service import RasterService

LOGGER = logging.getLogger(__name__)

DEFAULT_RESOLUTION = 2.0
DEFAULT_OVERLAP_ROWS = 2
DEFAULT_MANNING = 0.020
CONFIGURATION_FILENAME = "simulation.xml"
TOPOGRAPHY_DIR = "topography"
BOUNDARIES_DIR = "boundaries"
OUTPUT_DIR = "output"
DOCTYPE = (
    '<!DOCTYPE configuration PUBLIC "HiPIMS Configuration Schema 1.1" '
    '"http://www.lukesmith.org.uk/research/namespace/hipims/1.1/"[]>'
)
OUTPUT_TARGETS = (
    ("depth", "depth_dem_%t.img"),
    ("velocityX", "velX_dem_%t.img"),
    ("velocityY", "velY_dem_%t.img"),
    ("fsl", "fsl_dem_%t.img"),
    ("maxdepth", "maxdepth_dem_%t.img"),
)


@dataclass(frozen=True)
class ModelDefinition:
    """Everything needed to build one model directory."""

    name: str
    domain_type: DomainType
    extent: Extent
    duration: float
    target_directory: Path
    resolution: float = DEFAULT_RESOLUTION
    output_frequency: float | None = None
    decomposition: int = 1
    overlap_rows: int = DEFAULT_OVERLAP_ROWS
    test_case: str | None = None
    constants: Mapping[str, float] = field(default_factory=dict)
    boundaries: Boundaries = field(default_factory=Boundaries)
    source: str | None = None

    def __post_init__(self) -> None:
        if self.resolution <= 0:
            raise ValueError("resolution must be positive")
        if self.duration <= 0:
            raise ValueError("duration must be positive")
        if self.decomposition < 1:
            raise ValueError("decomposition must be at least 1")
        if self.overlap_rows < 0:
            raise ValueError("overlap_rows must be non-negative")

    @property
    def frequency(self) -> float:
        """Output interval; defaults to a single output at the end of the run."""
        return self.output_frequency or self.duration

    @property
    def description_source(self) -> str:
        return self.source or self.domain_type.value

    @classmethod
    def from_mapping(
        cls, payload: Mapping[str, Any], *, base_dir: Path | None = None
    ) -> "ModelDefinition":
        """Build a definition from validated JSON data.

        Relative target directories resolve against ``base_dir``.
        """
        validate_model_definition(payload)
        target = Path(payload["target_directory"])
        if base_dir is not None and not target.is_absolute():
            target = base_dir / target
        boundaries = payload.get("boundaries", {})
        return cls(
            name=payload["name"],
            domain_type=parse_domain_type(payload["domain_type"]),
            extent=Extent(*payload["extent"]),
            duration=float(payload["duration"]),
            target_directory=target,
            resolution=float(payload.get("resolution", DEFAULT_RESOLUTION)),
            output_frequency=payload.get("output_frequency"),
            decomposition=int(payload.get("decomposition", 1)),
            overlap_rows=int(payload.get("overlap_rows", DEFAULT_OVERLAP_ROWS)),
            test_case=payload.get("test_case"),
            constants={key: float(value) for key, value in payload.get("constants", {}).items()},
            boundaries=Boundaries(
                rainfall_intensity=float(boundaries.get("rainfall_intensity", 0.0)),
                rainfall_duration=float(boundaries.get("rainfall_duration", 0.0)),
                drainage_rate=float(boundaries.get("drainage_rate", 0.0)),
            ),
            source=payload.get("source"),
        )


@dataclass(frozen=True)
class DomainPart:
    """Data sources of one sub-domain in the written configuration."""

    index: int
    sources: tuple[DataSource, ...]


@dataclass(frozen=True)
class ModelOutput:
    """Files written for a model."""

    directory: Path
    configuration: Path
    rasters: tuple[Path, ...]
    boundaries: tuple[Path, ...]


def part_filename(filename: str, index: int) -> str:
    """Return ``filename`` with the part index before its suffix."""
    stem, dot, suffix = filename.rpartition(".")
    return f"{stem}_{index}.{suffix}" if dot else f"{filename}_{index}"


def _reset_directory(target: Path) -> None:
    """Create an empty model directory, replacing a previous model only."""
    if target.exists():
        if not target.is_dir():
            raise ModelError(f"Model target {target} exists and is not a directory.")
        if (target / CONFIGURATION_FILENAME).exists():
            resolved = target.resolve()
            if resolved == Path(resolved.anchor):
                raise ModelError(f"Refusing to clear {target}.")
            LOGGER.info("Removing previous model at %s.", target)
            shutil.rmtree(target)
        elif any(target.iterdir()):
            raise ModelError(
                f"Directory {target} is not empty and does not hold a previous model."
            )
    for child in ("", TOPOGRAPHY_DIR, BOUNDARIES_DIR, OUTPUT_DIR):
        (target / child).mkdir(parents=True, exist_ok=True)


def build_configuration(
    definition: ModelDefinition,
    parts: list[DomainPart],
    *,
    manning_coefficient: float,
    boundary_files: list[str],
) -> ET.Element:
    """Return the ``simulation.xml`` element tree for the model."""
    root = ET.Element("configuration")
    metadata = ET.SubElement(root, "metadata")
    ET.SubElement(metadata, "name").text = definition.name
    ET.SubElement(metadata, "description").text = (
        f"Automatically built {definition.description_source} model."
    )

    execution = ET.SubElement(root, "execution")
    executor = ET.SubElement(execution, "executor", name="OpenCL")
    ET.SubElement(executor, "parameter", name="deviceFilter", value="GPU,CPU")

    simulation = ET.SubElement(root, "simulation")
    ET.SubElement(simulation, "parameter", name="duration", value=f"{definition.duration:g}")
    ET.SubElement(
        simulation, "parameter", name="outputFrequency", value=f"{definition.frequency:g}"
    )
    ET.SubElement(simulation, "parameter", name="floatingPointPrecision", value="double")

    domain_set = ET.SubElement(simulation, "domainSet")
    for part in parts:
        domain = ET.SubElement(
            domain_set, "domain", type="cartesian", deviceNumber=str(part.index + 1)
        )
        data = ET.SubElement(
            domain, "data", sourceDir=f"{TOPOGRAPHY_DIR}/", targetDir=f"{OUTPUT_DIR}/"
        )
        sources = list(part.sources)
        manning = DataSource("constant", "manningCoefficient", f"{manning_coefficient:.3f}")
        entries = [sources[0], manning]
        entries.extend(sources[1:])
        for source in entries:
            ET.SubElement(
                data, "dataSource", type=source.type, value=source.value, source=source.source
            )
        suffix = f"_{part.index}" if len(parts) > 1 else ""
        for value, target in OUTPUT_TARGETS:
            ET.SubElement(
                data,
                "dataTarget",
                type="raster",
                value=value,
                format="HFA",
                target=target.replace("_dem_", f"_dem{suffix}_"),
            )
        scheme = ET.SubElement(domain, "scheme", name="Godunov")
        ET.SubElement(scheme, "parameter", name="courantNumber", value="0.50")
        ET.SubElement(scheme, "parameter", name="groupSize", value="32x8")
        conditions = ET.SubElement(domain, "boundaryConditions", sourceDir=f"{BOUNDARIES_DIR}/")
        if RAINFALL_FILENAME in boundary_files:
            ET.SubElement(
                conditions,
                "timeseries",
                type="atmospheric",
                name="Rainfall",
                value="rain-intensity",
                source=RAINFALL_FILENAME,
            )
        if DRAINAGE_FILENAME in boundary_files:
            ET.SubElement(
                conditions,
                "timeseries",
                type="atmospheric",
                name="Drainage",
                value="loss-rate",
                source=DRAINAGE_FILENAME,
            )
    return root


def write_configuration(path: Path, root: ET.Element) -> Path:
    """Write the configuration with its XML declaration and doctype."""
    ET.indent(root)
    body = ET.tostring(root, encoding="unicode")
    path.write_text(f'<?xml version="1.0"?>\n{DOCTYPE}\n{body}\n', encoding="utf-8")
    return path


class Model:
    """Prepare a domain for a definition and write the model directory."""

    def __init__(
        self,
        definition: ModelDefinition,
        *,
        rasters: RasterService,
        work_directory: Path,
        acquisition: AcquisitionServices | None = None,
        tile_size: float = TILE_SIZE,
    ) -> None:
        self.definition = definition
        self.rasters = rasters
        self.work_directory = Path(work_directory)
        self.acquisition = acquisition
        self.tile_size = tile_size
        self.domain: Domain | None = None
        self.prepared: DomainResult | None = None

    async def prepare(self) -> DomainResult:
        """Create the domain for the definition and prepare its rasters."""
        definition = self.definition
        extent = definition.extent.snap_to_grid(definition.resolution)
        LOGGER.info(
            "Preparing %s domain for model %s.", definition.domain_type.value, definition.name
        )
        request = DomainRequest(
            name=definition.name,
            extent=extent,
            resolution=definition.resolution,
            directory=self.work_directory,
            constants=dict(definition.constants),
            test_case=definition.test_case,
        )
        self.domain = create_domain(
            definition.domain_type,
            request,
            rasters=self.rasters,
            acquisition=self.acquisition,
            tile_size=self.tile_size,
        )
        self.prepared = await self.domain.prepare()
        return self.prepared

    async def write(self) -> ModelOutput:
        """Write rasters, configuration and boundaries into the target directory."""
        if self.domain is None or self.prepared is None:
            raise ModelError("The model domain has not been prepared.")
        definition = self.definition
        target = definition.target_directory
        LOGGER.info("Writing model files to %s...", target)
        await asyncio.to_thread(_reset_directory, target)

        sources = self.domain.data_sources()
        try:
            parts, rasters = await self._write_rasters(target / TOPOGRAPHY_DIR, sources)
        except HydroDemError as exc:
            raise ModelError(f"Model rasters could not be written: {exc}") from exc

        boundary_paths = await asyncio.to_thread(
            definition.boundaries.write, definition.duration, target / BOUNDARIES_DIR
        )
        manning = self.prepared.manning_coefficient
        root = build_configuration(
            definition,
            parts,
            manning_coefficient=DEFAULT_MANNING if manning is None else manning,
            boundary_files=[path.name for path in boundary_paths],
        )
        configuration = await asyncio.to_thread(
            write_configuration, target / CONFIGURATION_FILENAME, root
        )
        LOGGER.info("Model %s written.", definition.name)
        return ModelOutput(
            directory=target,
            configuration=configuration,
            rasters=tuple(rasters),
            boundaries=tuple(boundary_paths),
        )

    async def _write_rasters(
        self, directory: Path, sources: list[DataSource]
    ) -> tuple[list[DomainPart], list[Path]]:
        """Copy or divide every raster source into the topography directory."""
        count = self.definition.decomposition
        copies = [source for source in sources if source.copy_from is not None]
        if count == 1:
            copied = [
                await asyncio.to_thread(
                    shutil.copyfile, source.copy_from, directory / source.source
                )
                for source in copies
            ]
            return [DomainPart(0, tuple(sources))], [Path(path) for path in copied]

        written: list[Path] = []
        for source in copies:
            targets = [directory / part_filename(source.source, index) for index in range(count)]
            LOGGER.info("Dividing %s into %d domains.", source.source, count)
            result = await self.rasters.divide(
                source.copy_from, targets, self.definition.overlap_rows
            )
            written.extend(part.target for part in result.parts)
        parts = []
        for index in range(count):
            part_sources = tuple(
                DataSource(source.type, source.value, part_filename(source.source, index))
                if source.copy_from is not None
                else source
                for source in sources
            )
            parts.append(DomainPart(index, part_sources))
        return parts, written
