from __future__ import annotations

import json
from pathlib import Path

import pytest

from hydrodem import contracts
from hydrodem.errors import ConfigError


def _load_fixture(name: str) -> dict:
    path = Path(__file__).parent / "fixtures" / name
    return json.loads(path.read_text(encoding="utf-8"))


def test_model_definition_schema() -> None:
    contracts.validate_model_definition(_load_fixture("model_definition.json"))


def test_model_definition_rejects_unknown_fields() -> None:
    payload = _load_fixture("model_definition.json")
    payload["colour"] = "blue"

    with pytest.raises(ConfigError, match="<root>"):
        contracts.validate_model_definition(payload)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("domain_type", "osgb"),
        ("duration", 0),
        ("decomposition", 0),
        ("overlap_rows", -1),
        ("extent", [0, 0, 1, "north"]),
    ],
)
def test_model_definition_rejects_bad_values(field: str, value: object) -> None:
    payload = _load_fixture("model_definition.json")
    payload[field] = value

    with pytest.raises(ConfigError, match=field):
        contracts.validate_model_definition(payload)


def test_model_definition_rejects_negative_rainfall() -> None:
    payload = _load_fixture("model_definition.json")
    payload["boundaries"]["rainfall_intensity"] = -5

    with pytest.raises(ConfigError, match="boundaries/rainfall_intensity"):
        contracts.validate_model_definition(payload)


def test_model_definition_requires_name() -> None:
    payload = _load_fixture("model_definition.json")
    del payload["name"]

    with pytest.raises(ConfigError, match="'name' is a required property"):
        contracts.validate_model_definition(payload)


def test_load_model_definition(tmp_path: Path) -> None:
    path = tmp_path / "model.json"
    path.write_text(json.dumps(_load_fixture("model_definition.json")), encoding="utf-8")

    assert contracts.load_model_definition(path)["name"] == "Romsey"


def test_load_model_definition_errors(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    listing = tmp_path / "list.json"
    listing.write_text("[]", encoding="utf-8")

    with pytest.raises(ConfigError, match="Could not read"):
        contracts.load_model_definition(broken)
    with pytest.raises(ConfigError, match="JSON object"):
        contracts.load_model_definition(listing)
    with pytest.raises(ConfigError, match="Could not read"):
        contracts.load_model_definition(tmp_path / "missing.json")
