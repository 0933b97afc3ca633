from __future__ import annotations

import json
import logging
from pathlib import Path

from hydrodem.logging_utils import (
    HumanFormatter,
    JsonFormatter,
    LogOptions,
    configure_logging,
    context_logger,
)


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.makeLogRecord({"msg": message, "levelname": "INFO", "name": "hydrodem.t"})
    record.__dict__.update(extra)
    return record


def test_configure_logging_writes_json(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "hydrodem.jsonl"
    configure_logging(LogOptions(log_file=log_path))
    logger = logging.getLogger("hydrodem.test")
    logger.info("hello", extra={"tile": "SU10"})
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert lines
    payload = json.loads(lines[-1])
    assert payload["message"] == "hello"
    assert payload["level"] == "info"
    assert payload["extra"]["tile"] == "SU10"
    assert payload["timestamp"].endswith("Z")


def test_configure_logging_levels() -> None:
    root = configure_logging(LogOptions(quiet=True))
    assert root.handlers[0].level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING

    root = configure_logging(LogOptions(verbose=2))
    assert root.handlers[0].level == logging.DEBUG
    assert logging.getLogger("rasterio").level == logging.DEBUG

    root = configure_logging(LogOptions())
    assert len(root.handlers) == 1
    assert root.handlers[0].level == logging.INFO
    assert isinstance(root.handlers[0].formatter, HumanFormatter)


def test_json_console_option() -> None:
    root = configure_logging(LogOptions(json_console=True))

    assert isinstance(root.handlers[0].formatter, JsonFormatter)


def test_human_formatter_prefixes_tile() -> None:
    formatter = HumanFormatter("%(levelname)s: %(message)s")

    assert formatter.format(_record("Tile state", tile="SU10")) == "[SU10] INFO: Tile state"
    assert formatter.format(_record("Done")) == "INFO: Done"


def test_json_formatter_serializes_paths() -> None:
    payload = json.loads(JsonFormatter().format(_record("wrote", path=Path("a/b.img"))))

    assert payload["extra"] == {"path": "a/b.img"}
    assert "exception" not in payload


def test_human_formatter_joins_domain_and_tile() -> None:
    formatter = HumanFormatter("%(message)s")
    record = _record("Clipped", domain="romsey", tile="SU31")

    assert formatter.format(record) == "[romsey:SU31] Clipped"
    assert formatter.format(_record("Mosaic", domain="romsey")) == "[romsey] Mosaic"


def test_context_logger_keeps_call_extras() -> None:
    records: list[logging.LogRecord] = []

    class Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    logger = logging.getLogger("hydrodem.test.context")
    logger.setLevel(logging.DEBUG)
    handler = Collect()
    logger.addHandler(handler)
    try:
        log = context_logger(logger, tile="SU10")
        log.info("Downloading")
        log.warning("Slow", extra={"attempt": 2})
    finally:
        logger.removeHandler(handler)

    assert [record.tile for record in records] == ["SU10", "SU10"]
    assert records[1].attempt == 2
    assert HumanFormatter("%(message)s").format(records[0]) == "[SU10] Downloading"
