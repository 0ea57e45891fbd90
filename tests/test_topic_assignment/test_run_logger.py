"""
Purpose
-------
Unit tests for `topic_assignment.run_logger`: level thresholding, entry
construction, JSON and text formatting, destinations, and environment-driven
initialization with fallbacks.

Key behaviors
-------------
- Below-threshold events never reach timestamping, formatting or writing.
- `msg=None` and `context=None` normalize to "" and {}.
- JSON output falls back to `default=str` for non-serializable context.
- `initialize_logger` honors valid LOG_* variables and warns once per
  invalid value.

Conventions
-----------
- Time is patched at `topic_assignment.run_logger.dt.datetime`.
- File destinations live under `tmp_path`.

Downstream usage
----------------
Run with `pytest -q tests/test_topic_assignment`.
"""

import datetime as dt
import json
from pathlib import Path
from typing import List
from unittest.mock import MagicMock

import pytest
from pytest_mock import MockerFixture

from topic_assignment.run_logger import RunLogger, generate_run_id, initialize_logger

TEST_NOW = dt.datetime(2025, 1, 1, 12, 0, 0, tzinfo=dt.timezone.utc)
TEST_RUN_META: dict[str, str] = {"model_file": "model.bif"}

LOWER_LEVEL_TUPLES: List[tuple[str, str]] = [
    ("INFO", "DEBUG"),
    ("WARNING", "INFO"),
    ("ERROR", "WARNING"),
    ("ERROR", "DEBUG"),
]


def init_logger_for_test(
    log_level: str = "DEBUG", log_format: str = "json", log_dest: str = "stderr"
) -> RunLogger:
    return RunLogger(
        component_name="assign_topics",
        run_id="test_run_id",
        run_meta=TEST_RUN_META,
        log_level=log_level,
        log_format=log_format,
        log_dest=log_dest,
    )


def mock_datetime_now(mocker: MockerFixture) -> MagicMock:
    mock_dt: MagicMock = mocker.patch("topic_assignment.run_logger.dt.datetime")
    mock_dt.now.return_value = TEST_NOW
    return mock_dt


@pytest.mark.parametrize("log_level, message_level", LOWER_LEVEL_TUPLES)
def test_emit_drops_events_below_threshold(
    mocker: MockerFixture, log_level: str, message_level: str
) -> None:
    # Mocking and setup
    logger: RunLogger = init_logger_for_test(log_level=log_level)
    mock_format = mocker.patch.object(logger, "format_entry")
    mock_write = mocker.patch.object(logger, "write_entry")
    mock_dt: MagicMock = mock_datetime_now(mocker)

    logger.emit("topic_map_saved", message_level, "msg", {"k": "v"})

    # Method level assertions
    mock_dt.now.assert_not_called()
    mock_format.assert_not_called()
    mock_write.assert_not_called()


def test_emit_builds_entry_and_writes_once(mocker: MockerFixture) -> None:
    logger: RunLogger = init_logger_for_test()
    mock_format = mocker.patch.object(logger, "format_entry", return_value="formatted")
    mock_write = mocker.patch.object(logger, "write_entry")
    mock_datetime_now(mocker)

    logger.info("topic_data_cached")

    mock_format.assert_called_once_with(
        {
            "timestamp": "2025-01-01T12:00:00Z",
            "level": "INFO",
            "run_id": "test_run_id",
            "component": "assign_topics",
            "event": "topic_data_cached",
            "message": "",
            "run_meta": TEST_RUN_META,
            "context": {},
        }
    )
    mock_write.assert_called_once_with("formatted")


def test_level_shortcuts_forward_to_emit(mocker: MockerFixture) -> None:
    logger: RunLogger = init_logger_for_test()
    mock_emit = mocker.patch.object(logger, "emit")

    logger.debug("a")
    logger.warning("b", "message", {"k": 1})
    logger.error("c")

    assert [call.args for call in mock_emit.call_args_list] == [
        ("a", "DEBUG", None, None),
        ("b", "WARNING", "message", {"k": 1}),
        ("c", "ERROR", None, None),
    ]


def test_format_entry_json_falls_back_to_str(mocker: MockerFixture) -> None:
    logger: RunLogger = init_logger_for_test()
    mock_datetime_now(mocker)
    mock_write = mocker.patch.object(logger, "write_entry")

    logger.info("saving_topic_map", context={"path": Path("out.broad.json")})

    payload = json.loads(mock_write.call_args.args[0])
    assert payload["context"] == {"path": "out.broad.json"}
    assert payload["timestamp"] == "2025-01-01T12:00:00Z"


def test_format_entry_text_is_single_line(mocker: MockerFixture) -> None:
    logger: RunLogger = init_logger_for_test(log_format="text")
    mock_datetime_now(mocker)
    mock_write = mocker.patch.object(logger, "write_entry")

    logger.info("generating_topic_map", "Generating topic map", {"topics": 2})

    assert mock_write.call_args.args[0] == (
        "2025-01-01T12:00:00Z [INFO] assign_topics generating_topic_map - "
        "Generating topic map topics=2"
    )


def test_write_entry_appends_to_file(tmp_path: Path) -> None:
    dest: Path = tmp_path / "run.log"
    logger: RunLogger = init_logger_for_test(log_dest=str(dest))

    logger.info("first")
    logger.info("second")

    lines = dest.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["event"] for line in lines] == ["first", "second"]


def test_write_entry_defaults_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    init_logger_for_test().info("to_stderr")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["event"] == "to_stderr"


def test_initialize_logger_reads_valid_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "TEXT")
    monkeypatch.setenv("LOG_DEST", str(tmp_path / "run.log"))

    logger: RunLogger = initialize_logger("assign_topics", run_id="fixed")

    assert (logger.level, logger.format, logger.dest) == ("DEBUG", "text", str(tmp_path / "run.log"))
    assert logger.run_id == "fixed"
    assert logger.run_meta == {}
    assert (tmp_path / "run.log").read_text(encoding="utf-8") == ""


def test_initialize_logger_falls_back_and_warns(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "loud")
    monkeypatch.setenv("LOG_FORMAT", "xml")
    monkeypatch.setenv("LOG_DEST", str(tmp_path / "missing_dir" / "run.log"))

    logger: RunLogger = initialize_logger("assign_topics")

    assert (logger.level, logger.format, logger.dest) == ("INFO", "json", "stderr")
    events = [json.loads(line)["event"] for line in capsys.readouterr().err.splitlines()]
    assert events == ["fallback_log_level", "fallback_log_format", "fallback_log_dest"]


def test_generate_run_id_has_component_timestamp_and_pid(mocker: MockerFixture) -> None:
    mock_datetime_now(mocker)
    mocker.patch("topic_assignment.run_logger.os.getpid", return_value=4242)

    assert generate_run_id("assign_topics") == "assign_topics--20250101T120000Z--4242"
