"""
Purpose
-------
Structured, run-scoped logging for the topic assignment pipeline. One logger
is created per process and handed to every pipeline step through `RunData`,
so no step reaches for a module-level logger.

Key behaviors
-------------
- Emits one structured entry per call (`emit`), with `debug`, `info`,
  `warning` and `error` shortcuts.
- Drops entries below the configured level threshold.
- Serializes entries as JSON (default) or as a single human-readable line.
- Writes to STDERR or appends to a file.
- Reads LOG_LEVEL, LOG_FORMAT and LOG_DEST in `initialize_logger` and falls
  back to defaults, with one warning per invalid value.

Conventions
-----------
- Event names are snake_case (e.g., `topic_data_cached`, `topic_map_saved`).
- Timestamps are UTC ISO-8601 with a trailing "Z".
- `run_meta` is fixed for the run; `context` is small and JSON-friendly.

Downstream usage
----------------
Call `initialize_logger("assign_topics", run_meta={...})` once in the CLI
entry point and store the result on `RunData.logger`.
"""

import datetime as dt
import json
import os
import sys
from typing import TypedDict

LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
FORMATS: set[str] = {"json", "text"}
DEFAULT_LEVEL: str = "INFO"
DEFAULT_FORMAT: str = "json"
DEFAULT_DEST: str = "stderr"


class LogEntry(TypedDict):
    """
    Purpose
    -------
    Shape of a single serialized log entry.

    Fields
    ------
    timestamp : str
        UTC ISO-8601 timestamp with a "Z" suffix.
    level : str
        One of "DEBUG", "INFO", "WARNING", "ERROR".
    run_id : str
        Identifier shared by every entry of one run.
    component : str
        Name of the emitting component.
    event : str
        Snake_case event name.
    message : str
        Human-readable message.
    run_meta : dict
        Run-scoped metadata fixed at initialization.
    context : dict
        Event-specific payload.
    """

    timestamp: str
    level: str
    run_id: str
    component: str
    event: str
    message: str
    run_meta: dict
    context: dict


class RunLogger:
    """
    Purpose
    -------
    Level-filtered structured logger bound to one pipeline run.

    Parameters
    ----------
    component_name : str
        Label written into every entry.
    run_id : str
        Identifier correlating entries from the same run.
    run_meta : dict
        Run-scoped metadata (e.g., model and data paths).
    log_level : str, default="INFO"
        Minimum level that is written.
    log_format : str, default="json"
        "json" or "text".
    log_dest : str, default="stderr"
        "stderr" or a file path opened in append mode.

    Notes
    -----
    - Serialization never raises; non-JSON values are stringified.
    """

    def __init__(
        self,
        component_name: str,
        run_id: str,
        run_meta: dict,
        log_level: str = DEFAULT_LEVEL,
        log_format: str = DEFAULT_FORMAT,
        log_dest: str = DEFAULT_DEST,
    ) -> None:
        self.component_name = component_name
        self.run_id = run_id
        self.run_meta = run_meta
        self.level = log_level
        self.format = log_format
        self.dest = log_dest

    def emit(
        self,
        event: str,
        level: str = "INFO",
        msg: str | None = None,
        context: dict | None = None,
    ) -> None:
        """
        Build, serialize and write one entry if `level` passes the threshold.

        Parameters
        ----------
        event : str
            Snake_case event name.
        level : str, default="INFO"
            Severity of this entry.
        msg : str, optional
            Human-readable message; empty when omitted.
        context : dict, optional
            Event payload; empty when omitted.

        Returns
        -------
        None
        """

        if LEVELS[level] < LEVELS[self.level]:
            return
        entry: LogEntry = {
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "run_id": self.run_id,
            "component": self.component_name,
            "event": event,
            "message": msg or "",
            "run_meta": self.run_meta,
            "context": context or {},
        }
        self.write_entry(self.format_entry(entry))

    def debug(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event, "DEBUG", msg, context)

    def info(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event, "INFO", msg, context)

    def warning(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event, "WARNING", msg, context)

    def error(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event, "ERROR", msg, context)

    def format_entry(self, entry: LogEntry) -> str:
        """
        Serialize an entry as a JSON object or a single text line.

        Parameters
        ----------
        entry : LogEntry
            Entry produced by `emit`.

        Returns
        -------
        str
            The serialized entry without a trailing newline.
        """

        if self.format == "text":
            context_str = " ".join(f"{key}={value}" for key, value in entry["context"].items())
            return (
                f"{entry['timestamp']} [{entry['level']}] "
                f"{entry['component']} {entry['event']} - {entry['message']} "
                f"{context_str}"
            ).rstrip()
        try:
            return json.dumps(entry, ensure_ascii=False)
        except (TypeError, ValueError):
            return json.dumps(entry, ensure_ascii=False, default=str)

    def write_entry(self, formatted_entry: str) -> None:
        if self.dest == "stderr":
            print(formatted_entry, file=sys.stderr)
        else:
            with open(self.dest, "a", encoding="utf-8") as f:
                f.write(formatted_entry + "\n")


def initialize_logger(
    component_name: str,
    run_id: str | None = None,
    run_meta: dict | None = None,
) -> RunLogger:
    """
    Build a `RunLogger` from LOG_LEVEL, LOG_FORMAT and LOG_DEST.

    Parameters
    ----------
    component_name : str
        Label for the emitting component; also prefixes generated run ids.
    run_id : str, optional
        Explicit run identifier; generated when omitted.
    run_meta : dict, optional
        Run-scoped metadata; empty when omitted.

    Returns
    -------
    RunLogger
        Logger configured from the environment.

    Notes
    -----
    - Each invalid environment value is replaced by its default and reported
      with a WARNING entry once the logger exists.
    """

    level, log_format, log_dest, invalid = read_logging_env()
    logger = RunLogger(
        component_name=component_name,
        run_id=run_id or generate_run_id(component_name),
        run_meta=run_meta or {},
        log_level=level,
        log_format=log_format,
        log_dest=log_dest,
    )
    for env_var, (value, default) in invalid.items():
        logger.warning(
            f"fallback_{env_var.lower()}",
            msg=f"Invalid {env_var} env var; defaulting to {default}",
            context={"invalid_value": value},
        )
    return logger


def read_logging_env() -> tuple[str, str, str, dict[str, tuple[str, str]]]:
    """
    Read and validate the logging environment variables.

    Returns
    -------
    tuple[str, str, str, dict[str, tuple[str, str]]]
        `(level, format, dest, invalid)` where `invalid` maps each rejected
        variable name to `(rejected_value, default_used)`.

    Notes
    -----
    - A destination other than "stderr" must be openable in append mode.
    """

    invalid: dict[str, tuple[str, str]] = {}

    level: str = os.environ.get("LOG_LEVEL", DEFAULT_LEVEL).upper()
    if level not in LEVELS:
        invalid["LOG_LEVEL"] = (level, DEFAULT_LEVEL)
        level = DEFAULT_LEVEL

    log_format: str = os.environ.get("LOG_FORMAT", DEFAULT_FORMAT).lower()
    if log_format not in FORMATS:
        invalid["LOG_FORMAT"] = (log_format, DEFAULT_FORMAT)
        log_format = DEFAULT_FORMAT

    log_dest: str = os.environ.get("LOG_DEST", DEFAULT_DEST)
    if log_dest.lower() == DEFAULT_DEST:
        log_dest = DEFAULT_DEST
    else:
        try:
            with open(log_dest, "a", encoding="utf-8"):
                pass
        except OSError:
            invalid["LOG_DEST"] = (log_dest, DEFAULT_DEST)
            log_dest = DEFAULT_DEST

    return level, log_format, log_dest, invalid


def generate_run_id(component_name: str) -> str:
    """Return `<component>--<UTC timestamp>--<pid>`."""

    timestamp: str = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{component_name}--{timestamp}--{os.getpid()}"
