"""
Purpose
-------
Execution context passed through the topic assignment pipeline: input paths,
output naming, the probability threshold, and the injected run logger.

Key behaviors
-------------
- Read-only holder; derived output paths are computed from `output_name`.
- `report_suffix_from_env` chooses between the corrected `.broad.json`
  report name and the historical `.braod.json` spelling.

Conventions
-----------
- `output_name` is a path prefix; outputs are written next to it.
- The logger is held by reference and shared by every step of the run.

Downstream usage
----------------
Build once in `assign_topics.main` and pass to `topic_table` and
`assign_topics.run`.
"""

import os
from dataclasses import dataclass

from topic_assignment.assign_topics_config import (
    DEFAULT_THRESHOLD,
    LEGACY_REPORT_ENV_VAR,
    LEGACY_REPORT_SUFFIX,
    REPORT_SUFFIX,
    TOPIC_DATA_SUFFIX,
    TOPIC_RELATION_SUFFIX,
    TRUTHY_ENV_VALUES,
)
from topic_assignment.run_logger import RunLogger


@dataclass(frozen=True)
class RunData:
    """
    Purpose
    -------
    Bundle the run's inputs, configuration and logger.

    Parameters
    ----------
    model_file : str
        Path to the trained model (BIF).
    data_file : str
        Path to the document data (ARFF).
    output_name : str
        Prefix for every output file.
    logger : RunLogger
        Structured logger for this run.
    threshold : float, default=DEFAULT_THRESHOLD
        Minimum state-1 probability for a document to be listed.
    report_suffix : str, default=REPORT_SUFFIX
        Suffix of the topic report file.
    """

    model_file: str
    data_file: str
    output_name: str
    logger: RunLogger
    threshold: float = DEFAULT_THRESHOLD
    report_suffix: str = REPORT_SUFFIX

    @property
    def topic_data_file(self) -> str:
        return self.output_name + TOPIC_DATA_SUFFIX

    @property
    def topic_relation_name(self) -> str:
        return self.output_name + TOPIC_RELATION_SUFFIX

    @property
    def report_file(self) -> str:
        return self.output_name + self.report_suffix


def report_suffix_from_env() -> str:
    """Return `LEGACY_REPORT_SUFFIX` when the legacy-name env var is truthy."""

    if os.environ.get(LEGACY_REPORT_ENV_VAR, "").strip().lower() in TRUTHY_ENV_VALUES:
        return LEGACY_REPORT_SUFFIX
    return REPORT_SUFFIX
