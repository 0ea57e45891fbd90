"""
Purpose
-------
Central configuration for the topic assignment pipeline: the fixed
probability threshold, output file suffixes, number formatting precision,
and the CLI usage text.

Key behaviors
-------------
- Define `DEFAULT_THRESHOLD`, the minimum state-1 probability for a document
  to be listed under a topic.
- Define the suffixes appended to the CLI `output_name` to build the cached
  topic table path, its ARFF relation name, and the report path.
- Expose `LEGACY_REPORT_ENV_VAR`, which switches the report to the historical
  `.braod.json` filename for consumers that depend on it.

Conventions
-----------
- Constants are treated as read-only; callers should not mutate them at
  runtime.
- Environment variables may be provided through a `.env` file, which the CLI
  loads with `python-dotenv` before reading them.

Downstream usage
----------------
Import from `topic_assignment.assign_topics` and `topic_assignment.run_data`
to share a single source of truth for file naming and thresholds.
"""

DEFAULT_THRESHOLD: float = 0.5

TOPIC_DATA_SUFFIX: str = ".broad.arff"

TOPIC_RELATION_SUFFIX: str = "-topics"

REPORT_SUFFIX: str = ".broad.json"

LEGACY_REPORT_SUFFIX: str = ".braod.json"

LEGACY_REPORT_ENV_VAR: str = "ASSIGN_TOPICS_LEGACY_REPORT_NAME"

TRUTHY_ENV_VALUES: set[str] = {"1", "true", "yes", "on"}

TOPIC_DATA_DECIMALS: int = 2

REPORT_DECIMALS: int = 2

COMPONENT_NAME: str = "assign_topics"

USAGE_TEXT: str = (
    "AssignTopics model_file data_file outputName\n"
    "\n"
    "E.g. AssignTopics model.bif data.arff output\n"
    "The output file will be output.broad.json and output.broad.arff"
)
