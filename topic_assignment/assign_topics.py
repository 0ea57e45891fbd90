"""
Purpose
-------
Command-line entry point that assigns latent tree model topics to documents:
compute (or reload) per-document topic probabilities, rank documents per
topic, and write the topic report.

Key behaviors
-------------
- `main` loads `.env`, reads `model_file data_file output_name` from the
  command line, builds the run logger and `RunData`, and calls `run`.
- With fewer than three arguments, prints the usage text to STDOUT, writes
  nothing, and returns exit status 2.
- `run` obtains the topic table, builds the topic-to-document map with the
  configured threshold, and writes `<output_name>.broad.json` (or
  `.braod.json` when `ASSIGN_TOPICS_LEGACY_REPORT_NAME` is set).

Conventions
-----------
- Errors are not caught; a failing run ends with the exception's traceback.
- Extra arguments beyond the third are ignored.

Downstream usage
----------------
Installed as the `assign-topics` console script; also runnable with
`python -m topic_assignment.assign_topics`.
"""

import sys
from typing import List, Sequence

from dotenv import load_dotenv

from topic_assignment.assign_topics_config import COMPONENT_NAME, USAGE_TEXT
from topic_assignment.run_data import RunData, report_suffix_from_env
from topic_assignment.run_logger import RunLogger, initialize_logger
from topic_assignment.topic_map import generate_topic_to_document_map, write_topic_map
from topic_assignment.topic_table import TopicTableResult, obtain_topic_table

USAGE_EXIT_CODE: int = 2


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run the topic assignment pipeline from command-line arguments.

    Parameters
    ----------
    argv : Sequence[str], optional
        Arguments without the program name; defaults to `sys.argv[1:]`.

    Returns
    -------
    int
        0 on success, `USAGE_EXIT_CODE` when arguments are missing.
    """

    args: List[str] = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 3:
        print_usage()
        return USAGE_EXIT_CODE

    load_dotenv()
    model_file, data_file, output_name = args[:3]
    logger: RunLogger = initialize_logger(
        component_name=COMPONENT_NAME,
        run_meta={"model_file": model_file, "data_file": data_file, "output_name": output_name},
    )
    run_data = RunData(
        model_file=model_file,
        data_file=data_file,
        output_name=output_name,
        logger=logger,
        report_suffix=report_suffix_from_env(),
    )
    run(run_data)
    return 0


def print_usage() -> None:
    print(USAGE_TEXT)


def run(run_data: RunData) -> TopicTableResult:
    """
    Produce the topic report for one run.

    Parameters
    ----------
    run_data : RunData
        Inputs, output naming, threshold and logger.

    Returns
    -------
    ComputedTopicTable or CachedTopicTable
        The table the report was generated from.
    """

    logger: RunLogger = run_data.logger
    result: TopicTableResult = obtain_topic_table(run_data)

    logger.info("generating_topic_map", msg="Generating topic map")
    topic_map = generate_topic_to_document_map(result.table, run_data.threshold)

    logger.info(
        "saving_topic_map",
        msg="Saving topic map",
        context={"path": run_data.report_file, "source": type(result).__name__},
    )
    write_topic_map(topic_map, run_data.report_file)
    return result


if __name__ == "__main__":
    sys.exit(main())
