"""
Purpose
-------
Obtain the Topic Probability Table for a run, either by scoring the input
data against the model or by reloading the table cached by an earlier run.

Key behaviors
-------------
- `obtain_topic_table` checks for `<output_name>.broad.arff`. If it exists,
  the table is reloaded and returned as `CachedTopicTable`; otherwise the
  model and data are loaded, the data is binarized, the model synchronized,
  the topics scored, the table written to the cache path, and the result
  returned as `ComputedTopicTable`.
- Both variants carry the same `Dataset` shape, so mapping and reporting do
  not depend on which path produced the table.

Conventions
-----------
- The cache is written with relation name `<output_name>-topics` and numbers
  rounded to two decimals; a reloaded table therefore differs from a fresh
  one only by that rounding.
- The cached path still loads the model file, so a missing or malformed
  model fails both paths alike.
- No error is caught here; parse, inference and I/O errors propagate.

Downstream usage
----------------
Called once per run by `assign_topics.run`.
"""

import os
from dataclasses import dataclass
from typing import Union

from topic_assignment.arff_io import write_arff
from topic_assignment.assign_topics_config import TOPIC_DATA_DECIMALS
from topic_assignment.ltm_model import LatentTreeModel, read_model_and_data
from topic_assignment.run_data import RunData
from topic_assignment.run_logger import RunLogger
from topic_assignment.topic_data import Dataset, prepare_data
from topic_assignment.topic_scoring import score_topics


@dataclass(frozen=True)
class ComputedTopicTable:
    """Topic table scored in this run and written to the cache path."""

    table: Dataset


@dataclass(frozen=True)
class CachedTopicTable:
    """Topic table reloaded from the cache path of an earlier run."""

    table: Dataset


TopicTableResult = Union[ComputedTopicTable, CachedTopicTable]


def obtain_topic_table(run_data: RunData) -> TopicTableResult:
    """
    Return the run's Topic Probability Table, computing it only if uncached.

    Parameters
    ----------
    run_data : RunData
        Paths, output name and logger for this run.

    Returns
    -------
    ComputedTopicTable or CachedTopicTable
        The table, tagged with the path that produced it.

    Raises
    ------
    FileNotFoundError
        If the model file, or the data file on the compute path, is missing.
    ValueError
        If any input file is malformed.
    """

    logger: RunLogger = run_data.logger
    topic_data_file: str = run_data.topic_data_file

    if os.path.exists(topic_data_file):
        logger.info(
            "topic_data_cached",
            msg=f"Topic data file ({topic_data_file}) exists. Skipped computing topic data.",
            context={"topic_data_file": topic_data_file},
        )
        _, table = read_model_and_data(run_data.model_file, topic_data_file)
        return CachedTopicTable(table)

    _, table = read_model_and_compute_topic_data(
        run_data.model_file,
        run_data.data_file,
        run_data.topic_relation_name,
        logger,
    )

    logger.info("topic_data_saving", msg="Saving topic data", context={"path": topic_data_file})
    write_arff(table, run_data.topic_relation_name, topic_data_file, TOPIC_DATA_DECIMALS)
    return ComputedTopicTable(table)


def read_model_and_compute_topic_data(
    model_file: str,
    data_file: str,
    relation_name: str,
    logger: RunLogger,
) -> tuple[LatentTreeModel, Dataset]:
    """
    Load model and data, then score every document on every latent variable.

    Parameters
    ----------
    model_file : str
        Path to the BIF model.
    data_file : str
        Path to the ARFF document data.
    relation_name : str
        Name for the resulting topic table.
    logger : RunLogger
        Run logger.

    Returns
    -------
    tuple[LatentTreeModel, Dataset]
        The synchronized model and the Topic Probability Table over its
        internal variables.
    """

    logger.info("reading_model_and_data", msg="Reading model and data")
    model, data = read_model_and_data(model_file, data_file)
    logger.debug(
        "model_and_data_read",
        context={
            "variables": len(model.variables),
            "instances": data.instance_count,
            "columns": len(data.variables),
        },
    )

    logger.info("binarizing_data", msg="Binarizing data")
    binary_data: Dataset = prepare_data(model, data)
    if model.unobserved_variables:
        logger.warning(
            "manifest_variables_unobserved",
            msg="Some model variables have no matching data column",
            context={"count": len(model.unobserved_variables)},
        )

    variables = model.internal_variables()
    logger.info(
        "computing_topic_distribution",
        msg="Computing topic distribution",
        context={"topics": len(variables)},
    )
    table: Dataset = score_topics(model, binary_data, variables, relation_name)
    return model, table
