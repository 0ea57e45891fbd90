"""
Purpose
-------
Score documents against a synchronized latent tree model: compute posterior
state distributions of the requested latent variables per document and build
the Topic Probability Table from their state-1 probabilities.

Key behaviors
-------------
- `compute_probabilities` runs `pgmpy` belief propagation once per distinct
  evidence row and returns, per instance, one distribution per requested
  variable together with the instance weight.
- `score_topics` keeps the probability of state index 1 ("topic present") of
  each distribution and returns it as a `Dataset` over the requested
  variables, preserving row order and weights.

Conventions
-----------
- Evidence is taken only from `model.observed_columns`; a value of 1 selects
  the model variable's second state, anything else its first.
- Inference failures raised by `pgmpy` propagate unmodified.

Downstream usage
----------------
Called by `topic_table.read_model_and_compute_topic_data` after
`topic_data.prepare_data` has synchronized the model.
"""

from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from pgmpy.inference import BeliefPropagation

from topic_assignment.ltm_model import LatentTreeModel
from topic_assignment.topic_data import Dataset, Variable

ACTIVE_STATE_INDEX: int = 1


def compute_probabilities(
    model: LatentTreeModel,
    data: Dataset,
    variables: Sequence[Variable],
) -> List[tuple[List[np.ndarray], float]]:
    """
    Compute posterior state distributions of `variables` for every instance.

    Parameters
    ----------
    model : LatentTreeModel
        Model already synchronized with `data`.
    data : Dataset
        Binarized data; one instance per row.
    variables : Sequence[Variable]
        Variables to query, typically the model's internal variables.

    Returns
    -------
    list[tuple[list[numpy.ndarray], float]]
        One entry per instance, in row order: the distributions of
        `variables` (in the given order, each indexed by state) and the
        instance weight.

    Notes
    -----
    - Documents with identical evidence share one inference call.
    """

    manifest: Dict[str, Variable] = {v.name: v for v in model.manifest_variables()}
    columns: List[str] = list(model.observed_columns)
    names: List[str] = [variable.name for variable in variables]
    inference = BeliefPropagation(model.network)
    posteriors: Dict[tuple, List[np.ndarray]] = {}

    results: List[tuple[List[np.ndarray], float]] = []
    observed: np.ndarray = data.frame[columns].to_numpy(dtype=float)
    for row, weight in zip(observed, data.weights):
        key = tuple(int(value == 1.0) for value in row)
        if key not in posteriors:
            evidence: Dict[str, str] = {
                column: manifest[column].states[state] for column, state in zip(columns, key)
            }
            factors = (
                inference.query(
                    variables=names, evidence=evidence, joint=False, show_progress=False
                )
                if names
                else {}
            )
            posteriors[key] = [np.asarray(factors[name].values, dtype=float) for name in names]
        results.append((posteriors[key], float(weight)))
    return results


def score_topics(
    model: LatentTreeModel,
    binary_data: Dataset,
    variables: Sequence[Variable],
    relation_name: str,
) -> Dataset:
    """
    Build the Topic Probability Table for `binary_data`.

    Parameters
    ----------
    model : LatentTreeModel
        Synchronized model.
    binary_data : Dataset
        Output of `topic_data.prepare_data`.
    variables : Sequence[Variable]
        Topic variables, defining the table's column order.
    relation_name : str
        Name given to the resulting dataset.

    Returns
    -------
    Dataset
        Numeric variables named after `variables`; each value is the
        probability that the topic is in state 1 for that document.
    """

    probabilities = compute_probabilities(model, binary_data, variables)
    rows: List[List[float]] = [
        [float(distribution[ACTIVE_STATE_INDEX]) for distribution in distributions]
        for distributions, _ in probabilities
    ]
    names: List[str] = [variable.name for variable in variables]
    frame: pd.DataFrame = pd.DataFrame(
        rows, columns=names, index=binary_data.frame.index, dtype=float
    )
    weights: pd.Series = pd.Series(
        [weight for _, weight in probabilities], index=frame.index, dtype=float
    )
    return Dataset(
        name=relation_name,
        variables=tuple(Variable(name) for name in names),
        frame=frame,
        weights=weights,
    )
