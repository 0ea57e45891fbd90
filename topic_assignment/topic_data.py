"""
Purpose
-------
Tabular data types shared by every pipeline step, and the preparation step
that turns a loaded dataset into the 2-state form the model is scored on.

Key behaviors
-------------
- `Variable` names a random variable and, for discrete variables, its states.
- `Dataset` binds each variable to its column of values through a pandas
  DataFrame whose column labels are the variable names, plus per-instance
  weights.
- `binarize` maps every value onto states ("s0", "s1").
- `prepare_data` binarizes and synchronizes the model with the result.

Conventions
-----------
- Rows are instances (documents) in file order; the row position is the
  document index reported downstream.
- Nominal values are stored as the float index of their state.
- Numeric variables carry an empty `states` tuple.

Downstream usage
----------------
`arff_io` produces and consumes `Dataset`; `topic_scoring` builds the
Topic Probability Table as a `Dataset` over the model's internal variables.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from topic_assignment.ltm_model import LatentTreeModel

BINARY_STATES: tuple[str, str] = ("s0", "s1")


@dataclass(frozen=True)
class Variable:
    """
    Purpose
    -------
    Identify one random variable of a model or dataset.

    Parameters
    ----------
    name : str
        Unique variable name.
    states : tuple[str, ...], default=()
        State labels of a discrete variable; empty for numeric variables.
    """

    name: str
    states: tuple[str, ...] = ()

    @property
    def is_numeric(self) -> bool:
        return not self.states


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Purpose
    -------
    Ordered variables, one row of values per instance, and instance weights.

    Parameters
    ----------
    name : str
        Relation name, written as the ARFF `@relation`.
    variables : tuple[Variable, ...]
        Variables in column order.
    frame : pandas.DataFrame
        Values; column labels must equal the variable names in order.
    weights : pandas.Series, optional
        Per-row weights aligned with `frame.index`; all 1.0 when omitted.

    Raises
    ------
    ValueError
        If the frame's columns do not match the variables, names repeat, or
        the weights are not aligned with the rows.
    """

    name: str
    variables: tuple[Variable, ...]
    frame: pd.DataFrame
    weights: pd.Series = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        names: list[str] = [variable.name for variable in self.variables]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate variable names in dataset {self.name!r}")
        if list(self.frame.columns) != names:
            raise ValueError(
                f"Dataset {self.name!r} columns {list(self.frame.columns)} "
                f"do not match variables {names}"
            )
        if self.weights is None:
            object.__setattr__(
                self, "weights", pd.Series(1.0, index=self.frame.index, dtype=float)
            )
        elif not self.weights.index.equals(self.frame.index):
            raise ValueError(f"Weights of dataset {self.name!r} are not aligned with its rows")

    @property
    def variable_names(self) -> list[str]:
        return [variable.name for variable in self.variables]

    @property
    def instance_count(self) -> int:
        return len(self.frame.index)

    def variable(self, name: str) -> Variable:
        for variable in self.variables:
            if variable.name == name:
                return variable
        raise KeyError(name)


def binarize(dataset: Dataset) -> Dataset:
    """
    Map every value of `dataset` onto the two states ("s0", "s1").

    Parameters
    ----------
    dataset : Dataset
        Loaded data with numeric counts or nominal values.

    Returns
    -------
    Dataset
        Same name, variable names, row order and weights; every variable has
        states `BINARY_STATES` and every value is 0.0 or 1.0.

    Notes
    -----
    - Positive numeric values (e.g., word counts) become 1; zero, negative
      and missing values become 0.
    - Nominal values become 1 for any state other than the first.
    """

    frame: pd.DataFrame = pd.DataFrame(
        np.where(dataset.frame.to_numpy(dtype=float) > 0, 1.0, 0.0),
        index=dataset.frame.index,
        columns=dataset.frame.columns,
    )
    variables = tuple(Variable(variable.name, BINARY_STATES) for variable in dataset.variables)
    return Dataset(dataset.name, variables, frame, dataset.weights.copy())


def prepare_data(model: "LatentTreeModel", dataset: Dataset) -> Dataset:
    """
    Binarize `dataset` and synchronize `model` with the binarized variables.

    Returns
    -------
    Dataset
        The binarized dataset, ready to be scored against `model`.
    """

    binary_data: Dataset = binarize(dataset)
    model.synchronize(binary_data.variables)
    return binary_data
