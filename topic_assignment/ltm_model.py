"""
Purpose
-------
Load a trained latent tree model (LTM) from a BIF file into a `pgmpy`
network, and align the model's observed variables with a dataset's columns.

Key behaviors
-------------
- Parse `network`, `variable` and `probability` blocks of the BIF format,
  accepting both `table` entries and per-parent-configuration rows.
- Build one `TabularCPD` per variable and validate the network with
  `check_model()`.
- Classify variables: internal (latent, topic) variables have children,
  manifest (observed) variables are leaves.
- `synchronize` records which dataset columns are observed manifest
  variables; scoring reads evidence only from those columns.
- `read_model_and_data` is the generic loader shared by the compute path and
  the cached-topic-table path.

Conventions
-----------
- Names may be double quoted; states may be separated by spaces or commas.
- A `table` lists parent configurations in row-major order (last parent
  fastest) with the child's states fastest inside each configuration, so
  every consecutive block of `card(child)` numbers is one distribution.
- Each variable has at most one parent; anything else is not a tree and is
  rejected.

Downstream usage
----------------
`topic_table` calls `read_model_and_data`, then `topic_data.prepare_data`
(which calls `synchronize`), then `topic_scoring.score_topics` with
`model.internal_variables()`.
"""

import itertools
import re
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
from pgmpy.factors.discrete import TabularCPD
from pgmpy.models import DiscreteBayesianNetwork

from topic_assignment.arff_io import read_arff
from topic_assignment.topic_data import Dataset, Variable

NAME: str = r'"[^"]*"|[^\s{}()|,;"]+'
COMMENT_PATTERN: re.Pattern[str] = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
NETWORK_PATTERN: re.Pattern[str] = re.compile(rf"\bnetwork\s+({NAME})\s*\{{")
VARIABLE_PATTERN: re.Pattern[str] = re.compile(
    rf"\bvariable\s+({NAME})\s*\{{\s*type\s+discrete\s*\[\s*(\d+)\s*\]\s*\{{([^}}]*)\}}\s*;"
    r"[^}]*\}",
    re.DOTALL,
)
PROBABILITY_PATTERN: re.Pattern[str] = re.compile(
    r"\bprobability\s*\(([^)]*)\)\s*\{((?:[^{}])*)\}", re.DOTALL
)
TABLE_PATTERN: re.Pattern[str] = re.compile(r"\btable\s+([^;]*);")
ROW_PATTERN: re.Pattern[str] = re.compile(r"\(([^)]*)\)\s*([^;]*);")
TOKEN_PATTERN: re.Pattern[str] = re.compile(NAME)


@dataclass(eq=False)
class LatentTreeModel:
    """
    Purpose
    -------
    A tree-structured discrete Bayesian network with latent internal nodes.

    Parameters
    ----------
    name : str
        Network name from the BIF header.
    network : pgmpy.models.DiscreteBayesianNetwork
        Validated network with one CPD per variable.
    variables : tuple[Variable, ...]
        All variables in declaration order.

    Attributes
    ----------
    observed_columns : tuple[str, ...] or None
        Dataset columns used as evidence, set by `synchronize`; `None` until
        the model has been synchronized.
    unobserved_variables : tuple[str, ...]
        Manifest variables that had no matching dataset column at the last
        `synchronize`.
    """

    name: str
    network: DiscreteBayesianNetwork
    variables: tuple[Variable, ...]
    observed_columns: tuple[str, ...] | None = field(default=None, init=False)
    unobserved_variables: tuple[str, ...] = field(default=(), init=False)

    def internal_variables(self) -> List[Variable]:
        return [v for v in self.variables if self.network.get_children(v.name)]

    def manifest_variables(self) -> List[Variable]:
        return [v for v in self.variables if not self.network.get_children(v.name)]

    def synchronize(self, variables: Sequence[Variable]) -> None:
        """
        Align the model's manifest variables with dataset columns by name.

        Parameters
        ----------
        variables : Sequence[Variable]
            Dataset variables in column order, typically binarized.

        Returns
        -------
        None

        Raises
        ------
        ValueError
            If a matching column declares a different number of states than
            the model variable.

        Notes
        -----
        - Columns unknown to the model are ignored; manifest variables
          without a column stay unobserved during scoring.
        """

        manifest: Dict[str, Variable] = {v.name: v for v in self.manifest_variables()}
        observed: List[str] = []
        for variable in variables:
            model_variable = manifest.get(variable.name)
            if model_variable is None:
                continue
            if len(variable.states) != len(model_variable.states):
                raise ValueError(
                    f"Variable {variable.name!r} has {len(variable.states)} states in the data "
                    f"but {len(model_variable.states)} in the model"
                )
            observed.append(variable.name)
        self.observed_columns = tuple(observed)
        self.unobserved_variables = tuple(name for name in manifest if name not in observed)


def read_model_and_data(model_path: str, data_path: str) -> tuple[LatentTreeModel, Dataset]:
    """Load a BIF model and an ARFF dataset; parse errors propagate."""

    return read_bif(model_path), read_arff(data_path)


def read_bif(path: str) -> LatentTreeModel:
    """
    Parse a BIF file into a validated `LatentTreeModel`.

    Parameters
    ----------
    path : str
        Path to a UTF-8 BIF file.

    Returns
    -------
    LatentTreeModel
        Model with a `pgmpy` network whose CPDs carry the declared state
        names.

    Raises
    ------
    FileNotFoundError
        If `path` does not exist.
    ValueError
        If a block is malformed, references an undeclared variable, a
        variable lacks a probability block, a table has the wrong length, a
        node has more than one parent, or `pgmpy` rejects the network.
    """

    with open(path, "r", encoding="utf-8") as f:
        text: str = COMMENT_PATTERN.sub("", f.read())

    network_match = NETWORK_PATTERN.search(text)
    name: str = unquote(network_match.group(1)) if network_match else ""

    variables: Dict[str, Variable] = {}
    for match in VARIABLE_PATTERN.finditer(text):
        variable_name: str = unquote(match.group(1))
        states = tuple(unquote(token) for token in TOKEN_PATTERN.findall(match.group(3)))
        if len(states) != int(match.group(2)):
            raise ValueError(
                f"Variable {variable_name!r} declares {match.group(2)} states "
                f"but lists {len(states)}"
            )
        if variable_name in variables:
            raise ValueError(f"Variable {variable_name!r} is declared twice")
        variables[variable_name] = Variable(variable_name, states)

    if not variables:
        raise ValueError(f"No discrete variables found in BIF file: {path}")

    cpds: Dict[str, TabularCPD] = {}
    for match in PROBABILITY_PATTERN.finditer(text):
        cpd: TabularCPD = parse_probability_block(match.group(1), match.group(2), variables)
        if cpd.variable in cpds:
            raise ValueError(f"Variable {cpd.variable!r} has two probability blocks")
        cpds[cpd.variable] = cpd

    missing: List[str] = [v for v in variables if v not in cpds]
    if missing:
        raise ValueError(f"Variables without probability blocks: {missing}")

    network = DiscreteBayesianNetwork()
    network.add_nodes_from(variables)
    for cpd in cpds.values():
        network.add_edges_from((parent, cpd.variable) for parent in cpd.variables[1:])
    network.add_cpds(*cpds.values())
    network.check_model()

    return LatentTreeModel(name=name, network=network, variables=tuple(variables.values()))


def parse_probability_block(
    header: str, body: str, variables: Dict[str, Variable]
) -> TabularCPD:
    """
    Build the CPD described by one `probability ( child | parent ) { ... }`.

    Parameters
    ----------
    header : str
        Text inside the parentheses.
    body : str
        Text inside the braces: a `table` entry or one row per parent
        configuration, e.g. `("s1") 0.2 0.8;`.
    variables : dict[str, Variable]
        Declared variables by name.

    Returns
    -------
    TabularCPD
        CPD with `state_names` for the child and its parent.
    """

    child_part, _, parent_part = header.partition("|")
    child_tokens: List[str] = [unquote(t) for t in TOKEN_PATTERN.findall(child_part)]
    parents: List[str] = [unquote(t) for t in TOKEN_PATTERN.findall(parent_part)]
    if len(child_tokens) != 1:
        raise ValueError(f"Malformed probability header: ({header.strip()})")
    child: str = child_tokens[0]
    if len(parents) > 1:
        raise ValueError(f"Variable {child!r} has {len(parents)} parents; the model is not a tree")
    for variable_name in [child] + parents:
        if variable_name not in variables:
            raise ValueError(f"Probability block references undeclared variable {variable_name!r}")

    child_states: tuple[str, ...] = variables[child].states
    parent_states: List[tuple[str, ...]] = [variables[p].states for p in parents]
    configurations: List[tuple[str, ...]] = list(itertools.product(*parent_states))

    table_match = TABLE_PATTERN.search(body)
    if table_match is not None:
        numbers: List[float] = parse_numbers(table_match.group(1), child)
    else:
        numbers = parse_rows(body, child, configurations, len(child_states))

    expected: int = len(configurations) * len(child_states)
    if len(numbers) != expected:
        raise ValueError(
            f"Probability table of {child!r} has {len(numbers)} entries, expected {expected}"
        )

    values: np.ndarray = np.array(numbers, dtype=float).reshape(
        len(configurations), len(child_states)
    ).T
    state_names: Dict[str, List[str]] = {child: list(child_states)}
    for parent, states in zip(parents, parent_states):
        state_names[parent] = list(states)

    return TabularCPD(
        variable=child,
        variable_card=len(child_states),
        values=values,
        evidence=parents or None,
        evidence_card=[len(states) for states in parent_states] or None,
        state_names=state_names,
    )


def parse_rows(
    body: str, child: str, configurations: List[tuple[str, ...]], child_card: int
) -> List[float]:
    rows: Dict[tuple[str, ...], List[float]] = {}
    for match in ROW_PATTERN.finditer(body):
        key = tuple(unquote(t) for t in TOKEN_PATTERN.findall(match.group(1)))
        row: List[float] = parse_numbers(match.group(2), child)
        if len(row) != child_card:
            raise ValueError(f"Row {key} of {child!r} has {len(row)} entries, expected {child_card}")
        rows[key] = row

    numbers: List[float] = []
    for configuration in configurations:
        if configuration not in rows:
            raise ValueError(f"Probability block of {child!r} has no row for {configuration}")
        numbers.extend(rows[configuration])
    return numbers


def parse_numbers(text: str, child: str) -> List[float]:
    try:
        return [float(token) for token in re.split(r"[\s,]+", text.strip()) if token]
    except ValueError as exc:
        raise ValueError(f"Invalid number in probability block of {child!r}: {text!r}") from exc


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    return text
