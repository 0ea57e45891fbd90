"""
Purpose
-------
Read and write the ARFF tabular format used for both the input document data
and the cached Topic Probability Table.

Key behaviors
-------------
- Parse `@relation`, `@attribute` (numeric/real/integer or nominal) and
  `@data` sections into a `Dataset`.
- Accept dense rows (`v1,v2,...`) and sparse rows (`{index value, ...}`),
  each optionally followed by an instance weight (`,{w}`).
- Write a dense ARFF file with numbers formatted to at most two decimals and
  trailing zeros trimmed.

Conventions
-----------
- Header keywords are case-insensitive; names may be single or double
  quoted.
- `%` starts a comment line; blank lines are ignored.
- `?` denotes a missing value and is stored as NaN.
- Values omitted from a sparse row are 0 (the first state for nominal
  attributes).
- Weights equal to 1 are not written.

Downstream usage
----------------
`ltm_model.read_model_and_data` calls `read_arff` for the input data and for
the cached topic table; `topic_table` calls `write_arff` to persist freshly
computed topic probabilities.
"""

import math
import re
from typing import List

import pandas as pd

from topic_assignment.topic_data import Dataset, Variable

NUMERIC_TYPES: set[str] = {"numeric", "real", "integer"}
ATTRIBUTE_PATTERN: re.Pattern[str] = re.compile(
    r"""^@attribute\s+('(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*"|\S+)\s+(.+)$""",
    re.IGNORECASE,
)
WEIGHT_PATTERN: re.Pattern[str] = re.compile(r"^(.*?)\s*,\s*\{\s*([^{}\s,]+)\s*\}$")
MISSING_VALUE: str = "?"


def read_arff(path: str) -> Dataset:
    """
    Parse an ARFF file into a `Dataset`.

    Parameters
    ----------
    path : str
        Path to a UTF-8 ARFF file.

    Returns
    -------
    Dataset
        Variables in attribute order, one row per data line, and instance
        weights (1.0 unless given as `{w}`).

    Raises
    ------
    FileNotFoundError
        If `path` does not exist.
    ValueError
        If a header line is malformed, an attribute type is unsupported, a
        row has the wrong number of values, or a value cannot be parsed.
    """

    relation: str = ""
    variables: List[Variable] = []
    rows: List[List[float]] = []
    weights: List[float] = []
    in_data: bool = False

    with open(path, "r", encoding="utf-8") as f:
        for raw_line in f:
            line: str = raw_line.strip()
            if not line or line.startswith("%"):
                continue

            if in_data:
                values, weight = parse_data_line(line, variables)
                rows.append(values)
                weights.append(weight)
                continue

            keyword: str = line.split(None, 1)[0].lower()
            if keyword == "@relation":
                parts: List[str] = line.split(None, 1)
                if len(parts) != 2:
                    raise ValueError(f"Malformed @relation line: {raw_line!r}")
                relation = unquote(parts[1].strip())
            elif keyword == "@attribute":
                variables.append(parse_attribute_line(line))
            elif keyword == "@data":
                in_data = True
            else:
                raise ValueError(f"Unexpected ARFF header line: {raw_line!r}")

    if not in_data:
        raise ValueError(f"No @data section in ARFF file: {path}")

    names: List[str] = [variable.name for variable in variables]
    frame: pd.DataFrame = pd.DataFrame(rows, columns=names, dtype=float)
    return Dataset(
        name=relation,
        variables=tuple(variables),
        frame=frame,
        weights=pd.Series(weights, index=frame.index, dtype=float),
    )


def parse_attribute_line(line: str) -> Variable:
    """
    Parse one `@attribute` declaration.

    Raises
    ------
    ValueError
        If the line does not match the attribute grammar or declares an
        unsupported type (e.g., string or date).
    """

    match = ATTRIBUTE_PATTERN.match(line)
    if match is None:
        raise ValueError(f"Malformed @attribute line: {line!r}")

    name: str = unquote(match.group(1))
    type_spec: str = match.group(2).strip()
    if type_spec.startswith("{"):
        if not type_spec.endswith("}"):
            raise ValueError(f"Unterminated nominal attribute: {line!r}")
        states = tuple(unquote(state.strip()) for state in type_spec[1:-1].split(","))
        if not all(states):
            raise ValueError(f"Empty nominal state in attribute: {line!r}")
        return Variable(name, states)
    if type_spec.lower() in NUMERIC_TYPES:
        return Variable(name)
    raise ValueError(f"Unsupported attribute type {type_spec!r} in line: {line!r}")


def parse_data_line(line: str, variables: List[Variable]) -> tuple[List[float], float]:
    """
    Parse one dense or sparse data row and its optional weight.

    Returns
    -------
    tuple[list[float], float]
        Values in variable order and the instance weight.
    """

    weight: float = 1.0
    body: str = line
    match = WEIGHT_PATTERN.match(line)
    if match is not None:
        body = match.group(1)
        try:
            weight = float(match.group(2))
        except ValueError as exc:
            raise ValueError(f"Invalid instance weight in data line: {line!r}") from exc

    if body.startswith("{"):
        return parse_sparse_values(body, variables, line), weight

    tokens: List[str] = [token.strip() for token in body.split(",")]
    if len(tokens) != len(variables):
        raise ValueError(
            f"Expected {len(variables)} values but found {len(tokens)} in data line: {line!r}"
        )
    return [parse_value(token, variable, line) for token, variable in zip(tokens, variables)], weight


def parse_sparse_values(body: str, variables: List[Variable], line: str) -> List[float]:
    if not body.endswith("}"):
        raise ValueError(f"Unterminated sparse data line: {line!r}")

    values: List[float] = [0.0] * len(variables)
    inner: str = body[1:-1].strip()
    if not inner:
        return values

    for entry in inner.split(","):
        parts: List[str] = entry.strip().split(None, 1)
        if len(parts) != 2:
            raise ValueError(f"Malformed sparse entry {entry!r} in data line: {line!r}")
        try:
            index: int = int(parts[0])
        except ValueError as exc:
            raise ValueError(f"Invalid sparse index {parts[0]!r} in data line: {line!r}") from exc
        if not 0 <= index < len(variables):
            raise ValueError(f"Sparse index {index} out of range in data line: {line!r}")
        values[index] = parse_value(parts[1].strip(), variables[index], line)
    return values


def parse_value(token: str, variable: Variable, line: str) -> float:
    if token == MISSING_VALUE:
        return math.nan
    if variable.is_numeric:
        try:
            return float(token)
        except ValueError as exc:
            raise ValueError(
                f"Invalid numeric value {token!r} for {variable.name!r} in data line: {line!r}"
            ) from exc
    state: str = unquote(token)
    if state not in variable.states:
        raise ValueError(f"Unknown state {state!r} for {variable.name!r} in data line: {line!r}")
    return float(variable.states.index(state))


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1].replace("\\" + text[0], text[0])
    return text


def quote_name(name: str) -> str:
    if re.search(r"[\s,{}%'\"]", name):
        return "'" + name.replace("'", "\\'") + "'"
    return name


def format_number(value: float, decimals: int = 2) -> str:
    """
    Format `value` with at most `decimals` decimals, trimming trailing zeros.

    Examples
    --------
    0.5 -> "0.5", 0.904 -> "0.9", 1.0 -> "1", -0.001 -> "0", NaN -> "?"
    """

    if math.isnan(value):
        return MISSING_VALUE
    text: str = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def write_arff(dataset: Dataset, relation_name: str, path: str, decimals: int = 2) -> None:
    """
    Write `dataset` as a dense ARFF file.

    Parameters
    ----------
    dataset : Dataset
        Data to persist.
    relation_name : str
        Value of the `@relation` header.
    path : str
        Output path; overwritten if it exists.
    decimals : int, default=2
        Maximum number of decimals for numeric values and weights.

    Returns
    -------
    None

    Raises
    ------
    OSError
        If the file cannot be opened or written. The handle is closed either
        way.
    """

    with open(path, "w", encoding="utf-8") as f:
        f.write(f"@relation {quote_name(relation_name)}\n\n")
        for variable in dataset.variables:
            if variable.is_numeric:
                type_spec: str = "numeric"
            else:
                type_spec = "{" + ",".join(quote_name(state) for state in variable.states) + "}"
            f.write(f"@attribute {quote_name(variable.name)} {type_spec}\n")
        f.write("\n@data\n")

        for values, weight in zip(
            dataset.frame.itertuples(index=False, name=None), dataset.weights
        ):
            cells: List[str] = [
                format_cell(value, variable, decimals)
                for value, variable in zip(values, dataset.variables)
            ]
            line: str = ",".join(cells)
            if weight != 1.0:
                line += ",{" + format_number(weight, decimals) + "}"
            f.write(line + "\n")


def format_cell(value: float, variable: Variable, decimals: int) -> str:
    if variable.is_numeric or math.isnan(value):
        return format_number(value, decimals)
    return quote_name(variable.states[int(value)])
