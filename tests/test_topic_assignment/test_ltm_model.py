"""
Purpose
-------
Unit tests for `topic_assignment.ltm_model`: BIF parsing into a `pgmpy`
network, internal/manifest classification, and synchronization with dataset
columns.

Key behaviors
-------------
- Verify that `table` and per-row probability blocks produce CPDs with the
  declared state names and values.
- Check that internal variables keep declaration order.
- Confirm `synchronize` records observed columns and unobserved manifest
  variables, and rejects state-count mismatches.
- Ensure structural errors raise `ValueError`.

Conventions
-----------
- Model files come from `topic_assignment_testing_utils` and are written
  under `tmp_path`.

Downstream usage
----------------
Run with `pytest -q tests/test_topic_assignment`.
"""

from pathlib import Path

import numpy as np
import pytest

from tests.test_topic_assignment.topic_assignment_testing_utils import (
    DOCUMENTS_ARFF,
    SINGLE_TOPIC_BIF,
    TWO_LEVEL_BIF,
    write_text,
)
from topic_assignment.ltm_model import LatentTreeModel, read_bif, read_model_and_data
from topic_assignment.topic_data import BINARY_STATES, Variable


def test_read_bif_builds_network_with_state_names(tmp_path: Path) -> None:
    model: LatentTreeModel = read_bif(write_text(tmp_path / "model.bif", SINGLE_TOPIC_BIF))

    assert model.name == "single-topic"
    assert [v.name for v in model.variables] == ["Z1", "apple", "banana"]
    assert all(v.states == BINARY_STATES for v in model.variables)
    assert set(model.network.edges()) == {("Z1", "apple"), ("Z1", "banana")}

    cpd = model.network.get_cpds("apple")
    assert cpd.state_names["apple"] == ["s0", "s1"]
    assert np.allclose(cpd.get_values(), [[0.9, 0.2], [0.1, 0.8]])


def test_read_bif_accepts_row_blocks_and_comma_tables(tmp_path: Path) -> None:
    model: LatentTreeModel = read_bif(write_text(tmp_path / "model.bif", TWO_LEVEL_BIF))

    assert np.allclose(model.network.get_cpds("Z2").get_values(), [[0.8, 0.3], [0.2, 0.7]])
    assert np.allclose(model.network.get_cpds("banana").get_values(), [[0.9, 0.2], [0.1, 0.8]])
    assert np.allclose(model.network.get_cpds("Z1").get_values(), [[0.6], [0.4]])


def test_internal_and_manifest_variables_keep_declaration_order(tmp_path: Path) -> None:
    model: LatentTreeModel = read_bif(write_text(tmp_path / "model.bif", TWO_LEVEL_BIF))

    assert [v.name for v in model.internal_variables()] == ["Z1", "Z2"]
    assert [v.name for v in model.manifest_variables()] == ["apple", "banana", "cherry"]


def test_synchronize_matches_columns_by_name(tmp_path: Path) -> None:
    model: LatentTreeModel = read_bif(write_text(tmp_path / "model.bif", TWO_LEVEL_BIF))
    assert model.observed_columns is None

    model.synchronize(
        [
            Variable("extra", BINARY_STATES),
            Variable("cherry", BINARY_STATES),
            Variable("apple", BINARY_STATES),
        ]
    )

    assert model.observed_columns == ("cherry", "apple")
    assert model.unobserved_variables == ("banana",)


def test_synchronize_rejects_state_count_mismatch(tmp_path: Path) -> None:
    model: LatentTreeModel = read_bif(write_text(tmp_path / "model.bif", SINGLE_TOPIC_BIF))

    with pytest.raises(ValueError, match="states"):
        model.synchronize([Variable("apple", ("a", "b", "c"))])


@pytest.mark.parametrize(
    "content,message",
    [
        (SINGLE_TOPIC_BIF.replace("table 0.9 0.1 0.2 0.8;", "table 0.9 0.1;", 1), "entries"),
        (SINGLE_TOPIC_BIF.replace('probability ( "Z1" )', 'probability ( "Z9" )'), "undeclared"),
        (SINGLE_TOPIC_BIF.replace('discrete[2] { "s0" "s1" }', 'discrete[3] { "s0" "s1" }', 1), "states"),
        (
            SINGLE_TOPIC_BIF.replace('probability ( "Z1" ) {\n\ttable 0.5 0.5;\n}\n', ""),
            "without probability",
        ),
        (
            SINGLE_TOPIC_BIF.replace('( "banana" | "Z1" )', '( "banana" | "Z1", "apple" )'),
            "not a tree",
        ),
        ("network \"empty\" {\n}\n", "No discrete variables"),
    ],
)
def test_read_bif_rejects_malformed_models(tmp_path: Path, content: str, message: str) -> None:
    path: str = write_text(tmp_path / "bad.bif", content)

    with pytest.raises(ValueError, match=message):
        read_bif(path)


def test_read_model_and_data_loads_both_files(tmp_path: Path) -> None:
    model_path: str = write_text(tmp_path / "model.bif", SINGLE_TOPIC_BIF)
    data_path: str = write_text(tmp_path / "docs.arff", DOCUMENTS_ARFF)

    model, data = read_model_and_data(model_path, data_path)

    assert isinstance(model, LatentTreeModel)
    assert data.variable_names == ["apple", "banana", "extra"]


def test_read_model_and_data_propagates_missing_model(tmp_path: Path) -> None:
    data_path: str = write_text(tmp_path / "docs.arff", DOCUMENTS_ARFF)

    with pytest.raises(FileNotFoundError):
        read_model_and_data(str(tmp_path / "absent.bif"), data_path)
