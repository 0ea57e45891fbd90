"""
Purpose
-------
Turn a Topic Probability Table into a ranked list of documents per topic and
serialize it as the JSON-like topic report.

Key behaviors
-------------
- `generate_topic_to_document_map` keeps, per topic, the documents whose
  state-1 probability is at least the threshold, ranked by probability
  descending and then by document index ascending.
- `write_topic_map` writes one `{"topic":...,"doc":[...]}` object per line
  between `[` and `]` lines, objects separated by `,`.

Conventions
-----------
- Document indices are 0-based row positions in the table.
- Probabilities in the report are formatted with two decimals (`%.2f`).
- Topic names are written verbatim; names containing `"` produce an invalid
  report.
- Topics appear in the table's column order.

Downstream usage
----------------
`assign_topics.run` applies both functions to the table returned by
`topic_table.obtain_topic_table`, whichever variant it is.
"""

from typing import Dict, List

import numpy as np

from topic_assignment.topic_data import Dataset, Variable

TopicToDocumentMap = Dict[Variable, List[tuple[float, int]]]


def generate_topic_to_document_map(data: Dataset, threshold: float) -> TopicToDocumentMap:
    """
    Rank documents per topic, keeping probabilities at or above `threshold`.

    Parameters
    ----------
    data : Dataset
        Topic Probability Table: one column per topic, one row per document.
    threshold : float
        Minimum probability for a document to be listed.

    Returns
    -------
    dict[Variable, list[tuple[float, int]]]
        For each topic, `(probability, document_index)` pairs sorted by
        probability descending; equal probabilities keep ascending document
        index.
    """

    topic_map: TopicToDocumentMap = {}
    for variable in data.variables:
        values: np.ndarray = data.frame[variable.name].to_numpy(dtype=float)
        kept: np.ndarray = np.flatnonzero(values >= threshold)
        documents: List[tuple[float, int]] = [(float(values[i]), int(i)) for i in kept]
        documents.sort(key=lambda pair: (-pair[0], pair[1]))
        topic_map[variable] = documents
    return topic_map


def format_topic_entry(variable: Variable, documents: List[tuple[float, int]]) -> str:
    docs: str = ",".join(f"[{index},{probability:.2f}]" for probability, index in documents)
    return '{"topic":"' + variable.name + '","doc":[' + docs + "]}"


def write_topic_map(topic_map: TopicToDocumentMap, output_file: str) -> None:
    """
    Write `topic_map` to `output_file` in the topic report format.

    Parameters
    ----------
    topic_map : dict[Variable, list[tuple[float, int]]]
        Output of `generate_topic_to_document_map`.
    output_file : str
        Destination path; overwritten if it exists.

    Returns
    -------
    None

    Raises
    ------
    OSError
        If the file cannot be opened or written. The handle is closed either
        way.
    """

    entries: List[str] = [
        format_topic_entry(variable, documents) for variable, documents in topic_map.items()
    ]
    with open(output_file, "w", encoding="utf-8") as f:
        f.write("[\n")
        f.write(",\n".join(entries) + "\n")
        f.write("]\n")
