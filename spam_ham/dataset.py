"""
Project messages onto the vocabulary and split into train/test subsets.
"""

import logging
from typing import List, NamedTuple, Sequence

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from .corpus import KNOWN_LABELS, Message
from .term_matrix import TermDocumentMatrix

logger = logging.getLogger(__name__)

LABEL_COLUMN = "label_num"


def label_to_num(label: str) -> int:
    # ham=1, spam=0; anything else counts as spam
    if label not in KNOWN_LABELS:
        logger.warning("Unrecognized label %r mapped to spam (0)", label)
    return 1 if label == "ham" else 0


def feature_columns(dataset: pd.DataFrame) -> List[str]:
    return [c for c in dataset.columns if c != LABEL_COLUMN]


def build_dataset(
    messages: List[Message],
    matrix: TermDocumentMatrix,
    vocabulary: Sequence[str],
) -> pd.DataFrame:
    """One row per message (index = message id): vocabulary counts plus ``label_num``."""
    idx = [matrix.term_index(t) for t in vocabulary]
    row_of = {doc_id: i for i, doc_id in enumerate(matrix.doc_ids)}
    ordered = sorted(messages, key=lambda m: m.id)
    rows = [row_of[m.id] for m in ordered]

    counts = matrix.document_term()[rows][:, idx].toarray()
    dataset = pd.DataFrame(counts, columns=list(vocabulary),
                           index=pd.Index([m.id for m in ordered], name="id"))
    dataset[LABEL_COLUMN] = [label_to_num(m.label) for m in ordered]
    return dataset


class Split(NamedTuple):
    train: pd.DataFrame
    test: pd.DataFrame


def stratified_split(dataset: pd.DataFrame, train_fraction: float = 0.7,
                     seed: int = 123) -> Split:
    """
    Partition ``dataset`` by row, preserving the ham/spam proportion in both parts.

    Same seed and same input order give the same partition.
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    y = dataset[LABEL_COLUMN]
    stratify = y
    if y.value_counts().min() < 2 or y.nunique() < 2:
        logger.warning("Too few examples per class to stratify; using an unstratified split")
        stratify = None

    train_ids, test_ids = train_test_split(
        dataset.index.to_numpy(),
        train_size=train_fraction,
        random_state=seed,
        stratify=stratify,
    )
    train = dataset.loc[np.sort(train_ids)]
    test = dataset.loc[np.sort(test_ids)]
    logger.info("Split %d rows into %d train / %d test", len(dataset), len(train), len(test))
    return Split(train=train, test=test)
