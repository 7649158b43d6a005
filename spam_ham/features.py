"""
Term selection: sparsity report for stopword curation and top-K vocabulary.
"""

import logging
from typing import Tuple

import numpy as np
import pandas as pd

from .term_matrix import TermDocumentMatrix

logger = logging.getLogger(__name__)

Vocabulary = Tuple[str, ...]


def term_sparsity(matrix: TermDocumentMatrix) -> pd.Series:
    """Fraction of documents in which each term does not occur."""
    if matrix.n_docs == 0:
        return pd.Series([], dtype=float, name="sparsity")
    present = matrix.document_frequencies().to_numpy()
    return pd.Series(1.0 - present / matrix.n_docs, index=matrix.terms, name="sparsity")


def sparse_terms(matrix: TermDocumentMatrix, threshold: float) -> pd.Series:
    """
    Terms absent from more than ``threshold`` of the documents, most sparse first.

    This is only a report: whoever curates the supplemental stopword list
    decides what to do with it.
    """
    sparsity = term_sparsity(matrix)
    return sparsity[sparsity > threshold].sort_values(ascending=False, kind="stable")


def remove_sparse_terms(matrix: TermDocumentMatrix, threshold: float) -> TermDocumentMatrix:
    """Keep only terms whose sparsity is below ``threshold``."""
    sparsity = term_sparsity(matrix)
    keep = list(sparsity.index[sparsity < threshold])
    logger.info("Keeping %d of %d terms with sparsity < %.3f",
                len(keep), matrix.n_terms, threshold)
    return matrix.select_terms(keep)


def top_terms(matrix: TermDocumentMatrix, k: int) -> Vocabulary:
    """
    The ``k`` most frequent terms, by descending total count.

    Ties keep the matrix's own term order (stable sort).
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    freq = matrix.term_frequencies()
    order = np.argsort(-freq.to_numpy(), kind="stable")[:k]
    vocabulary = tuple(freq.index[i] for i in order)
    if len(vocabulary) < k:
        logger.warning("Corpus has only %d distinct terms; vocabulary is smaller than %d",
                       len(vocabulary), k)
    return vocabulary
