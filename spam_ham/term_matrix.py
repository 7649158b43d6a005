"""
Sparse term/document count matrix built with CountVectorizer.
"""

import logging
from typing import List, Sequence

import numpy as np
import pandas as pd
from scipy import sparse
from sklearn.feature_extraction.text import CountVectorizer

logger = logging.getLogger(__name__)


class TermDocumentMatrix:
    """
    Document-by-term counts (CSR, one row per document id) plus the term names.

    Terms are kept in CountVectorizer's (alphabetical) order; every term has a
    nonzero count somewhere, and every document id has a row even if it is empty.
    """

    def __init__(self, counts: sparse.csr_matrix, terms: Sequence[str], doc_ids: Sequence[int]):
        if counts.shape != (len(doc_ids), len(terms)):
            raise ValueError(
                f"Count matrix shape {counts.shape} does not match "
                f"{len(doc_ids)} documents x {len(terms)} terms")
        self.counts = sparse.csr_matrix(counts)
        self.terms = [str(t) for t in terms]
        self.doc_ids = [int(i) for i in doc_ids]
        self._term_index = {t: i for i, t in enumerate(self.terms)}
        self._doc_index = {d: i for i, d in enumerate(self.doc_ids)}

    @property
    def n_docs(self) -> int:
        return len(self.doc_ids)

    @property
    def n_terms(self) -> int:
        return len(self.terms)

    def __contains__(self, term: str) -> bool:
        return term in self._term_index

    def term_index(self, term: str) -> int:
        try:
            return self._term_index[term]
        except KeyError:
            raise KeyError(f"Term {term!r} is not in the matrix") from None

    def document_term(self) -> sparse.csr_matrix:
        return self.counts

    def term_document(self) -> sparse.csr_matrix:
        return self.counts.T.tocsr()

    def column(self, term: str) -> np.ndarray:
        """Dense per-document counts for one term, in doc id order."""
        return self.counts[:, self.term_index(term)].toarray().ravel()

    def term_frequencies(self) -> pd.Series:
        totals = np.asarray(self.counts.sum(axis=0)).ravel()
        return pd.Series(totals, index=self.terms, name="frequency")

    def document_frequencies(self) -> pd.Series:
        """Number of documents each term occurs in."""
        return pd.Series(self.counts.getnnz(axis=0), index=self.terms, name="documents")

    def document_vector(self, doc_id: int) -> pd.Series:
        """Nonzero term counts of one document."""
        try:
            row = self.counts[self._doc_index[doc_id]]
        except KeyError:
            raise KeyError(f"Document {doc_id} is not in the matrix") from None
        return pd.Series(row.data, index=[self.terms[j] for j in row.indices],
                         name=doc_id).sort_index()

    def frequent_terms(self, low_freq: int) -> List[str]:
        freq = self.term_frequencies()
        return list(freq.index[freq >= low_freq])

    def find_associations(self, term: str, threshold: float) -> pd.Series:
        """
        Terms whose count vectors correlate with ``term`` at or above ``threshold``.

        Pearson correlation across documents, rounded to two decimals and sorted
        descending. Terms with zero variance have no defined correlation and
        are never returned.
        """
        target = self.column(term).astype(float)
        n = self.n_docs
        if n < 2 or target.std() == 0:
            return pd.Series([], dtype=float, name=term)

        x = self.counts.astype(float)
        sums = np.asarray(x.sum(axis=0)).ravel()
        sq_sums = np.asarray(x.multiply(x).sum(axis=0)).ravel()
        cross = np.asarray(x.T.dot(target)).ravel()

        cov = cross - sums * target.sum() / n
        var = sq_sums - sums ** 2 / n
        target_var = (target ** 2).sum() - target.sum() ** 2 / n
        with np.errstate(divide="ignore", invalid="ignore"):
            corr = cov / np.sqrt(var * target_var)

        corr = pd.Series(np.round(corr, 2), index=self.terms, name=term)
        corr = corr.drop(term).dropna()
        corr = corr[corr >= threshold]
        return corr.sort_values(ascending=False, kind="stable")

    def select_terms(self, terms: Sequence[str]) -> "TermDocumentMatrix":
        idx = [self.term_index(t) for t in terms]
        return TermDocumentMatrix(self.counts[:, idx], list(terms), self.doc_ids)

    def __repr__(self):
        nnz = self.counts.nnz
        cells = self.n_docs * self.n_terms
        sparsity = 1.0 - nnz / cells if cells else 0.0
        return (f"<TermDocumentMatrix terms: {self.n_terms}, documents: {self.n_docs}, "
                f"sparsity: {sparsity:.0%}>")


def build_term_matrix(documents: List[List[str]], doc_ids: Sequence[int]) -> TermDocumentMatrix:
    """Count the (already tokenized) documents; ``doc_ids[i]`` names ``documents[i]``."""
    if len(documents) != len(doc_ids):
        raise ValueError("documents and doc_ids must have the same length")

    # Documents are token lists already, so the analyzer just hands them through
    vectorizer = CountVectorizer(analyzer=list)
    counts = vectorizer.fit_transform(documents)
    matrix = TermDocumentMatrix(counts, vectorizer.get_feature_names_out(), doc_ids)
    logger.info("Built %r", matrix)
    return matrix
