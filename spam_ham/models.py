"""
Classifier trainers: stepwise-AIC logistic regression and multinomial Naive Bayes.

Both models remember the vocabulary they were trained on and refuse to score
a dataset whose feature columns differ from it.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.dummy import DummyClassifier
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import log_loss
from sklearn.naive_bayes import MultinomialNB

from .dataset import LABEL_COLUMN, feature_columns

logger = logging.getLogger(__name__)

CLASS_NAMES = ("spam", "ham")  # label_num 0, 1
INTERCEPT = "(Intercept)"
# Fitted probabilities closer than this to 0 or 1 mark a separated fit
FITTED_PROB_EPS = 1e-8


def _check_vocabulary(dataset: pd.DataFrame, vocabulary: Sequence[str]):
    columns = tuple(feature_columns(dataset))
    if columns != tuple(vocabulary):
        raise ValueError(
            "Dataset features do not match the model vocabulary "
            f"({len(columns)} columns vs {len(vocabulary)} terms, or different order)")


def _check_both_classes(y: np.ndarray):
    present = set(np.unique(y).tolist())
    if present != {0, 1}:
        raise ValueError(f"Training subset must contain both ham and spam, got labels {sorted(present)}")


# ---------- Logistic regression ----------


@dataclass
class StepRecord:
    action: str  # "start", "-" (dropped) or "+" (added)
    term: Optional[str]
    aic: float


@dataclass
class LogisticModel:
    vocabulary: Tuple[str, ...]
    terms: Tuple[str, ...]
    estimator: object
    aic: float
    converged: bool
    path: List[StepRecord] = field(default_factory=list)

    def coefficients(self) -> pd.Series:
        if isinstance(self.estimator, DummyClassifier):
            p = float(self.estimator.class_prior_[1])
            values = [np.log(p / (1.0 - p))]
        else:
            values = [float(self.estimator.intercept_[0])] + self.estimator.coef_[0].tolist()
        return pd.Series(values, index=[INTERCEPT, *self.terms], name="coefficient")

    def predict_proba(self, dataset: pd.DataFrame) -> pd.Series:
        """Probability of ham for every row."""
        _check_vocabulary(dataset, self.vocabulary)
        X = _design(dataset, self.terms)
        proba = self.estimator.predict_proba(X)[:, 1]
        return pd.Series(proba, index=dataset.index, name="ham_probability")

    def predict(self, dataset: pd.DataFrame, threshold: float = 0.5) -> pd.Series:
        return (self.predict_proba(dataset) >= threshold).astype(int).rename("prediction")


def _design(dataset: pd.DataFrame, terms: Sequence[str]) -> np.ndarray:
    if not terms:
        # Intercept-only model; DummyClassifier still wants one column
        return np.zeros((len(dataset), 1))
    return dataset[list(terms)].to_numpy(dtype=float)


def _separation(estimator, X: np.ndarray, y: np.ndarray, terms: Sequence[str]) -> Optional[str]:
    """
    Why the maximum-likelihood estimate does not exist for this fit, or None.

    lbfgs stops on its gradient tolerance while separated data still only show
    large finite coefficients, so a clean solver exit is not enough. Checked in
    order: a training set classified perfectly (complete separation), a term
    that only ever occurs in one class (quasi-complete separation), and fitted
    probabilities numerically 0 or 1.
    """
    margin = estimator.decision_function(X)
    if np.all(np.where(y == 1, margin > 0, margin < 0)):
        return "classes are completely separated"
    for j, term in enumerate(terms):
        present = X[:, j] != 0
        if present.any() and np.unique(y[present]).size == 1:
            return f"term {term!r} only occurs in one class"
    p = estimator.predict_proba(X)[:, 1]
    if np.any((p < FITTED_PROB_EPS) | (p > 1.0 - FITTED_PROB_EPS)):
        return "fitted probabilities numerically 0 or 1"
    return None


def _fit_terms(dataset: pd.DataFrame, terms: Sequence[str], max_iter: int):
    """
    Fit ``label_num ~ terms`` by maximum likelihood.

    Returns (estimator, aic, problem); ``problem`` is None for a converged fit,
    otherwise the reason it did not converge.
    """
    X = _design(dataset, terms)
    y = dataset[LABEL_COLUMN].to_numpy()

    problem = None
    if not terms:
        estimator = DummyClassifier(strategy="prior").fit(X, y)
    else:
        # C=inf switches the L2 penalty off: plain maximum likelihood
        estimator = LogisticRegression(C=np.inf, solver="lbfgs", max_iter=max_iter)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", ConvergenceWarning)
            estimator.fit(X, y)
        for w in caught:
            if issubclass(w.category, ConvergenceWarning):
                problem = f"iteration limit ({max_iter}) reached"
            else:
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
        problem = problem or _separation(estimator, X, y, terms)

    neg_log_likelihood = log_loss(y, estimator.predict_proba(X), labels=[0, 1], normalize=False)
    aic = 2.0 * (len(terms) + 1) + 2.0 * neg_log_likelihood
    return estimator, aic, problem


def fit_logistic(train: pd.DataFrame, vocabulary: Sequence[str],
                 max_iter: int = 1000, max_steps: int = 1000) -> LogisticModel:
    """
    Fit logistic regression on every vocabulary term, then prune by stepwise AIC.

    Each step tries dropping every term in the model and re-adding every term
    outside it, and takes the single move with the lowest AIC. The search stops
    when no move lowers the AIC.
    """
    vocabulary = tuple(vocabulary)
    _check_vocabulary(train, vocabulary)
    _check_both_classes(train[LABEL_COLUMN].to_numpy())

    constant = [t for t in vocabulary if train[t].nunique() < 2]
    if constant:
        logger.warning("Dropping %d zero-variance terms before fitting: %s",
                       len(constant), ", ".join(constant))
    scope = [t for t in vocabulary if t not in constant]

    current = list(scope)
    estimator, aic, problem = _fit_terms(train, current, max_iter)
    path = [StepRecord("start", None, aic)]
    logger.info("Start: %d terms, AIC=%.2f", len(current), aic)
    failed_fits = 0

    for _ in range(max_steps):
        best = None
        moves = [("-", t) for t in current] + [("+", t) for t in scope if t not in current]
        for action, term in moves:
            if action == "-":
                candidate = [t for t in current if t != term]
            else:
                # keep vocabulary order so refits are deterministic
                candidate = [t for t in scope if t in current or t == term]
            fitted = _fit_terms(train, candidate, max_iter)
            if fitted[2]:
                failed_fits += 1
            if best is None or fitted[1] < best[0]:
                best = (fitted[1], action, term, candidate, fitted)

        if best is None or best[0] >= aic - 1e-7:
            break
        aic, action, term, current, (estimator, _, problem) = best
        path.append(StepRecord(action, term, aic))
        logger.info("Step: %s %s, AIC=%.2f", action, term, aic)

    if failed_fits:
        logger.warning("%d candidate fits did not converge during the stepwise search",
                       failed_fits)
    if problem:
        logger.warning("Final logistic regression did not converge (%s); "
                       "coefficients are a partial result", problem)

    logger.info("Stepwise selection kept %d of %d terms (AIC=%.2f)",
                len(current), len(vocabulary), aic)
    return LogisticModel(vocabulary=vocabulary, terms=tuple(current), estimator=estimator,
                         aic=aic, converged=problem is None, path=path)


# ---------- Naive Bayes ----------


@dataclass
class NaiveBayesModel:
    vocabulary: Tuple[str, ...]
    terms: Tuple[str, ...]
    estimator: MultinomialNB
    alpha: float

    def priors(self) -> pd.Series:
        return pd.Series(np.exp(self.estimator.class_log_prior_), index=list(CLASS_NAMES),
                         name="prior")

    def conditional_probabilities(self) -> pd.DataFrame:
        """P(term | class), smoothed; one row per class."""
        return pd.DataFrame(np.exp(self.estimator.feature_log_prob_),
                            index=list(CLASS_NAMES), columns=list(self.terms))

    def term_counts(self) -> pd.DataFrame:
        return pd.DataFrame(self.estimator.feature_count_,
                            index=list(CLASS_NAMES), columns=list(self.terms))

    def predict_proba(self, dataset: pd.DataFrame) -> pd.DataFrame:
        """Posterior of both classes for every row."""
        _check_vocabulary(dataset, self.vocabulary)
        X = dataset[list(self.terms)].to_numpy(dtype=float)
        return pd.DataFrame(self.estimator.predict_proba(X), index=dataset.index,
                            columns=list(CLASS_NAMES))


def fit_naive_bayes(train: pd.DataFrame, vocabulary: Sequence[str],
                    terms: Optional[Sequence[str]] = None,
                    alpha: float = 1.0) -> NaiveBayesModel:
    """Multinomial Naive Bayes over ``terms`` (default: whole vocabulary) with additive smoothing."""
    if alpha <= 0:
        raise ValueError(f"alpha must be > 0, got {alpha}")
    vocabulary = tuple(vocabulary)
    _check_vocabulary(train, vocabulary)
    y = train[LABEL_COLUMN].to_numpy()
    _check_both_classes(y)

    if not terms:
        if terms is not None:
            logger.warning("No terms left for Naive Bayes; using the whole vocabulary")
        terms = vocabulary
    terms = tuple(terms)
    missing = [t for t in terms if t not in vocabulary]
    if missing:
        raise ValueError(f"Terms not in vocabulary: {', '.join(missing)}")

    estimator = MultinomialNB(alpha=alpha)
    estimator.fit(train[list(terms)].to_numpy(dtype=float), y)
    logger.info("Naive Bayes trained on %d terms (alpha=%g)", len(terms), alpha)
    return NaiveBayesModel(vocabulary=vocabulary, terms=terms, estimator=estimator, alpha=alpha)
