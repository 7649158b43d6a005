"""
Score trained models on the held-out subset.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn import metrics

from .dataset import LABEL_COLUMN
from .models import LogisticModel, NaiveBayesModel

logger = logging.getLogger(__name__)

THRESHOLD = 0.5


@dataclass
class Evaluation:
    model_name: str
    probabilities: object  # Series of P(ham), or DataFrame with both posteriors
    predictions: pd.Series
    confusion: pd.DataFrame
    converged: bool = True

    @property
    def n(self) -> int:
        return int(self.confusion.to_numpy().sum())

    @property
    def accuracy(self) -> float:
        cm = self.confusion.to_numpy()
        return float(np.trace(cm) / cm.sum()) if cm.sum() else float("nan")

    @property
    def sensitivity(self) -> float:
        """Share of actual spam predicted as spam."""
        return _ratio(self.confusion.loc[0, 0], self.confusion.loc[0].sum())

    @property
    def specificity(self) -> float:
        """Share of actual ham predicted as ham."""
        return _ratio(self.confusion.loc[1, 1], self.confusion.loc[1].sum())

    def summary(self) -> str:
        flag = "" if self.converged else " [NOT CONVERGED]"
        return (f"{self.model_name}{flag}: accuracy={self.accuracy:.4f} "
                f"sensitivity={self.sensitivity:.4f} specificity={self.specificity:.4f} "
                f"(n={self.n})")


def _ratio(num, den) -> float:
    return float(num) / float(den) if den else float("nan")


def confusion_matrix(actual, predicted) -> pd.DataFrame:
    """2x2 counts; rows are actual labels, columns predicted labels, both ordered (0, 1)."""
    cm = metrics.confusion_matrix(np.asarray(actual), np.asarray(predicted), labels=[0, 1])
    return pd.DataFrame(cm,
                        index=pd.Index([0, 1], name="actual"),
                        columns=pd.Index([0, 1], name="predicted"))


def evaluate_logistic(model: LogisticModel, test: pd.DataFrame,
                      threshold: float = THRESHOLD) -> Evaluation:
    if not model.converged:
        logger.warning("Evaluating a logistic regression that did not converge")
    proba = model.predict_proba(test)
    predictions = (proba >= threshold).astype(int).rename("prediction")
    return Evaluation(
        model_name="logistic regression",
        probabilities=proba,
        predictions=predictions,
        confusion=confusion_matrix(test[LABEL_COLUMN], predictions),
        converged=model.converged,
    )


def evaluate_naive_bayes(model: NaiveBayesModel, test: pd.DataFrame,
                         threshold: float = THRESHOLD) -> Evaluation:
    posteriors = model.predict_proba(test)
    predictions = (posteriors["ham"] >= threshold).astype(int).rename("prediction")
    return Evaluation(
        model_name="naive bayes",
        probabilities=posteriors,
        predictions=predictions,
        confusion=confusion_matrix(test[LABEL_COLUMN], predictions),
    )
