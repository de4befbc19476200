"""Scoring metrics for binary churn probabilities."""

from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np
import pandas as pd
from sklearn.metrics import (
    average_precision_score,
    brier_score_loss,
    log_loss,
    roc_auc_score,
)

from cbb_churn.exceptions import ConfigurationError


@dataclass(frozen=True)
class Metric:
    """A probability-based score and its optimisation direction."""

    name: str
    func: Callable[[np.ndarray, np.ndarray], float]
    greater_is_better: bool = True

    def __call__(self, y_true, y_prob) -> float:
        return float(self.func(y_true, y_prob))

    def is_better(self, a: float, b: float) -> bool:
        return a > b if self.greater_is_better else a < b


def _log_loss(y_true, y_prob) -> float:
    return log_loss(y_true, y_prob, labels=[0, 1])


METRICS: Dict[str, Metric] = {
    "roc_auc": Metric("roc_auc", roc_auc_score),
    "average_precision": Metric("average_precision", average_precision_score),
    "log_loss": Metric("log_loss", _log_loss, greater_is_better=False),
    "brier_score": Metric("brier_score", brier_score_loss, greater_is_better=False),
}


def get_metric(name: str) -> Metric:
    """Look up a metric by name."""
    if name not in METRICS:
        raise ConfigurationError(f"Unknown metric: {name}. Available: {list(METRICS)}")
    return METRICS[name]


def check_binary_target(y: pd.Series, metric: str = "roc_auc") -> Metric:
    """
    Resolve ``metric`` and confirm it is defined for ``y``.

    Every registered metric scores positive-class probabilities, so the
    target must hold exactly two classes.
    """
    resolved = get_metric(metric)
    n_classes = pd.Series(y).nunique(dropna=True)
    if n_classes != 2:
        raise ConfigurationError(
            f"Metric '{metric}' requires a binary target, found {n_classes} class(es)"
        )
    return resolved
