"""
Grid Search Module
==================

Exhaustive evaluation of a hyperparameter grid over cross-validation
folds. ``tune_grid`` holds no state between calls: everything it needs
(candidates, folds, data, fit and score callables) is passed in, and
results are keyed by (candidate, fold) so parallel execution gives the
same ranking as a sequential run.
"""

import itertools
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger

from cbb_churn.exceptions import ConfigurationError, FitError

ERROR_POLICIES = ("raise", "flag")

Fold = Tuple[np.ndarray, np.ndarray]


def build_grid(param_grid: Mapping[str, Sequence[Any]]) -> List[Dict[str, Any]]:
    """
    Cartesian product of parameter values.

    The first key varies slowest, so ``{"tree_depth": [3, 5], "deg_free": [2, 3]}``
    enumerates (3, 2), (3, 3), (5, 2), (5, 3).
    """
    keys = list(param_grid)
    for key in keys:
        values = param_grid[key]
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence) or len(values) == 0:
            raise ConfigurationError(f"Grid values for '{key}' must be a non-empty list")
    return [dict(zip(keys, combo)) for combo in itertools.product(*(param_grid[k] for k in keys))]


@dataclass(frozen=True)
class FoldFailure:
    """A candidate/fold combination that failed to fit or score."""

    candidate: int
    fold: int
    params: Dict[str, Any]
    error: str


@dataclass
class TuningResult:
    """Ranked outcome of a grid search."""

    scores: pd.DataFrame
    fold_scores: pd.DataFrame
    failures: List[FoldFailure]
    metric: str
    param_names: Tuple[str, ...]

    @property
    def best_params(self) -> Dict[str, Any]:
        best = self.scores.iloc[0]
        return {name: _unbox(best[name]) for name in self.param_names}

    @property
    def best_score(self) -> float:
        return float(self.scores.iloc[0]["mean_score"])

    @property
    def degraded(self) -> bool:
        return bool(self.failures)

    def ranked(self) -> List[Tuple[Dict[str, Any], float]]:
        """(params, mean score) pairs, best first."""
        return [
            ({name: _unbox(row[name]) for name in self.param_names}, float(row["mean_score"]))
            for _, row in self.scores.iterrows()
        ]


def tune_grid(
    candidates: Sequence[Dict[str, Any]],
    folds: Sequence[Fold],
    data: pd.DataFrame,
    fit_fn: Callable[[Dict[str, Any], pd.DataFrame], Any],
    score_fn: Callable[[Any, pd.DataFrame], float],
    metric: str = "roc_auc",
    greater_is_better: bool = True,
    error_policy: str = "raise",
    n_jobs: Optional[int] = 1
) -> TuningResult:
    """
    Fit and score every candidate on every fold.

    Args:
        candidates: Parameter dictionaries, in enumeration order
        folds: (train_positions, validation_positions) pairs into ``data``
        data: Training rows
        fit_fn: ``fit_fn(params, train_rows)`` returning a fitted object
        score_fn: ``score_fn(fitted, validation_rows)`` returning a float
        metric: Name recorded in the result
        greater_is_better: Ranking direction
        error_policy: "raise" stops at the first failure; "flag" records it
            and marks the candidate as degraded
        n_jobs: joblib worker count

    Returns:
        TuningResult ranked best first. Ties keep enumeration order and
        degraded candidates rank after complete ones.
    """
    if error_policy not in ERROR_POLICIES:
        raise ConfigurationError(f"Unknown error_policy: {error_policy}. Available: {list(ERROR_POLICIES)}")
    if not candidates:
        raise ConfigurationError("Grid search needs at least one candidate")
    if not folds:
        raise ConfigurationError("Grid search needs at least one fold")

    param_names = tuple(dict.fromkeys(key for params in candidates for key in params))
    logger.info(f"Grid search: {len(candidates)} candidates x {len(folds)} folds on {metric}")

    tasks = [
        (ci, fi, params, train_idx, val_idx)
        for ci, params in enumerate(candidates)
        for fi, (train_idx, val_idx) in enumerate(folds)
    ]
    outcomes = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_fit_and_score)(ci, fi, params, train_idx, val_idx, data, fit_fn, score_fn, error_policy)
        for ci, fi, params, train_idx, val_idx in tasks
    )

    results: Dict[Tuple[int, int], float] = {}
    failures: List[FoldFailure] = []
    for ci, fi, score, error in outcomes:
        if error is None:
            results[(ci, fi)] = score
        else:
            failures.append(FoldFailure(ci, fi, dict(candidates[ci]), error))
    failures.sort(key=lambda f: (f.candidate, f.fold))

    fold_rows = []
    for (ci, fi), score in sorted(results.items()):
        fold_rows.append({"candidate": ci, **candidates[ci], "fold": fi, "score": score})
    fold_scores = pd.DataFrame(fold_rows, columns=["candidate", *param_names, "fold", "score"])

    rows = []
    for ci, params in enumerate(candidates):
        scores = [results[(ci, fi)] for fi in range(len(folds)) if (ci, fi) in results]
        n_failed = len(folds) - len(scores)
        rows.append({
            "candidate": ci,
            **params,
            "mean_score": float(np.mean(scores)) if scores else math.nan,
            "std_score": float(np.std(scores, ddof=1)) if len(scores) > 1 else math.nan,
            "n_folds": len(scores),
            "n_failed": n_failed,
            "degraded": n_failed > 0,
        })
        if n_failed:
            logger.warning(f"Candidate {params} is degraded: {n_failed}/{len(folds)} folds failed")
        else:
            logger.info(f"Candidate {params}: mean {metric} = {rows[-1]['mean_score']:.4f}")

    def rank_key(row):
        mean = row["mean_score"]
        missing = math.isnan(mean)
        signed = 0.0 if missing else (-mean if greater_is_better else mean)
        return (missing, row["degraded"], signed, row["candidate"])

    ordered = sorted(rows, key=rank_key)
    for rank, row in enumerate(ordered, start=1):
        row["rank"] = rank

    if math.isnan(ordered[0]["mean_score"]):
        raise FitError("Every candidate failed on every fold; no hyperparameters can be selected")

    scores = pd.DataFrame(
        ordered,
        columns=["rank", "candidate", *param_names, "mean_score", "std_score", "n_folds", "n_failed", "degraded"],
    ).reset_index(drop=True)

    best = ordered[0]
    logger.info(f"Best candidate: {candidates[best['candidate']]} ({metric} = {best['mean_score']:.4f})")

    return TuningResult(
        scores=scores,
        fold_scores=fold_scores,
        failures=failures,
        metric=metric,
        param_names=param_names,
    )


def _fit_and_score(ci, fi, params, train_idx, val_idx, data, fit_fn, score_fn, error_policy):
    train_rows = data.iloc[train_idx]
    val_rows = data.iloc[val_idx]
    try:
        fitted = fit_fn(params, train_rows)
        score = float(score_fn(fitted, val_rows))
        if math.isnan(score):
            raise ValueError("score is undefined on this fold")
    except ConfigurationError:
        raise
    except Exception as exc:
        message = f"{type(exc).__name__}: {exc}"
        logger.error(f"Fit failed for {params} on fold {fi}: {message}")
        if error_policy == "raise":
            raise FitError(f"Fit failed for {params} on fold {fi}: {message}", params=dict(params), fold=fi) from exc
        return ci, fi, math.nan, message

    logger.debug(f"Candidate {params} fold {fi}: {score:.4f}")
    return ci, fi, score, None


def _unbox(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value
