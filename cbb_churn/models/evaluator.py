"""
Model Evaluator Module
======================

Held-out evaluation of a fitted churn pipeline.
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from loguru import logger
from sklearn.metrics import roc_curve

from cbb_churn.exceptions import ConfigurationError
from cbb_churn.models.metrics import check_binary_target, get_metric
from cbb_churn.models.trainer import FittedPipeline
from cbb_churn.models.tuning import TuningResult
from cbb_churn.utils.helpers import format_metrics
from config import FIGURES_DIR, get_config


class ModelEvaluator:
    """Score a fitted pipeline on the test partition."""

    def __init__(self, config: Optional[dict] = None, figures_dir: Optional[Path] = None):
        """
        Initialize ModelEvaluator.

        Args:
            config: Configuration dictionary
            figures_dir: Output directory for saved plots
        """
        self.config = config or get_config()
        self.eval_config = self.config.get("evaluation", {})
        self.target = self.config.get("data", {}).get("target_column", "churn")
        self.metric_names: List[str] = list(self.eval_config.get("metrics", ["roc_auc"]))
        if "roc_auc" not in self.metric_names:
            self.metric_names.insert(0, "roc_auc")
        for name in self.metric_names:
            get_metric(name)
        self.figures_dir = Path(figures_dir or FIGURES_DIR)

    def evaluate(self, pipeline: FittedPipeline, test_df: pd.DataFrame) -> Dict[str, float]:
        """
        Compute test metrics from positive-class probabilities.

        Args:
            pipeline: Fitted recipe + model
            test_df: Held-out rows with a 0/1 target column

        Returns:
            Dictionary of metric name -> value, ROC-AUC first
        """
        y_true = test_df[self.target].to_numpy()
        try:
            check_binary_target(test_df[self.target])
        except ConfigurationError as exc:
            raise ConfigurationError(f"Test partition cannot be scored: {exc}") from exc

        y_prob = pipeline.predict_proba(test_df)
        metrics = {name: get_metric(name)(y_true, y_prob) for name in self.metric_names}

        logger.info(f"Test metrics: {format_metrics(metrics)}")
        return metrics

    def plot_roc_curve(
        self,
        pipeline: FittedPipeline,
        test_df: pd.DataFrame,
        save: bool = True,
        figsize: Tuple[int, int] = (8, 6)
    ) -> plt.Figure:
        """
        Plot the test ROC curve.

        Args:
            pipeline: Fitted pipeline
            test_df: Held-out rows
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        y_true = test_df[self.target].to_numpy()
        y_prob = pipeline.predict_proba(test_df)
        fpr, tpr, _ = roc_curve(y_true, y_prob)
        auc = get_metric("roc_auc")(y_true, y_prob)

        fig, ax = plt.subplots(figsize=figsize)
        ax.plot(fpr, tpr, label=f"{pipeline.model_spec.engine} (AUC={auc:.3f})")
        ax.plot([0, 1], [0, 1], "k--", label="Random (AUC=0.500)")
        ax.set_xlabel("False Positive Rate")
        ax.set_ylabel("True Positive Rate")
        ax.set_title("Test ROC Curve")
        ax.legend(loc="lower right")
        ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save:
            self._save(fig, "roc_curve.png")

        return fig

    def plot_tuning_heatmap(
        self,
        result: TuningResult,
        rows: str = "tree_depth",
        cols: str = "deg_free",
        save: bool = True,
        figsize: Tuple[int, int] = (7, 5)
    ) -> plt.Figure:
        """
        Heatmap of mean cross-validation score over two hyperparameters.

        Args:
            result: Grid search result
            rows: Parameter on the y axis
            cols: Parameter on the x axis
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        table = result.scores.pivot_table(index=rows, columns=cols, values="mean_score", aggfunc="mean")

        fig, ax = plt.subplots(figsize=figsize)
        sns.heatmap(table, annot=True, fmt=".3f", cmap="Blues", ax=ax)
        ax.set_title(f"Cross-validated {result.metric}")

        plt.tight_layout()

        if save:
            self._save(fig, "tuning_heatmap.png")

        return fig

    def _save(self, fig: plt.Figure, filename: str) -> Path:
        self.figures_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.figures_dir / filename
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        logger.info(f"Saved plot to {filepath}")
        return filepath

