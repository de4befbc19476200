"""
Churn Workflow Module
=====================

End-to-end run: select features, split, tune with cross-validation,
refit the best candidate and score it on the held-out partition.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

import pandas as pd
from loguru import logger

from cbb_churn.data.data_loader import DataLoader
from cbb_churn.features.recipe import Recipe
from cbb_churn.features.selector import FeatureSelector
from cbb_churn.models.evaluator import ModelEvaluator
from cbb_churn.models.metrics import check_binary_target
from cbb_churn.models.spec import ModelSpec
from cbb_churn.models.trainer import FittedPipeline, ModelTrainer
from cbb_churn.models.tuning import TuningResult
from cbb_churn.utils.tracking import ExperimentTracker
from config import get_config


@dataclass
class WorkflowResult:
    """Container for a finished workflow run."""

    tuning: TuningResult
    pipeline: FittedPipeline
    test_metrics: Dict[str, float]
    n_train: int
    n_test: int
    random_state: int
    engine: str
    duration_seconds: float
    dropped_columns: Sequence[str] = field(default_factory=list)
    test_data: Optional[pd.DataFrame] = field(default=None, repr=False)

    @property
    def best_params(self) -> Dict[str, Any]:
        return self.tuning.best_params

    @property
    def test_roc_auc(self) -> float:
        return self.test_metrics["roc_auc"]

    def summary(self) -> str:
        """Human-readable summary."""
        params = ", ".join(f"{k}={v}" for k, v in self.best_params.items())
        lines = [
            f"[{self.engine}] seed={self.random_state} train={self.n_train} test={self.n_test}",
            f"  Best params: {params}",
            f"  CV {self.tuning.metric}: {self.tuning.best_score:.4f}",
            f"  Test ROC-AUC: {self.test_roc_auc:.4f}",
        ]
        if self.tuning.degraded:
            lines.append(f"  WARNING: {len(self.tuning.failures)} fold fit(s) failed; scores are degraded")
        return "\n".join(lines)


class ChurnWorkflow:
    """
    Single entry point for the churn walkthrough.

    Usage:
        workflow = ChurnWorkflow()
        result = workflow.run(df)
        print(result.summary())
    """

    def __init__(
        self,
        config: Optional[dict] = None,
        random_state: Optional[int] = None,
        engine: Optional[str] = None,
        param_grid: Optional[Mapping[str, Sequence[Any]]] = None,
        n_jobs: Optional[int] = None
    ):
        """
        Initialize workflow.

        Args:
            config: Configuration dictionary
            random_state: Seed for the split, the folds and every model fit
            engine: Boosted tree engine (overrides config)
            param_grid: Hyperparameter grid (overrides config)
            n_jobs: Parallel workers for tuning
        """
        self.config = config or get_config()
        self.data_config = self.config.get("data", {})
        self.random_state = random_state if random_state is not None else self.data_config.get("random_state", 42)
        self.param_grid = param_grid
        self.n_jobs = n_jobs

        self.loader = DataLoader(self.config)
        self.selector = FeatureSelector(self.config)

        model_spec = ModelSpec.from_config(self.config)
        if engine:
            model_spec = model_spec.with_params(engine=engine)
        self.trainer = ModelTrainer(
            self.config,
            recipe=Recipe.from_config(self.config),
            model_spec=model_spec,
            random_state=self.random_state,
        )
        self.evaluator = ModelEvaluator(self.config)
        self.tracker = ExperimentTracker(self.config)

    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Validate the raw table, drop excluded columns and encode the target.

        Raises DataError for missing columns and ConfigurationError for a
        target the metric cannot score, before anything is fitted.
        """
        self.loader.require_columns(df)
        target = self.loader.target_column
        check_binary_target(df[target], self.trainer.metric_name)

        selected = self.selector.select(df, protect=[target])
        selected = selected.copy()
        selected[target] = self.loader.encode_target(selected[target])
        return selected

    def run(self, df: pd.DataFrame) -> WorkflowResult:
        """
        Execute the full workflow.

        Args:
            df: Customer table

        Returns:
            WorkflowResult
        """
        start = time.time()
        logger.info(f"Starting churn workflow on {len(df)} rows (seed={self.random_state})")

        data = self.prepare(df)
        train_df, test_df = self.loader.get_train_test_split(data, random_state=self.random_state)
        folds = self.loader.get_folds(train_df, random_state=self.random_state)

        tuning = self.trainer.tune(train_df, folds, param_grid=self.param_grid, n_jobs=self.n_jobs)
        if tuning.degraded:
            logger.warning(f"{len(tuning.failures)} fold fit(s) failed during tuning")

        pipeline = self.trainer.fit_final(train_df, tuning.best_params)
        test_metrics = self.evaluator.evaluate(pipeline, test_df)

        result = WorkflowResult(
            tuning=tuning,
            pipeline=pipeline,
            test_metrics=test_metrics,
            n_train=len(train_df),
            n_test=len(test_df),
            random_state=self.random_state,
            engine=pipeline.model_spec.engine,
            duration_seconds=time.time() - start,
            dropped_columns=list(self.selector.dropped_columns),
            test_data=test_df,
        )

        logger.info(f"Workflow complete in {result.duration_seconds:.1f}s")
        logger.info(f"\n{result.summary()}")

        self.tracker.log_result(result)
        return result

    def run_dataset(self, name: Optional[str] = None) -> WorkflowResult:
        """Load a dataset by key (default "cbb") and run the workflow."""
        return self.run(self.loader.load_dataset(name))
