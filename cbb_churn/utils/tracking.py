"""MLflow experiment tracking for finished workflow runs."""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

import mlflow
from loguru import logger

from cbb_churn.utils.helpers import get_timestamp
from config import ROOT_DIR, get_config

if TYPE_CHECKING:
    from cbb_churn.models.workflow import WorkflowResult


class ExperimentTracker:
    """Log workflow results to MLflow when enabled in config."""

    def __init__(self, config: Optional[dict] = None):
        self.config = config or get_config()
        self.mlflow_config = self.config.get("mlflow", {})
        self.enabled = bool(self.mlflow_config.get("enabled", False))
        self._configured = False

    def _setup_mlflow(self):
        """Setup MLflow tracking."""
        tracking_uri = self.mlflow_config.get("tracking_uri", "mlruns")
        if "://" not in tracking_uri:
            tracking_uri = (ROOT_DIR / tracking_uri).as_uri()

        mlflow.set_tracking_uri(tracking_uri)
        experiment_name = self.mlflow_config.get("experiment_name", "cbb_churn")
        mlflow.set_experiment(experiment_name)

        logger.info(f"MLflow tracking URI: {tracking_uri}")
        logger.info(f"MLflow experiment: {experiment_name}")
        self._configured = True

    def log_result(self, result: "WorkflowResult", artifacts_dir: Optional[Path] = None) -> Optional[str]:
        """
        Log best parameters, CV score, test metrics and the tuning table.

        Returns:
            MLflow run id, or None when tracking is disabled
        """
        if not self.enabled:
            return None
        if not self._configured:
            self._setup_mlflow()

        with mlflow.start_run(run_name=f"{result.engine}_{get_timestamp()}") as run:
            mlflow.set_tag("model_type", result.engine)
            mlflow.log_params(result.best_params)
            mlflow.log_param("random_state", result.random_state)
            mlflow.log_metric(f"cv_{result.tuning.metric}", result.tuning.best_score)
            for name, value in result.test_metrics.items():
                mlflow.log_metric(f"test_{name}", value)

            table_path = Path(artifacts_dir or ROOT_DIR / "reports") / "tuning_results.csv"
            table_path.parent.mkdir(parents=True, exist_ok=True)
            result.tuning.scores.to_csv(table_path, index=False)
            mlflow.log_artifact(str(table_path))

            logger.info(f"Logged run {run.info.run_id} to MLflow")
            return run.info.run_id
