"""Models module for specification, tuning, fitting and evaluation."""

from .evaluator import ModelEvaluator
from .metrics import METRICS, check_binary_target, get_metric
from .spec import ENGINES, ModelSpec
from .trainer import FittedPipeline, ModelTrainer
from .tuning import FoldFailure, TuningResult, build_grid, tune_grid
from .workflow import ChurnWorkflow, WorkflowResult

__all__ = [
    "ENGINES",
    "METRICS",
    "ChurnWorkflow",
    "FittedPipeline",
    "FoldFailure",
    "ModelEvaluator",
    "ModelSpec",
    "ModelTrainer",
    "TuningResult",
    "WorkflowResult",
    "build_grid",
    "check_binary_target",
    "get_metric",
    "tune_grid",
]
