"""Exceptions raised by the churn workflow."""

from typing import Any, Dict, Optional


class ChurnWorkflowError(Exception):
    """Base class for all workflow errors."""


class DataError(ChurnWorkflowError, ValueError):
    """Input table is missing required columns or cannot be loaded."""


class ConfigurationError(ChurnWorkflowError, ValueError):
    """Invalid metric, target or hyperparameter setup, raised before fitting."""


class FitError(ChurnWorkflowError, RuntimeError):
    """A recipe or model fit failed for a candidate/fold combination."""

    def __init__(
        self,
        message: str,
        params: Optional[Dict[str, Any]] = None,
        fold: Optional[int] = None
    ):
        super().__init__(message)
        self.params = params
        self.fold = fold
