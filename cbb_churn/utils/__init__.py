"""Utility functions."""

from .helpers import setup_logging, get_timestamp, format_metrics
from .tracking import ExperimentTracker

__all__ = ["setup_logging", "get_timestamp", "format_metrics", "ExperimentTracker"]
