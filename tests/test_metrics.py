"""
Tests for metric lookup and target validation.
"""

import numpy as np
import pandas as pd
import pytest

from cbb_churn.exceptions import ConfigurationError
from cbb_churn.models import check_binary_target, get_metric


class TestMetrics:
    """Probability metrics and their direction."""

    def test_roc_auc_perfect_ranking(self):
        metric = get_metric("roc_auc")
        assert metric(np.array([0, 0, 1, 1]), np.array([0.1, 0.2, 0.8, 0.9])) == 1.0
        assert metric.greater_is_better

    def test_log_loss_is_lower_better(self):
        metric = get_metric("log_loss")
        assert not metric.greater_is_better
        assert metric.is_better(0.2, 0.3)

    def test_unknown_metric(self):
        with pytest.raises(ConfigurationError, match="Unknown metric"):
            get_metric("accuracy_at_k")


class TestBinaryTarget:
    """Configuration-time check that the metric is defined for the label."""

    def test_binary_target_passes(self):
        assert check_binary_target(pd.Series([0, 1, 1])).name == "roc_auc"

    def test_single_class(self):
        with pytest.raises(ConfigurationError, match="1 class"):
            check_binary_target(pd.Series([1, 1, 1]))

    def test_multiclass(self):
        with pytest.raises(ConfigurationError, match="binary target"):
            check_binary_target(pd.Series([0, 1, 2]))
