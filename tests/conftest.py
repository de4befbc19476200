"""
Pytest fixtures for the churn workflow tests.
"""

import copy

import matplotlib
import pytest

# Add project root to path
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

matplotlib.use("Agg")

from cbb_churn.data import generate_sample_data
from cbb_churn.features import FeatureSelector
from cbb_churn.models import ModelTrainer
from config import get_config


@pytest.fixture
def config():
    """Project configuration, safe to mutate per test."""
    return copy.deepcopy(get_config())


@pytest.fixture
def sample_data():
    """400 synthetic customers with a realistic churn signal."""
    return generate_sample_data(n_customers=400, seed=7)


@pytest.fixture
def separable_data():
    """100 customers where churn == (arpu > median arpu)."""
    return generate_sample_data(n_customers=100, seed=42, signal="threshold")


@pytest.fixture
def prepared_data(config, sample_data):
    """Sample customers with identifier, date and redundant lags removed."""
    return FeatureSelector(config).select(sample_data)


@pytest.fixture
def trainer(config):
    """ModelTrainer with the default recipe and xgboost model."""
    return ModelTrainer(config, random_state=0)


@pytest.fixture
def fitted_pipeline(trainer, prepared_data):
    """Pipeline fitted on the first 300 prepared rows."""
    return trainer.fit_final(prepared_data.iloc[:300], {"tree_depth": 3, "deg_free": 2})


@pytest.fixture
def holdout_data(prepared_data):
    """The 100 prepared rows not used by ``fitted_pipeline``."""
    return prepared_data.iloc[300:]
