"""
Tests for the boosted tree model specification.
"""

import numpy as np
import pytest

from cbb_churn.exceptions import ConfigurationError
from cbb_churn.features import Recipe
from cbb_churn.models import ENGINES, ModelSpec


class TestModelSpec:
    """Engine registry and tree depth handling."""

    @pytest.mark.parametrize(
        "engine,depth_param",
        [
            ("xgboost", "max_depth"),
            ("lightgbm", "max_depth"),
            ("catboost", "depth"),
            ("gradient_boosting", "max_depth"),
        ],
    )
    def test_depth_reaches_estimator(self, engine, depth_param):
        model = ModelSpec(engine=engine, tree_depth=4).build(random_state=1)

        params = model.get_params()
        assert params[depth_param] == 4
        assert params["random_state"] == 1

    @pytest.mark.parametrize("depth", [0, -3, 2.0, False])
    def test_invalid_depth(self, depth):
        with pytest.raises(ConfigurationError, match="tree_depth"):
            ModelSpec(tree_depth=depth)

    def test_unknown_engine(self):
        with pytest.raises(ConfigurationError, match="Unknown engine"):
            ModelSpec(engine="random_forest")

    def test_numpy_depth_is_accepted(self):
        assert ModelSpec(tree_depth=np.int64(5)).tree_depth == 5

    def test_with_params(self):
        spec = ModelSpec(tree_depth=3)
        assert spec.with_params(tree_depth=5).tree_depth == 5
        assert spec.tree_depth == 3

        with pytest.raises(ConfigurationError, match="Unknown model parameters"):
            spec.with_params(deg_free=2)

    def test_from_config(self, config):
        spec = ModelSpec.from_config(config)
        assert spec.engine == "xgboost"
        assert spec.params == {}

    @pytest.mark.parametrize("engine", list(ENGINES))
    def test_every_engine_emits_probabilities(self, engine, prepared_data):
        """Each engine fits recipe output and returns churn probabilities."""
        fitted = Recipe(drop_columns=()).fit(prepared_data)
        X = fitted.apply(prepared_data)
        y = prepared_data["churn"].to_numpy()

        model = ModelSpec(engine=engine, tree_depth=3).build(random_state=0)
        model.fit(X, y)
        proba = model.predict_proba(X)

        assert proba.shape == (len(prepared_data), 2)
        assert ((proba >= 0) & (proba <= 1)).all()
