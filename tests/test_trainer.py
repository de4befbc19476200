"""
Tests for recipe + model pipelines and their tuning.
"""

import numpy as np
import pytest

from cbb_churn.data import DataLoader
from cbb_churn.exceptions import ConfigurationError, DataError
from cbb_churn.models import FittedPipeline, ModelSpec, ModelTrainer


@pytest.fixture
def folds(config, prepared_data):
    return DataLoader(config).get_folds(prepared_data, random_state=0)


class TestSplitParams:
    """Hyperparameters are routed by name."""

    def test_routes_recipe_and_model_params(self, trainer):
        recipe_params, model_params = trainer.split_params({"tree_depth": 4, "deg_free": 3})

        assert recipe_params == {"deg_free": 3}
        assert model_params == {"tree_depth": 4}

    def test_unknown_param(self, trainer):
        with pytest.raises(ConfigurationError, match="Unknown hyperparameter 'learn_rate'"):
            trainer.split_params({"learn_rate": 0.1})


class TestFitPipeline:
    """One candidate fitted on one set of rows."""

    def test_fitted_pipeline(self, fitted_pipeline, holdout_data):
        assert isinstance(fitted_pipeline, FittedPipeline)
        assert fitted_pipeline.params == {"tree_depth": 3, "deg_free": 2}
        assert fitted_pipeline.model_spec.tree_depth == 3
        assert fitted_pipeline.recipe.recipe.deg_free == 2
        assert "arpu_ns2" in fitted_pipeline.feature_names

    def test_probabilities_in_unit_interval(self, fitted_pipeline, holdout_data):
        probs = fitted_pipeline.predict_proba(holdout_data)

        assert probs.shape == (len(holdout_data),)
        assert np.all((probs >= 0) & (probs <= 1))

    def test_knots_come_from_training_rows(self, fitted_pipeline, prepared_data):
        train_arpu = prepared_data["arpu"].iloc[:300]

        assert fitted_pipeline.recipe.knots[0] == pytest.approx(train_arpu.min())
        assert fitted_pipeline.recipe.knots[-1] == pytest.approx(train_arpu.max())

    def test_same_seed_same_predictions(self, config, prepared_data, holdout_data):
        params = {"tree_depth": 3, "deg_free": 2}
        first = ModelTrainer(config, random_state=1).fit_final(prepared_data.iloc[:300], params)
        second = ModelTrainer(config, random_state=1).fit_final(prepared_data.iloc[:300], params)

        np.testing.assert_array_equal(
            first.predict_proba(holdout_data), second.predict_proba(holdout_data)
        )

    @pytest.mark.parametrize("engine", ["xgboost", "lightgbm"])
    def test_bracketed_product_codes(self, config, prepared_data, engine):
        """Category levels with engine-reserved characters still fit."""
        codes = {"BAS": "[BAS]", "PLU": "<PLU", "PRE": "PRE", "UNL": "{UNL}"}
        rows = prepared_data.assign(product_code=prepared_data["product_code"].map(codes))
        trainer = ModelTrainer(config, model_spec=ModelSpec(engine=engine), random_state=0)

        pipeline = trainer.fit_final(rows.iloc[:300], {"tree_depth": 3, "deg_free": 2})

        assert "[BAS]" in pipeline.recipe.levels["product_code"]
        assert pipeline.predict_proba(rows.iloc[300:]).shape == (len(rows) - 300,)

    def test_missing_target(self, trainer, prepared_data):
        with pytest.raises(DataError, match="churn"):
            trainer.fit_pipeline({"tree_depth": 3}, prepared_data.drop(columns=["churn"]))


class TestTune:
    """Grid search over recipe and model hyperparameters."""

    def test_four_candidates_on_three_folds(self, trainer, prepared_data, folds):
        grid = {"tree_depth": [2, 3], "deg_free": [2, 3]}
        result = trainer.tune(prepared_data, folds, param_grid=grid)

        assert len(result.scores) == 4
        assert len(result.fold_scores) == 12
        assert result.metric == "roc_auc"
        assert result.param_names == ("tree_depth", "deg_free")
        assert result.best_score == result.scores["mean_score"].max()

    def test_tuning_table_in_enumeration_order(self, trainer, prepared_data, folds):
        grid = {"tree_depth": [2, 3], "deg_free": [2, 3]}
        table = ModelTrainer.tuning_table(trainer.tune(prepared_data, folds, param_grid=grid))

        assert table["candidate"].tolist() == [0, 1, 2, 3]
        assert table[["tree_depth", "deg_free"]].values.tolist() == [[2, 2], [2, 3], [3, 2], [3, 3]]

    def test_invalid_grid_value_fails_before_fitting(self, trainer, prepared_data, folds, monkeypatch):
        """A bad candidate anywhere in the grid aborts before the first fit."""
        calls = []
        monkeypatch.setattr(trainer, "fit_pipeline", lambda *args: calls.append(args))

        with pytest.raises(ConfigurationError):
            trainer.tune(prepared_data, folds, param_grid={"tree_depth": [3, 0]})
        with pytest.raises(ConfigurationError, match="Unknown hyperparameter"):
            trainer.tune(prepared_data, folds, param_grid={"learn_rate": [0.1]})

        assert calls == []

    def test_single_class_target(self, trainer, prepared_data, folds):
        rows = prepared_data.assign(churn=0)
        with pytest.raises(ConfigurationError, match="binary target"):
            trainer.tune(rows, folds, param_grid={"tree_depth": [3]})
