"""
End-to-end tests for the churn workflow.
"""

import numpy as np
import pytest

from cbb_churn.data import generate_sample_data
from cbb_churn.exceptions import ConfigurationError, DataError
from cbb_churn.models import ChurnWorkflow, WorkflowResult

SMALL_GRID = {"tree_depth": [2, 3], "deg_free": [2]}


class TestWorkflowRun:
    """Split, tune, refit and score in one call."""

    def test_separable_data_scores_near_perfect(self, config, separable_data):
        """Churn decided by arpu alone is recovered on the test rows."""
        result = ChurnWorkflow(config, random_state=42).run(separable_data)

        assert isinstance(result, WorkflowResult)
        assert result.test_roc_auc > 0.95
        assert result.n_train == 80
        assert result.n_test == 20

    def test_default_grid_has_four_candidates(self, config, separable_data):
        result = ChurnWorkflow(config, random_state=0).run(separable_data)

        assert len(result.tuning.scores) == 4
        assert result.best_params["tree_depth"] in (3, 5)
        assert result.best_params["deg_free"] in (2, 3)

    def test_noise_labels_score_near_chance(self, config):
        """Labels independent of every feature give ROC-AUC around 0.5."""
        aucs = []
        for seed in (1, 2, 3):
            df = generate_sample_data(n_customers=1500, seed=seed, signal="noise")
            result = ChurnWorkflow(config, random_state=seed).run(df)
            aucs.append(result.test_roc_auc)

        assert all(0.4 <= auc <= 0.6 for auc in aucs)
        assert 0.4 < np.mean(aucs) < 0.6

    def test_zero_inflated_usage(self, config):
        """Half the customers with zero arpu still tune on the default grid."""
        df = generate_sample_data(n_customers=400, seed=3)
        df.loc[df.index[:200], "arpu"] = 0.0

        result = ChurnWorkflow(config).run(df)

        assert not result.tuning.degraded
        assert len(result.tuning.scores) == 4
        assert result.pipeline.recipe.knots[0] == 0.0

    def test_product_codes_with_reserved_characters(self, config, sample_data):
        codes = {"BAS": "[BAS]", "PLU": "<PLU", "PRE": "PRE", "UNL": "UNL"}
        df = sample_data.assign(product_code=sample_data["product_code"].map(codes))

        result = ChurnWorkflow(config, random_state=0, param_grid=SMALL_GRID).run(df)

        assert result.engine == "xgboost"
        assert "<PLU" in result.pipeline.recipe.levels["product_code"]

    def test_same_seed_is_reproducible(self, config, sample_data):
        first = ChurnWorkflow(config, random_state=5, param_grid=SMALL_GRID).run(sample_data)
        second = ChurnWorkflow(config, random_state=5, param_grid=SMALL_GRID).run(sample_data)

        assert first.best_params == second.best_params
        assert first.test_metrics == second.test_metrics
        assert first.test_data.index.equals(second.test_data.index)

    def test_records_dropped_columns(self, config, sample_data):
        result = ChurnWorkflow(config, random_state=0, param_grid=SMALL_GRID).run(sample_data)

        assert set(result.dropped_columns) == {"cust_id", "extract_date", "access_fee_t1", "access_fee_t2"}
        assert "cust_id" not in result.pipeline.recipe.predictors
        assert "churn" not in result.pipeline.feature_names

    def test_engine_override(self, config, sample_data):
        result = ChurnWorkflow(
            config, random_state=0, engine="gradient_boosting", param_grid={"tree_depth": [2]}
        ).run(sample_data)

        assert result.engine == "gradient_boosting"
        assert 0.0 <= result.test_roc_auc <= 1.0

    def test_summary(self, config, sample_data):
        result = ChurnWorkflow(config, random_state=0, param_grid=SMALL_GRID).run(sample_data)
        text = result.summary()

        assert "Test ROC-AUC" in text
        assert "Best params" in text
        assert "WARNING" not in text


class TestWorkflowErrors:
    """Input problems surface before any model is fitted."""

    def test_single_class_target_fails_before_fitting(self, config, sample_data, monkeypatch):
        workflow = ChurnWorkflow(config, random_state=0)
        calls = []
        monkeypatch.setattr(workflow.trainer, "fit_pipeline", lambda *args: calls.append(args))

        with pytest.raises(ConfigurationError, match="binary target"):
            workflow.run(sample_data.assign(churn=0))
        assert calls == []

    def test_missing_required_column(self, config, sample_data):
        with pytest.raises(DataError, match="arpu"):
            ChurnWorkflow(config, random_state=0).run(sample_data.drop(columns=["arpu"]))

    def test_unknown_engine(self, config):
        with pytest.raises(ConfigurationError, match="Unknown engine"):
            ChurnWorkflow(config, engine="random_forest")

    def test_run_dataset_uses_registered_loader(self, config, separable_data):
        workflow = ChurnWorkflow(config, random_state=0, param_grid=SMALL_GRID)
        workflow.loader.register("cbb", lambda: separable_data.copy())

        result = workflow.run_dataset("cbb")

        assert result.n_train + result.n_test == len(separable_data)
