"""
Model Trainer Module
====================

Binds the preprocessing recipe to a boosted tree model, tunes the pair
with grid search over cross-validation folds and refits the winner.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from cbb_churn.exceptions import ConfigurationError, DataError
from cbb_churn.features.recipe import FittedRecipe, Recipe
from cbb_churn.models.metrics import Metric, check_binary_target
from cbb_churn.models.spec import ModelSpec
from cbb_churn.models.tuning import Fold, TuningResult, build_grid, tune_grid
from config import get_config


@dataclass(frozen=True)
class FittedPipeline:
    """Fitted recipe plus trained model for one hyperparameter candidate."""

    recipe: FittedRecipe
    model_spec: ModelSpec
    params: Dict[str, Any]
    model: Any = field(repr=False, compare=False)

    def predict_proba(self, df: pd.DataFrame) -> np.ndarray:
        """Positive-class (churn) probability for each row."""
        return self.model.predict_proba(self.recipe.apply(df))[:, 1]

    @property
    def feature_names(self) -> Tuple[str, ...]:
        return self.recipe.feature_names


class ModelTrainer:
    """Tune and fit recipe + model pipelines."""

    def __init__(
        self,
        config: Optional[dict] = None,
        recipe: Optional[Recipe] = None,
        model_spec: Optional[ModelSpec] = None,
        random_state: Optional[int] = None
    ):
        """
        Initialize ModelTrainer.

        Args:
            config: Configuration dictionary
            recipe: Base recipe (defaults to one built from config)
            model_spec: Base model specification (defaults to config)
            random_state: Seed passed to every model fit
        """
        self.config = config or get_config()
        self.tuning_config = self.config.get("tuning", {})
        self.recipe = recipe or Recipe.from_config(self.config)
        self.model_spec = model_spec or ModelSpec.from_config(self.config)
        if random_state is None:
            random_state = self.config.get("data", {}).get("random_state", 42)
        self.random_state = random_state

        self.metric_name = self.tuning_config.get("metric", "roc_auc")

    @property
    def target(self) -> str:
        return self.recipe.outcome

    def split_params(self, params: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Route hyperparameters to the recipe or the model by name."""
        recipe_params, model_params = {}, {}
        for name, value in params.items():
            if name in Recipe.tunable():
                recipe_params[name] = value
            elif name in ModelSpec.tunable():
                model_params[name] = value
            else:
                raise ConfigurationError(
                    f"Unknown hyperparameter '{name}'. "
                    f"Tunable: {list(Recipe.tunable() + ModelSpec.tunable())}"
                )
        return recipe_params, model_params

    def fit_pipeline(self, params: Mapping[str, Any], train_df: pd.DataFrame) -> FittedPipeline:
        """
        Fit the recipe and model on ``train_df`` for one candidate.

        Args:
            params: Hyperparameter candidate
            train_df: Training rows with a 0/1 target column

        Returns:
            FittedPipeline
        """
        if self.target not in train_df.columns:
            raise DataError(f"Missing required columns: {self.target}")

        recipe_params, model_params = self.split_params(params)
        recipe = self.recipe.with_params(**recipe_params)
        model_spec = self.model_spec.with_params(**model_params)

        fitted_recipe = recipe.fit(train_df)
        X = fitted_recipe.apply(train_df)
        y = train_df[self.target].to_numpy()

        model = model_spec.build(random_state=self.random_state)
        model.fit(X, y)

        return FittedPipeline(
            recipe=fitted_recipe,
            model_spec=model_spec,
            params=dict(params),
            model=model,
        )

    def score_pipeline(
        self,
        pipeline: FittedPipeline,
        df: pd.DataFrame,
        metric: Optional[Metric] = None
    ) -> float:
        """Score ``pipeline`` on held-out rows."""
        metric = metric or check_binary_target(df[self.target], self.metric_name)
        return metric(df[self.target].to_numpy(), pipeline.predict_proba(df))

    def tune(
        self,
        train_df: pd.DataFrame,
        folds: Sequence[Fold],
        param_grid: Optional[Mapping[str, Sequence[Any]]] = None,
        n_jobs: Optional[int] = None,
        error_policy: Optional[str] = None
    ) -> TuningResult:
        """
        Grid search over recipe and model hyperparameters.

        Args:
            train_df: Training partition with a 0/1 target column
            folds: Positional (train, validation) index pairs into train_df
            param_grid: Parameter name -> candidate values
            n_jobs: Parallel workers
            error_policy: "raise" or "flag"

        Returns:
            TuningResult ranked best first
        """
        param_grid = param_grid or self.tuning_config.get("grid", {"tree_depth": [3, 5], "deg_free": [2, 3]})
        n_jobs = n_jobs or self.tuning_config.get("n_jobs", 1)
        error_policy = error_policy or self.tuning_config.get("error_policy", "raise")

        # Configuration problems surface before any fit
        metric = check_binary_target(train_df[self.target], self.metric_name)
        candidates = build_grid(param_grid)
        for params in candidates:
            recipe_params, model_params = self.split_params(params)
            self.recipe.with_params(**recipe_params)
            self.model_spec.with_params(**model_params)

        logger.info(f"Tuning {self.model_spec.engine} pipeline over {list(param_grid)}")

        return tune_grid(
            candidates,
            folds,
            train_df,
            fit_fn=self.fit_pipeline,
            score_fn=lambda pipeline, rows: self.score_pipeline(pipeline, rows, metric),
            metric=metric.name,
            greater_is_better=metric.greater_is_better,
            error_policy=error_policy,
            n_jobs=n_jobs,
        )

    def fit_final(self, train_df: pd.DataFrame, params: Mapping[str, Any]) -> FittedPipeline:
        """Refit the chosen candidate on the whole training partition."""
        logger.info(f"Final fit with {dict(params)} on {len(train_df)} rows")
        return self.fit_pipeline(params, train_df)

    @staticmethod
    def tuning_table(result: TuningResult) -> pd.DataFrame:
        """Candidate -> mean score mapping in enumeration order."""
        return result.scores.sort_values("candidate").reset_index(drop=True)

