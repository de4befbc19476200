"""
Preprocessing Recipe Module
===========================

A recipe is declared once (``Recipe``) and fitted against training rows
(``Recipe.fit``), producing a ``FittedRecipe`` whose encoding levels and
spline knots are frozen. Applying a fitted recipe never refits, so
validation and test rows cannot influence the transform.
"""

from dataclasses import dataclass, field, fields, replace
from numbers import Integral
from typing import Any, Dict, Sequence, Tuple

import pandas as pd
from loguru import logger
from pandas.api.types import is_bool_dtype, is_numeric_dtype
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder

from cbb_churn.exceptions import ConfigurationError, DataError
from cbb_churn.features.splines import NaturalSplineTransformer

_UNSAFE_CHARS = str.maketrans({
    "[": "(", "]": ")", "<": "lt", "{": "(", "}": ")", "\"": "", ":": "_", ",": "_",
})


@dataclass(frozen=True)
class Recipe:
    """Declarative preprocessing steps for the churn model."""

    outcome: str = "churn"
    drop_columns: Tuple[str, ...] = ()
    numeric_categoricals: Tuple[str, ...] = ("zip_code",)
    spline_column: str = "arpu"
    deg_free: int = 2

    def __post_init__(self):
        if isinstance(self.deg_free, bool) or not isinstance(self.deg_free, Integral) or self.deg_free < 1:
            raise ConfigurationError(f"deg_free must be an integer >= 1, got {self.deg_free!r}")
        object.__setattr__(self, "deg_free", int(self.deg_free))
        # Accept lists from YAML
        object.__setattr__(self, "drop_columns", tuple(self.drop_columns))
        object.__setattr__(self, "numeric_categoricals", tuple(self.numeric_categoricals))

    @classmethod
    def from_config(cls, config: dict) -> "Recipe":
        features = config.get("features", {})
        return cls(
            outcome=config.get("data", {}).get("target_column", "churn"),
            drop_columns=tuple(features.get("drop_columns", ())),
            numeric_categoricals=tuple(features.get("numeric_categoricals", ("zip_code",))),
            spline_column=features.get("spline_column", "arpu"),
            deg_free=features.get("deg_free", 2),
        )

    @classmethod
    def tunable(cls) -> Tuple[str, ...]:
        return ("deg_free",)

    def with_params(self, **params: Any) -> "Recipe":
        unknown = set(params) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown recipe parameters: {sorted(unknown)}")
        return replace(self, **params)

    def predictors(self, df: pd.DataFrame) -> Tuple[str, ...]:
        """Every retained column except the outcome."""
        return tuple(
            col for col in df.columns
            if col != self.outcome and col not in self.drop_columns
        )

    def fit(self, df: pd.DataFrame) -> "FittedRecipe":
        """
        Learn encoding levels and spline knots from ``df``.

        Args:
            df: Training rows (the outcome column may be present or not)

        Returns:
            FittedRecipe with frozen parameters
        """
        predictors = self.predictors(df)
        missing = [
            col for col in (self.spline_column, *self.numeric_categoricals)
            if col not in predictors
        ]
        if missing:
            raise DataError(f"Missing required columns: {', '.join(missing)}")

        X = _coerce_numeric(df.loc[:, list(predictors)], self.numeric_categoricals)
        if not is_numeric_dtype(X[self.spline_column]) or is_bool_dtype(X[self.spline_column]):
            raise DataError(f"Spline column '{self.spline_column}' must be numeric")

        categorical = tuple(
            col for col in predictors
            if col not in self.numeric_categoricals
            and (not is_numeric_dtype(X[col]) or is_bool_dtype(X[col]))
        )
        numeric = tuple(
            col for col in predictors
            if col not in categorical and col != self.spline_column
        )
        non_scalar = [
            col for col in numeric
            if not is_numeric_dtype(X[col])
        ]
        if non_scalar:
            raise DataError(f"Columns are neither numeric nor categorical: {non_scalar}")

        transformer = ColumnTransformer(
            transformers=[
                (
                    "dummy",
                    OneHotEncoder(drop="first", handle_unknown="ignore", sparse_output=False),
                    list(categorical)
                ),
                ("spline", NaturalSplineTransformer(deg_free=self.deg_free), [self.spline_column]),
                ("numeric", "passthrough", list(numeric)),
            ],
            remainder="drop",
            verbose_feature_names_out=False
        )
        # Categorical values are cast to str so mixed-type levels sort
        transformer.fit(_as_str(X, categorical))

        encoder = transformer.named_transformers_["dummy"]
        levels = {
            col: tuple(cats)
            for col, cats in zip(categorical, getattr(encoder, "categories_", []))
        }
        knots = tuple(float(k) for k in transformer.named_transformers_["spline"].knots_)
        feature_names = _safe_feature_names(transformer.get_feature_names_out())

        logger.debug(
            f"Recipe fitted: {len(predictors)} predictors -> {len(feature_names)} features "
            f"(deg_free={self.deg_free}, knots={knots})"
        )

        return FittedRecipe(
            recipe=self,
            predictors=predictors,
            categorical=categorical,
            numeric=numeric,
            levels=levels,
            knots=knots,
            feature_names=feature_names,
            transformer=transformer,
        )


@dataclass(frozen=True)
class FittedRecipe:
    """A recipe bound to training data. Immutable once produced."""

    recipe: Recipe
    predictors: Tuple[str, ...]
    categorical: Tuple[str, ...]
    numeric: Tuple[str, ...]
    levels: Dict[str, Tuple[Any, ...]]
    knots: Tuple[float, ...]
    feature_names: Tuple[str, ...]
    transformer: ColumnTransformer = field(repr=False, compare=False)

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Transform rows with the frozen parameters.

        Args:
            df: Rows with at least the fitted predictor columns

        Returns:
            DataFrame of model features, indexed like ``df``
        """
        missing = [col for col in self.predictors if col not in df.columns]
        if missing:
            raise DataError(f"Missing required columns: {', '.join(missing)}")

        X = _coerce_numeric(df.loc[:, list(self.predictors)], self.recipe.numeric_categoricals)
        values = self.transformer.transform(_as_str(X, self.categorical))
        return pd.DataFrame(values, columns=list(self.feature_names), index=df.index)

    def summary(self) -> Dict[str, Any]:
        return {
            "predictors": list(self.predictors),
            "categorical": list(self.categorical),
            "numeric": list(self.numeric),
            "levels": {col: list(vals) for col, vals in self.levels.items()},
            "spline_column": self.recipe.spline_column,
            "deg_free": self.recipe.deg_free,
            "knots": list(self.knots),
            "n_features": len(self.feature_names),
        }


def _safe_feature_names(names: Sequence[Any]) -> Tuple[str, ...]:
    """
    Column names accepted by every engine.

    Dummy columns are named after raw category levels. xgboost rejects
    ``[``, ``]`` and ``<`` in feature names and lightgbm rejects JSON
    punctuation. The raw levels stay in ``FittedRecipe.levels``.
    """
    safe = []
    seen = set()
    for name in names:
        name = str(name).translate(_UNSAFE_CHARS)
        candidate, n = name, 1
        while candidate in seen:
            candidate = f"{name}_{n}"
            n += 1
        seen.add(candidate)
        safe.append(candidate)
    return tuple(safe)


def _coerce_numeric(X: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    X = X.copy()
    for col in columns:
        if col in X.columns:
            X[col] = pd.to_numeric(X[col], errors="coerce")
    return X


def _as_str(X: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    if not columns:
        return X
    X = X.copy()
    for col in columns:
        X[col] = X[col].astype(str)
    return X
