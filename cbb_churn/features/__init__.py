"""Feature selection and preprocessing recipe."""

from .recipe import FittedRecipe, Recipe
from .selector import FeatureSelector, find_constant_columns, find_redundant_lags
from .splines import NaturalSplineTransformer

__all__ = [
    "FeatureSelector",
    "FittedRecipe",
    "NaturalSplineTransformer",
    "Recipe",
    "find_constant_columns",
    "find_redundant_lags",
]
