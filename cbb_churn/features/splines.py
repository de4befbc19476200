"""
Natural cubic spline basis expansion.

scikit-learn's ``SplineTransformer`` builds B-splines; the churn recipe
needs the natural (linear beyond the boundary knots) cubic basis, so it is
written here as a scikit-learn transformer and composed with the library's
``ColumnTransformer``.
"""

from typing import List, Optional

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin

from cbb_churn.exceptions import ConfigurationError, FitError


class NaturalSplineTransformer(BaseEstimator, TransformerMixin):
    """
    Expand one numeric column into ``deg_free`` natural cubic spline columns.

    Boundary knots sit at the training minimum and maximum, with
    ``deg_free - 1`` interior knots at evenly spaced training quantiles.
    When ties collapse those quantiles the knots are spread over the
    distinct values instead; fewer than ``deg_free + 1`` distinct values
    is a ``FitError``.
    The basis is the truncated power form of Hastie, Tibshirani & Friedman
    (ESL, eq. 5.4-5.5) without the intercept column, so ``deg_free=1`` is
    the (rescaled) identity.

    Attributes:
        knots_: Knot locations learned in ``fit`` (boundary knots included)
    """

    def __init__(self, deg_free: int = 3):
        self.deg_free = deg_free

    def fit(self, X, y=None):
        if isinstance(self.deg_free, bool) or not isinstance(self.deg_free, (int, np.integer)) or self.deg_free < 1:
            raise ConfigurationError(f"deg_free must be an integer >= 1, got {self.deg_free!r}")

        x = self._column(X, fitting=True)
        x = x[~np.isnan(x)]
        if x.size == 0:
            raise FitError(f"Cannot fit spline on '{self.feature_name_}': no non-missing values")

        distinct = np.unique(x)
        if distinct.size < self.deg_free + 1:
            raise FitError(
                f"Cannot place {self.deg_free + 1} distinct knots on '{self.feature_name_}' "
                f"({distinct.size} distinct values); reduce deg_free"
            )

        probs = np.linspace(0.0, 1.0, self.deg_free + 1)
        knots = np.quantile(x, probs)
        if np.any(np.diff(knots) <= 0):
            # Ties (e.g. zero usage) collapsed the quantiles
            knots = np.quantile(distinct, probs)

        self.knots_ = knots
        self.n_features_in_ = 1
        return self

    def transform(self, X):
        if not hasattr(self, "knots_"):
            raise ValueError("NaturalSplineTransformer not fitted. Call fit first.")

        x = self._column(X)
        lo, hi = self.knots_[0], self.knots_[-1]
        # Rescale to [0, 1] on the training range to keep the cubes well conditioned
        scale = hi - lo
        u = (x - lo) / scale
        knots = (self.knots_ - lo) / scale

        basis = np.empty((x.shape[0], self.deg_free), dtype=float)
        basis[:, 0] = u
        last = self._truncated(u, knots, len(knots) - 2)
        for k in range(len(knots) - 2):
            basis[:, k + 1] = self._truncated(u, knots, k) - last
        return basis

    def get_feature_names_out(self, input_features=None) -> np.ndarray:
        if input_features is not None and len(input_features):
            name = input_features[0]
        else:
            name = getattr(self, "feature_name_", "x0")
        return np.asarray([f"{name}_ns{i}" for i in range(1, self.deg_free + 1)], dtype=object)

    @staticmethod
    def _truncated(u: np.ndarray, knots: np.ndarray, k: int) -> np.ndarray:
        """d_k(u) = ((u - xi_k)^3_+ - (u - xi_K)^3_+) / (xi_K - xi_k)."""
        last = knots[-1]
        return (
            np.clip(u - knots[k], 0, None) ** 3 - np.clip(u - last, 0, None) ** 3
        ) / (last - knots[k])

    def _column(self, X, fitting: bool = False) -> np.ndarray:
        columns: Optional[List[str]] = list(getattr(X, "columns", [])) or None
        arr = np.asarray(X, dtype=float)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.shape[1] != 1:
            raise ValueError(f"NaturalSplineTransformer expects one column, got {arr.shape[1]}")
        if fitting:
            self.feature_name_ = columns[0] if columns else "x0"
        return arr[:, 0]
