"""
Model Specification Module
==========================

Gradient-boosted tree classifiers with tree depth as the only tuned
hyperparameter. Everything else stays at the library default apart from
the seed and console verbosity.
"""

from dataclasses import dataclass, field, fields, replace
from numbers import Integral
from typing import Any, Dict, Optional, Tuple

from catboost import CatBoostClassifier
from lightgbm import LGBMClassifier
from sklearn.ensemble import GradientBoostingClassifier
from xgboost import XGBClassifier

from cbb_churn.exceptions import ConfigurationError

# engine -> (estimator class, name of its depth parameter, fixed extra params)
ENGINES = {
    "xgboost": (XGBClassifier, "max_depth", {}),
    "lightgbm": (LGBMClassifier, "max_depth", {"verbose": -1}),
    "catboost": (CatBoostClassifier, "depth", {"verbose": 0, "allow_writing_files": False}),
    "gradient_boosting": (GradientBoostingClassifier, "max_depth", {}),
}


@dataclass(frozen=True)
class ModelSpec:
    """Boosted tree classifier with a tunable maximum depth."""

    engine: str = "xgboost"
    tree_depth: int = 6
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.engine not in ENGINES:
            raise ConfigurationError(f"Unknown engine: {self.engine}. Available: {list(ENGINES)}")
        if isinstance(self.tree_depth, bool) or not isinstance(self.tree_depth, Integral) or self.tree_depth < 1:
            raise ConfigurationError(f"tree_depth must be an integer >= 1, got {self.tree_depth!r}")
        object.__setattr__(self, "tree_depth", int(self.tree_depth))

    @classmethod
    def from_config(cls, config: dict) -> "ModelSpec":
        model_config = config.get("model", {})
        return cls(
            engine=model_config.get("engine", "xgboost"),
            tree_depth=model_config.get("tree_depth", 6),
            params=dict(model_config.get("params") or {}),
        )

    @classmethod
    def tunable(cls) -> Tuple[str, ...]:
        return ("tree_depth",)

    def with_params(self, **params: Any) -> "ModelSpec":
        unknown = set(params) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown model parameters: {sorted(unknown)}")
        return replace(self, **params)

    def build(self, random_state: Optional[int] = None) -> Any:
        """Return an unfitted classifier exposing ``predict_proba``."""
        model_class, depth_param, fixed = ENGINES[self.engine]
        kwargs = {**fixed, **self.params, depth_param: self.tree_depth}
        if random_state is not None:
            kwargs["random_state"] = random_state
        return model_class(**kwargs)
