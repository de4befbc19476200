"""
Feature Selector Module
=======================

Removes columns that carry no information for the churn model: the
customer identifier, the extraction date (constant across a snapshot) and
lagged columns that duplicate their base variable.
"""

import re
from typing import List, Optional, Sequence

import pandas as pd
from loguru import logger

from cbb_churn.exceptions import DataError
from config import get_config

LAG_PATTERN = re.compile(r"^(?P<base>.+)_t(?P<lag>\d+)$")


def find_constant_columns(df: pd.DataFrame) -> List[str]:
    """Columns with at most one distinct non-null value."""
    return [col for col in df.columns if df[col].nunique(dropna=True) <= 1]


def find_redundant_lags(df: pd.DataFrame) -> List[str]:
    """
    Lag columns (``<base>_tN``) identical to their base column or to an
    earlier lag of the same base.
    """
    redundant = []
    lags = {}
    for col in df.columns:
        match = LAG_PATTERN.match(col)
        if match and match.group("base") in df.columns:
            lags.setdefault(match.group("base"), []).append((int(match.group("lag")), col))

    for base, cols in lags.items():
        kept = [base]
        for _, col in sorted(cols):
            if any(df[col].equals(df[other]) for other in kept):
                redundant.append(col)
            else:
                kept.append(col)

    return redundant


class FeatureSelector:
    """Drop identifier, date and redundant lag columns from the customer table."""

    def __init__(
        self,
        config: Optional[dict] = None,
        drop_columns: Optional[Sequence[str]] = None,
        strict: bool = False
    ):
        """
        Initialize FeatureSelector.

        Args:
            config: Configuration dictionary
            drop_columns: Exclusion list (defaults to ``features.drop_columns``)
            strict: Raise DataError when an excluded column is absent
        """
        self.config = config or get_config()
        if drop_columns is None:
            drop_columns = self.config.get("features", {}).get("drop_columns", [])
        self.drop_columns = list(drop_columns)
        self.strict = strict
        self.dropped_columns: List[str] = []

    def discover(self, df: pd.DataFrame, protect: Sequence[str] = ()) -> List[str]:
        """Constant and redundant lag columns found in ``df``."""
        found = find_constant_columns(df) + find_redundant_lags(df)
        return [col for col in dict.fromkeys(found) if col not in protect]

    def select(
        self,
        df: pd.DataFrame,
        auto: bool = False,
        protect: Sequence[str] = ()
    ) -> pd.DataFrame:
        """
        Remove excluded columns.

        Args:
            df: Customer table
            auto: Also drop columns found by :meth:`discover`
            protect: Columns never dropped (e.g. the target)

        Returns:
            Table with the retained feature set
        """
        missing = [col for col in self.drop_columns if col not in df.columns]
        if missing:
            if self.strict:
                raise DataError(f"Columns to drop not found: {', '.join(missing)}")
            logger.debug(f"Ignoring absent columns in drop list: {missing}")

        to_drop = [col for col in self.drop_columns if col in df.columns and col not in protect]
        if auto:
            to_drop += [col for col in self.discover(df, protect) if col not in to_drop]

        self.dropped_columns = to_drop
        if to_drop:
            logger.info(f"Dropped columns: {to_drop}")

        return df.drop(columns=to_drop)
