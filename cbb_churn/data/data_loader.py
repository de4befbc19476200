"""
Data Loader Module
==================

Loads the customer table, validates it and partitions it for modeling.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

from cbb_churn.exceptions import ConfigurationError, DataError
from config import RAW_DATA_DIR, get_config

Fold = Tuple[np.ndarray, np.ndarray]


class DataLoader:
    """Load and partition the customer churn dataset."""

    def __init__(
        self,
        config: Optional[dict] = None,
        loaders: Optional[Dict[str, Callable[[], pd.DataFrame]]] = None,
        raw_data_path: Optional[Path] = None
    ):
        """
        Initialize DataLoader.

        Args:
            config: Configuration dictionary. If None, loads from config.yaml
            loaders: Mapping of dataset key to a callable returning a DataFrame
            raw_data_path: Directory searched for dataset files
        """
        self.config = config or get_config()
        self.data_config = self.config.get("data", {})
        self.loaders = dict(loaders or {})
        self.raw_data_path = Path(raw_data_path or RAW_DATA_DIR)

    def register(self, name: str, loader: Callable[[], pd.DataFrame]) -> None:
        """Register a data-access callable under a dataset key."""
        self.loaders[name] = loader

    def load_dataset(self, name: Optional[str] = None) -> pd.DataFrame:
        """
        Load a dataset by key.

        A registered loader takes precedence; otherwise a file named after
        the key is read from the raw data directory.

        Args:
            name: Dataset key (defaults to ``data.dataset``, i.e. "cbb")

        Returns:
            DataFrame with one row per customer
        """
        name = name or self.data_config.get("dataset", "cbb")

        if name in self.loaders:
            logger.info(f"Loading dataset '{name}' from registered loader")
            df = self.loaders[name]()
            if not isinstance(df, pd.DataFrame):
                raise DataError(f"Loader for '{name}' returned {type(df).__name__}, expected a DataFrame")
        else:
            df = self.load_raw_data(f"{name}.csv")

        date_col = self.data_config.get("date_column")
        if date_col and date_col in df.columns:
            df[date_col] = pd.to_datetime(df[date_col], errors="coerce")

        logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns")
        return df

    def load_raw_data(self, filename: str = "cbb.csv", **kwargs) -> pd.DataFrame:
        """
        Load raw data from file.

        Args:
            filename: Name of the data file
            **kwargs: Additional arguments passed to the pandas reader

        Returns:
            DataFrame containing raw data
        """
        file_path = self.raw_data_path / filename

        # Try different file extensions
        if not file_path.exists():
            for ext in [".csv", ".parquet", ".xlsx", ".xls"]:
                alt_path = self.raw_data_path / f"{Path(filename).stem}{ext}"
                if alt_path.exists():
                    file_path = alt_path
                    break

        if not file_path.exists():
            logger.error(f"Data file not found: {file_path}")
            raise DataError(f"Data file not found: {file_path}")

        logger.info(f"Loading data from {file_path}")

        ext = file_path.suffix.lower()
        if ext == ".csv":
            df = pd.read_csv(file_path, **kwargs)
        elif ext in [".xlsx", ".xls"]:
            df = pd.read_excel(file_path, **kwargs)
        elif ext == ".parquet":
            df = pd.read_parquet(file_path, **kwargs)
        else:
            raise DataError(f"Unsupported file format: {ext}")

        return df

    def require_columns(
        self,
        df: pd.DataFrame,
        columns: Optional[Sequence[str]] = None
    ) -> None:
        """
        Abort if any required column is absent.

        Args:
            df: Input DataFrame
            columns: Required columns (defaults to ``data.required_columns``)
        """
        if columns is None:
            columns = self.data_config.get("required_columns") or [self.target_column]

        missing = [col for col in columns if col not in df.columns]
        if missing:
            logger.error(f"Missing required columns: {missing}")
            raise DataError(f"Missing required columns: {', '.join(missing)}")

    @property
    def target_column(self) -> str:
        return self.data_config.get("target_column", "churn")

    def encode_target(self, y: pd.Series, positive_class=None) -> pd.Series:
        """
        Encode the churn label as 0/1.

        Raises ConfigurationError unless the label has exactly two classes,
        one of which is the positive class.
        """
        if positive_class is None:
            positive_class = self.data_config.get("positive_class", 1)

        classes = pd.unique(y.dropna())
        if len(classes) != 2:
            raise ConfigurationError(
                f"Target '{y.name}' must have exactly two classes for a binary "
                f"metric, found {len(classes)}: {sorted(map(str, classes))}"
            )
        if positive_class not in set(classes):
            raise ConfigurationError(
                f"Positive class {positive_class!r} not present in target '{y.name}'"
            )
        if y.isnull().any():
            raise DataError(f"Target '{y.name}' has {int(y.isnull().sum())} missing values")

        return (y == positive_class).astype(int)

    def get_train_test_split(
        self,
        df: pd.DataFrame,
        test_size: Optional[float] = None,
        random_state: Optional[int] = None,
        stratify: Optional[bool] = None
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Split rows into train and test partitions.

        Args:
            df: Input DataFrame (target column included)
            test_size: Proportion for test set
            random_state: Random seed
            stratify: Whether to stratify on the target

        Returns:
            Tuple of (train_df, test_df)
        """
        test_size = test_size if test_size is not None else self.data_config.get("test_size", 0.2)
        random_state = random_state if random_state is not None else self.data_config.get("random_state", 42)
        if stratify is None:
            stratify = self.data_config.get("stratify", False)

        strat = df[self.target_column] if stratify else None

        train_df, test_df = train_test_split(
            df,
            test_size=test_size,
            random_state=random_state,
            stratify=strat
        )

        logger.info(f"Train set: {len(train_df)} samples")
        logger.info(f"Test set: {len(test_df)} samples")

        return train_df, test_df

    def get_folds(
        self,
        df: pd.DataFrame,
        n_splits: Optional[int] = None,
        random_state: Optional[int] = None,
        stratify: Optional[bool] = None
    ) -> List[Fold]:
        """
        Partition training rows into k cross-validation folds.

        Returns:
            List of (train_positions, validation_positions) pairs
        """
        tuning_config = self.config.get("tuning", {})
        n_splits = n_splits or tuning_config.get("cv_folds", 3)
        random_state = random_state if random_state is not None else self.data_config.get("random_state", 42)
        if stratify is None:
            stratify = tuning_config.get("stratify", False)

        if stratify:
            splitter = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=random_state)
            folds = list(splitter.split(df, df[self.target_column]))
        else:
            splitter = KFold(n_splits=n_splits, shuffle=True, random_state=random_state)
            folds = list(splitter.split(df))

        logger.info(f"Created {len(folds)} cross-validation folds")
        return folds

    def validate_data(self, df: pd.DataFrame) -> dict:
        """
        Summarise data quality and the modeling assumptions it supports.

        Args:
            df: DataFrame to validate

        Returns:
            Dictionary with validation results
        """
        validation_results = {
            "total_rows": len(df),
            "total_columns": len(df.columns),
            "missing_values": df.isnull().sum().to_dict(),
            "missing_percentage": (df.isnull().sum() / max(len(df), 1) * 100).to_dict(),
            "duplicates": int(df.duplicated().sum()),
            "dtypes": df.dtypes.astype(str).to_dict(),
        }

        id_col = self.data_config.get("id_column")
        if id_col and id_col in df.columns:
            validation_results["id_unique"] = bool(df[id_col].is_unique)

        date_col = self.data_config.get("date_column")
        if date_col and date_col in df.columns:
            validation_results["extraction_dates"] = int(df[date_col].nunique(dropna=False))

        if self.target_column in df.columns:
            validation_results["target_distribution"] = df[self.target_column].value_counts().to_dict()
            validation_results["target_balance"] = df[self.target_column].value_counts(normalize=True).to_dict()

        return validation_results
