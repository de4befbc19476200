"""
Utility Helper Functions
========================

Logging setup driven by the ``logging`` config section, and small
formatting helpers shared by the workflow, the tracker and the script.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger

from config import LOGS_DIR, get_config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(
    config: Optional[dict] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    logs_dir: Optional[Union[str, Path]] = None
) -> List[int]:
    """
    Replace loguru's sinks with the ones described in config.

    The ``logging`` section supplies ``level``, ``file``, ``rotation``,
    ``retention`` and ``compression``; explicit arguments win over it.

    Args:
        config: Configuration dictionary
        level: Minimum level for every sink
        log_file: Log file name, written under ``logs_dir``
        logs_dir: Directory for the log file (defaults to ``logs/``)

    Returns:
        loguru handler ids of the sinks added
    """
    log_config = (config or get_config()).get("logging") or {}
    level = (level or log_config.get("level") or "INFO").upper()
    log_file = log_file or log_config.get("file")

    logger.remove()
    handlers = [logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)]

    if log_file:
        log_path = Path(logs_dir or LOGS_DIR) / log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handlers.append(logger.add(
            log_path,
            level=level,
            format=FILE_FORMAT,
            rotation=log_config.get("rotation", "10 MB"),
            retention=log_config.get("retention", "7 days"),
            compression=log_config.get("compression", "zip")
        ))

    logger.info(f"Logging configured at {level} level" + (f", writing to {log_file}" if log_file else ""))
    return handlers


def get_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """Current local time as a string, used in run names."""
    return datetime.now().strftime(format_str)


def format_metrics(metrics: Dict[str, float], precision: int = 4) -> str:
    """
    One-line ``name=value`` rendering of a metrics dictionary.

    Args:
        metrics: Metric name -> value, in display order
        precision: Decimal places

    Returns:
        e.g. ``"roc_auc=0.9123, log_loss=0.4012"``
    """
    return ", ".join(f"{name}={value:.{precision}f}" for name, value in metrics.items())
