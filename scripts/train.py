"""
Training Script
===============

Command-line script that runs the churn walkthrough end to end.

Usage:
    python scripts/train.py --data cbb --seed 42
    python scripts/train.py --sample 2000 --plots
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger

from cbb_churn.data import generate_sample_data
from cbb_churn.exceptions import ChurnWorkflowError, DataError
from cbb_churn.models import ENGINES, ChurnWorkflow
from cbb_churn.utils import setup_logging
from config import get_config


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Train the 30-day churn model")

    parser.add_argument(
        "--data",
        type=str,
        default=None,
        help="Dataset key; read from data/raw/<key>.csv (default from config: cbb)"
    )
    parser.add_argument(
        "--sample",
        type=int,
        default=None,
        help="Use N synthetic customers instead of a data file"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for split, folds and models"
    )
    parser.add_argument(
        "--engine",
        type=str,
        default=None,
        choices=list(ENGINES),
        help="Boosted tree engine"
    )
    parser.add_argument(
        "--n-jobs",
        type=int,
        default=None,
        help="Parallel workers for grid search"
    )
    parser.add_argument(
        "--plots",
        action="store_true",
        help="Save ROC curve and tuning heatmap under reports/figures"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    return parser.parse_args()


def main():
    """Main training function."""
    args = parse_args()
    config = get_config()

    setup_logging(config, level=args.log_level)

    workflow = ChurnWorkflow(config, random_state=args.seed, engine=args.engine, n_jobs=args.n_jobs)

    if args.sample:
        logger.info(f"Generating {args.sample} synthetic customers")
        df = generate_sample_data(n_customers=args.sample, seed=workflow.random_state)
    else:
        loader = workflow.loader
        try:
            df = loader.load_dataset(args.data)
        except DataError as exc:
            logger.error(f"{exc}. Use --sample N to run on synthetic data.")
            return 1

        validation = loader.validate_data(df)
        logger.info(f"Target balance: {validation.get('target_balance')}")

    try:
        result = workflow.run(df)
    except ChurnWorkflowError as exc:
        logger.error(f"Workflow failed: {exc}")
        return 1

    logger.info(f"\nTuning results:\n{workflow.trainer.tuning_table(result.tuning)}")

    if args.plots:
        workflow.evaluator.plot_roc_curve(result.pipeline, result.test_data)
        workflow.evaluator.plot_tuning_heatmap(result.tuning)

    print(result.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
