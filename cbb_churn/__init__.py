"""
CBB Churn Walkthrough
=====================

Trains a gradient-boosted tree classifier that estimates the probability
of a customer churning within 30 days, using the "cbb" customer table.

Modules:
    - data: Dataset loading, validation and train/test splitting
    - features: Feature selection and the preprocessing recipe
    - models: Model specification, grid-search tuning, final fit and evaluation
    - utils: Logging and experiment tracking helpers
"""

__version__ = "1.0.0"
