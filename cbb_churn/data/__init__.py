"""Data module for loading, validating and splitting the customer table."""

from .data_loader import DataLoader
from .synthetic import generate_sample_data

__all__ = ["DataLoader", "generate_sample_data"]
