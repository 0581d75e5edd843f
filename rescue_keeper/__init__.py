"""Automated rescue keeper for Aave V3 positions."""

__version__ = "0.1.0"
