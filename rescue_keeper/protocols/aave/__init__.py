"""Aave V3 adapter."""
from .reader import AavePositionReader

__all__ = ["AavePositionReader"]
