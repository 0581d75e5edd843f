"""Rescue execution against the RescueExecutor contract."""
from .errors import classify_execution_error
from .executor import RescueExecutorClient

__all__ = ["RescueExecutorClient", "classify_execution_error"]
