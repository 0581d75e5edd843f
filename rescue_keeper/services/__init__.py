"""Service modules"""
from .health_monitor import HealthMonitor
from .orchestrator import TickOrchestrator
from .quote_validator import QuoteValidator
from .runner import Runner, RunnerStats, run_forever

__all__ = [
    "HealthMonitor",
    "QuoteValidator",
    "Runner",
    "RunnerStats",
    "TickOrchestrator",
    "run_forever",
]
