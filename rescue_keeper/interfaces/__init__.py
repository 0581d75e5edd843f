"""Protocol interfaces for the keeper's external collaborators."""
from .notifier import Notifier
from .policy_store import PolicyStore
from .position_reader import PositionReader
from .route_quoter import RouteQuoter
from .transaction_submitter import CooldownReader, TransactionSubmitter

__all__ = [
    "CooldownReader",
    "Notifier",
    "PolicyStore",
    "PositionReader",
    "RouteQuoter",
    "TransactionSubmitter",
]
