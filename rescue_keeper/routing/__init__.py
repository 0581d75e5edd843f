"""Route quoting services."""
from .lifi import LiFiQuoter

__all__ = ["LiFiQuoter"]
