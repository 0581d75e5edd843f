"""Policy record stores."""
from .ens import EnsPolicyStore
from .file import FilePolicyStore

__all__ = ["EnsPolicyStore", "FilePolicyStore"]
