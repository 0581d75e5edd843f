"""JSON-RPC clients."""
from .eth_client import EthRpcClient, RpcError

__all__ = ["EthRpcClient", "RpcError"]
