"""
Infrastructure layer: RPC connection, signing, transaction submission, tracing
"""

from .rpc import RpcClient
from .solana_signer import Signer, LocalSigner, create_signer
from .tx_builder import TxBuilder, ensure_unique_signers
from .tracing import CorrelationContext, RequestLog, get_correlation_id

__all__ = [
    "RpcClient",
    "Signer",
    "LocalSigner",
    "create_signer",
    "TxBuilder",
    "ensure_unique_signers",
    "CorrelationContext",
    "RequestLog",
    "get_correlation_id",
]
