"""
ChainContext - connection, signing identity and program address shared by a run
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import Config, TxConfig
from .errors import ConfigurationError
from .infra import RpcClient, Signer, create_signer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainContext:
    """
    Bundle of the shared, read-only resources of a batch run

    Attributes:
        rpc: Network connection
        wallet: Signing identity that owns the positions
        program_id: Deployed CLMM program address
        tx_config: Transaction submission options
    """
    rpc: RpcClient
    wallet: Signer
    program_id: str
    tx_config: TxConfig = field(default_factory=TxConfig)

    @property
    def pubkey(self) -> str:
        """Wallet public key"""
        return self.wallet.pubkey

    def close(self):
        self.rpc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_context(
    config: Config,
    signer: Optional[Signer] = None,
) -> ChainContext:
    """
    Build a ChainContext from configuration

    Args:
        config: Loaded configuration
        signer: Optional signer (loaded from config.signer if omitted)

    Returns:
        ChainContext
    """
    if not config.rpc.urls:
        raise ConfigurationError.missing("SOLANA_RPC_URL")

    if signer is None:
        signer = create_signer(
            keypair_path=config.signer.keypair_path or None,
            private_key=config.signer.private_key or None,
        )

    rpc = RpcClient(config.rpc.urls, config=config.rpc)
    logger.info(f"Context ready: wallet={signer.pubkey}, rpc={rpc.endpoint}, program={config.program.program_id}")

    return ChainContext(
        rpc=rpc,
        wallet=signer,
        program_id=config.program.program_id,
        tx_config=config.tx,
    )
