"""
Transaction builder and sender

Provides utilities for:
- Building versioned transactions
- Adding compute budget instructions
- Signing with several signers
- Sending and confirming transactions
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .rpc import RpcClient
from .solana_signer import Signer
from ..config import TxConfig
from ..errors import SubmissionError, SignerError, RpcError

logger = logging.getLogger(__name__)


class TxBuilder:
    """
    Transaction builder and sender

    Handles:
    - Building versioned transactions with compute budget
    - Signing with the fee payer and any additional signers
    - Sending once (no resend) and confirmation polling

    Usage:
        builder = TxBuilder(rpc, tx_config)

        # Build, sign, send and confirm
        signature = builder.submit(instructions, [authority, ephemeral])

        # Or step by step
        message = builder.build(instructions, payer=authority.pubkey)
        signed_tx = builder.sign(message, [authority])
        signature = builder.send_and_confirm(signed_tx)
    """

    def __init__(
        self,
        rpc: RpcClient,
        config: Optional[TxConfig] = None,
    ):
        """
        Initialize transaction builder

        Args:
            rpc: RPC client
            config: Transaction configuration
        """
        self._rpc = rpc
        self._config = config or TxConfig()

    @property
    def config(self) -> TxConfig:
        return self._config

    def build(
        self,
        instructions: Sequence[Instruction],
        payer: str,
        recent_blockhash: Optional[str] = None,
    ) -> MessageV0:
        """
        Build the v0 message of an unsigned transaction

        Args:
            instructions: List of instructions
            payer: Fee payer pubkey
            recent_blockhash: Optional blockhash (fetched if not provided)

        Returns:
            Compiled message
        """
        all_instructions = []

        if self._config.compute_units > 0:
            all_instructions.append(set_compute_unit_limit(self._config.compute_units))

        if self._config.compute_unit_price > 0:
            all_instructions.append(set_compute_unit_price(self._config.compute_unit_price))

        all_instructions.extend(instructions)

        if recent_blockhash is None:
            try:
                blockhash_info = self._rpc.get_latest_blockhash()
            except RpcError as e:
                raise SubmissionError.send_failed(f"Failed to get recent blockhash: {e}", e)
            recent_blockhash = blockhash_info.get("blockhash")

        if not recent_blockhash:
            raise SubmissionError.send_failed("Failed to get recent blockhash")

        return MessageV0.try_compile(
            Pubkey.from_string(payer),
            all_instructions,
            [],  # Address lookup tables
            Hash.from_string(recent_blockhash),
        )

    def sign(
        self,
        message: MessageV0,
        signers: Sequence[Signer],
    ) -> VersionedTransaction:
        """
        Sign a compiled message

        Every required signer of the message must be among `signers`.

        Args:
            message: Compiled v0 message
            signers: Signing identities

        Returns:
            Fully signed transaction
        """
        # v0 messages are signed with their version prefix
        message_bytes = bytes([0x80]) + bytes(message)

        account_keys = [str(key) for key in message.account_keys]
        num_required = message.header.num_required_signatures
        required = account_keys[:num_required]

        logger.debug(f"Transaction requires {num_required} signatures: {required}")

        null_sig = Signature.default()
        signatures = [null_sig] * num_required

        for signer in signers:
            if signer.pubkey not in required:
                logger.warning(f"Signer {signer.pubkey} not found in required signers")
                continue
            index = required.index(signer.pubkey)
            signatures[index] = Signature.from_bytes(signer.sign(message_bytes))

        missing = [required[i] for i, sig in enumerate(signatures) if sig == null_sig]
        if missing:
            raise SignerError.failed(
                f"Missing signatures for required signers: {', '.join(missing)}"
            )

        return VersionedTransaction.populate(message, signatures)

    def simulate(self, signed_tx: VersionedTransaction) -> dict:
        """
        Simulate transaction execution

        Returns:
            Simulation result value (with "err" and "logs")
        """
        try:
            result = self._rpc.simulate_transaction(bytes(signed_tx))
        except RpcError as e:
            raise SubmissionError.simulation_failed(str(e))
        return (result or {}).get("value") or {}

    def send_and_confirm(self, signed_tx: VersionedTransaction) -> str:
        """
        Send signed transaction once and wait for confirmation

        Returns:
            Transaction signature

        Raises:
            SubmissionError: On send failure, on-chain error or timeout
        """
        try:
            signature = self._rpc.send_transaction(
                bytes(signed_tx),
                skip_preflight=self._config.skip_preflight,
                preflight_commitment=self._config.preflight_commitment,
            )
        except RpcError as e:
            raise SubmissionError.send_failed(str(e), e)

        logger.info(f"Transaction sent: {signature}")

        status = self._rpc.confirm_transaction(
            signature,
            commitment=self._config.preflight_commitment,
            timeout_seconds=self._config.confirmation_timeout,
            poll_interval=self._config.poll_interval,
        )

        if status is None:
            raise SubmissionError.confirmation_timeout(signature, self._config.confirmation_timeout)
        if status.get("err"):
            raise SubmissionError.confirmation_failed(signature, str(status["err"]))

        return signature

    def submit(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[Signer],
    ) -> str:
        """
        Build, sign, and send one atomic transaction

        Args:
            instructions: Ordered instructions
            signers: Signing identities; the first one pays the fee

        Returns:
            Confirmed transaction signature
        """
        if not signers:
            raise SignerError.not_configured()

        message = self.build(instructions, payer=signers[0].pubkey)
        signed_tx = self.sign(message, signers)

        if self._config.simulate_first:
            sim = self.simulate(signed_tx)
            if sim.get("err"):
                raise SubmissionError.simulation_failed(str(sim["err"]), sim.get("logs") or [])

        return self.send_and_confirm(signed_tx)


def ensure_unique_signers(signers: List[Signer]) -> List[Signer]:
    """Collapse signers sharing a public key, keeping first occurrence order"""
    seen = set()
    unique = []
    for signer in signers:
        if signer.pubkey in seen:
            continue
        seen.add(signer.pubkey)
        unique.append(signer)
    return unique
