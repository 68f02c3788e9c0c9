"""
Transaction signing abstractions

Provides the signing identity used for the authority and for ephemeral
accounts created by the instruction builder.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import base58
from solders.keypair import Keypair

from ..errors import SignerError, ConfigurationError

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """
    Protocol for transaction signers

    Implementations must provide:
    - pubkey: The signer's public key (base58)
    - sign(): Sign message bytes
    """

    @property
    def pubkey(self) -> str:
        """Signer's public key (base58)"""
        ...

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message

        Args:
            message: Message bytes to sign

        Returns:
            64-byte signature
        """
        ...


class LocalSigner:
    """
    Local signer using a Solana keypair

    Usage:
        signer = LocalSigner.from_file("~/.config/solana/id.json")
        signature = signer.sign(message_bytes)
    """

    def __init__(self, keypair: Keypair):
        """
        Initialize with keypair

        Args:
            keypair: solders.keypair.Keypair instance
        """
        self._keypair = keypair

    @property
    def pubkey(self) -> str:
        """Public key as base58 string"""
        return str(self._keypair.pubkey())

    def sign(self, message: bytes) -> bytes:
        """Sign message bytes"""
        return bytes(self._keypair.sign_message(message))

    def __repr__(self) -> str:
        return f"LocalSigner({self.pubkey[:8]}...)"

    @classmethod
    def generate(cls) -> "LocalSigner":
        """Create a signer for a fresh random keypair"""
        return cls(Keypair())

    @classmethod
    def from_bytes(cls, secret_key: bytes) -> "LocalSigner":
        """Create signer from secret key bytes (64 bytes)"""
        try:
            return cls(Keypair.from_bytes(secret_key))
        except ValueError as e:
            raise ConfigurationError.invalid("secret key", str(e))

    @classmethod
    def from_base58(cls, secret_key: str) -> "LocalSigner":
        """Create signer from base58 secret key"""
        try:
            secret_bytes = base58.b58decode(secret_key)
        except ValueError as e:
            raise ConfigurationError.invalid("secret key", f"not base58: {e}")
        return cls.from_bytes(secret_bytes)

    @classmethod
    def from_secret(cls, secret: str) -> "LocalSigner":
        """
        Create signer from an inline secret

        Supports:
        - JSON array format (Solana CLI): [1,2,3,...]
        - base58 string
        """
        secret = secret.strip()
        if secret.startswith("["):
            try:
                return cls.from_bytes(bytes(json.loads(secret)))
            except (json.JSONDecodeError, TypeError, ValueError) as e:
                raise ConfigurationError.invalid("secret key", f"bad JSON byte array: {e}")
        return cls.from_base58(secret)

    @classmethod
    def from_file(cls, path: str) -> "LocalSigner":
        """
        Create signer from keypair file

        Supports:
        - JSON array format (Solana CLI): [1,2,3,...]
        - Raw bytes file (64 bytes)
        """
        file_path = Path(path).expanduser()
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise ConfigurationError.invalid("keypair_file", f"cannot read {file_path}: {e}")

        try:
            data = json.loads(content.decode("utf-8"))
            if isinstance(data, list):
                return cls.from_bytes(bytes(data))
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass

        if len(content) == 64:
            return cls.from_bytes(content)

        raise ConfigurationError.invalid("keypair_file", f"Cannot parse keypair file: {file_path}")


def create_signer(
    keypair: Optional[Keypair] = None,
    keypair_path: Optional[str] = None,
    private_key: Optional[str] = None,
) -> Signer:
    """
    Create signer based on configuration

    Priority:
    1. keypair: Use LocalSigner with provided keypair
    2. keypair_path: Load keypair from file
    3. private_key: Inline base58 or JSON byte array

    Raises:
        SignerError: If no signer configuration was given
        ConfigurationError: If the given material cannot be parsed
    """
    if keypair is not None:
        return LocalSigner(keypair)

    if keypair_path:
        signer = LocalSigner.from_file(keypair_path)
        logger.info(f"Loaded signer {signer.pubkey} from {keypair_path}")
        return signer

    if private_key:
        return LocalSigner.from_secret(private_key)

    raise SignerError.not_configured()
