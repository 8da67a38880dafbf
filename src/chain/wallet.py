"""Migration authority keypair loading.

The secret is parsed once and never logged; only the public key is shown
in logs and __repr__.
"""

from __future__ import annotations

import json

from loguru import logger
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]


class AuthorityWallet:
    """Signer for start/finalize migration and the pool creation batch."""

    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair
        logger.info(f"[WALLET] Loaded migration authority: {self.pubkey_str}")

    @classmethod
    def from_secret(cls, secret: str) -> AuthorityWallet:
        """Accepts a base58 secret key or a JSON byte array (solana-keygen file format)."""
        return cls(load_keypair(secret))

    def __repr__(self) -> str:
        return f"AuthorityWallet(pubkey={self.pubkey_str})"

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def pubkey_str(self) -> str:
        return str(self._keypair.pubkey())

    @property
    def keypair(self) -> Keypair:
        return self._keypair


def load_keypair(secret: str) -> Keypair:
    secret = (secret or "").strip()
    if not secret:
        raise ValueError("Migration authority secret key is empty")
    if secret.startswith("["):
        try:
            raw = bytes(json.loads(secret))
        except (ValueError, TypeError) as e:
            raise ValueError("Migration authority secret is not a valid JSON byte array") from e
        if len(raw) != 64:
            raise ValueError(f"Migration authority secret must be 64 bytes, got {len(raw)}")
        return Keypair.from_bytes(raw)
    try:
        return Keypair.from_base58_string(secret)
    except ValueError as e:
        raise ValueError("Migration authority secret is not a valid base58 keypair") from e
