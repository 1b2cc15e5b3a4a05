"""
Replay protection for reward claims.

Each account has one strictly increasing nonce shared by trade-reward and
stake-reward claims. Trade claims additionally carry a signature issued
off-chain over (account, nonce).

Message construction, reproducible by any signer:

    message        = keccak256(account[20] || nonce[32, big-endian])
    signed_message = keccak256(b"\\x19LAT Signed Message:\\n32" || message)

The signature envelope is msgpack([public_key_pem, der_signature]). The
signer is recovered by verifying the ECDSA/SHA-256 signature over
signed_message with the embedded key and deriving that key's address.
"""
import logging
from typing import Optional

import msgpack

from lat_engine.crypto import (
    generate_hash,
    public_key_to_address,
    serialize_public_key,
    sign,
    verify_signature,
)
from lat_engine.errors import AuthenticationError, ReplayError
from lat_engine.utils.arith import checked_add
from lat_engine.utils.encoding import normalize_address, pack_address_nonce

logger = logging.getLogger(__name__)

SIGNED_MESSAGE_PREFIX = b"\x19LAT Signed Message:\n32"


def claim_message(account: bytes, nonce: int) -> bytes:
    """Binding message for a claim by `account` at `nonce`."""
    return generate_hash(pack_address_nonce(account, nonce))


def to_signed_message_hash(message: bytes) -> bytes:
    """Apply the domain-separation prefix to a 32-byte message."""
    if len(message) != 32:
        raise ValueError(f"Message must be 32 bytes, got {len(message)}")
    return generate_hash(SIGNED_MESSAGE_PREFIX + message)


def sign_claim(private_key, account: bytes, nonce: int) -> bytes:
    """Produce a claim signature envelope (signer side)."""
    digest = to_signed_message_hash(claim_message(account, nonce))
    der_signature = sign(private_key, digest)
    public_key_pem = serialize_public_key(private_key.public_key())
    return msgpack.packb([public_key_pem, der_signature], use_bin_type=True)


def recover_signer(account: bytes, nonce: int, signature: bytes) -> Optional[bytes]:
    """
    Return the address that produced `signature` for (account, nonce),
    or None if the envelope is malformed or the signature does not verify.
    """
    try:
        envelope = msgpack.unpackb(signature, raw=False)
    except (ValueError, TypeError, msgpack.exceptions.UnpackException):
        return None
    if not isinstance(envelope, (list, tuple)) or len(envelope) != 2:
        return None
    public_key_pem, der_signature = envelope
    if not isinstance(public_key_pem, str) or not isinstance(der_signature, bytes):
        return None

    digest = to_signed_message_hash(claim_message(account, nonce))
    if not verify_signature(public_key_pem, der_signature, digest):
        return None
    return public_key_to_address(public_key_pem)


def verify(signer_account, expected_nonce: int, signature: bytes) -> bool:
    """True iff `signature` was produced by `signer_account` for `expected_nonce`."""
    try:
        account = normalize_address(signer_account)
    except (ValueError, TypeError):
        return False
    if isinstance(expected_nonce, bool) or not isinstance(expected_nonce, int) or expected_nonce < 0:
        return False
    recovered = recover_signer(account, expected_nonce, signature)
    return recovered is not None and recovered == account


class NonceRegistry:
    """Per-account claim counters."""

    def __init__(self, data: dict = None):
        self._nonces = {}
        self.load(data or {})

    def load(self, data: dict):
        """Replace all counters in place."""
        self._nonces = {bytes.fromhex(addr_hex): int(value) for addr_hex, value in data.items()}

    def get(self, account: bytes) -> int:
        return self._nonces.get(account, 0)

    def require(self, account: bytes, expected_nonce: int):
        if isinstance(expected_nonce, bool) or not isinstance(expected_nonce, int):
            raise ReplayError(f"Nonce must be an integer, got {type(expected_nonce).__name__}")
        current = self.get(account)
        if expected_nonce != current:
            raise ReplayError(
                f"Invalid nonce. Expected {current}, got {expected_nonce}"
            )

    def increment(self, account: bytes) -> int:
        self._nonces[account] = checked_add(self.get(account), 1)
        return self._nonces[account]

    def to_dict(self) -> dict:
        return {addr.hex(): value for addr, value in self._nonces.items()}


class ReplayProtectionAuthority:
    """Nonce check, signature check, nonce consumption."""

    def __init__(self, nonces: NonceRegistry = None):
        self.nonces = nonces if nonces is not None else NonceRegistry()

    def consume(self, account: bytes, expected_nonce: int, signature: Optional[bytes] = None,
                require_signature: bool = True) -> int:
        """
        Validate a claim's nonce (and signature when required), then
        advance the account's nonce. Returns the new nonce.
        """
        self.nonces.require(account, expected_nonce)
        if require_signature:
            if signature is None or not verify(account, expected_nonce, signature):
                raise AuthenticationError("Invalid claim signature")
        new_nonce = self.nonces.increment(account)
        logger.debug(f"Nonce for {account.hex()[:8]} advanced to {new_nonce}")
        return new_nonce
