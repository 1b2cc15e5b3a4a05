"""
Core cryptographic functions for claim authorization.
"""
import hashlib
from Crypto.Hash import keccak
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives import serialization
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm


def generate_hash(data: bytes) -> bytes:
    """Keccak-256 digest (claim messages and their signed form)."""
    return keccak.new(digest_bits=256, data=data).digest()


def generate_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """New SECP256K1 signer key pair for an account."""
    private_key = ec.generate_private_key(ec.SECP256K1())
    public_key = private_key.public_key()
    return private_key, public_key


def serialize_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """PEM text embedded in claim signature envelopes."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')


def deserialize_public_key(pem_data: str) -> ec.EllipticCurvePublicKey:
    """Inverse of serialize_public_key."""
    return serialization.load_pem_public_key(pem_data.encode('utf-8'))


def serialize_private_key(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    """PKCS8 PEM, unencrypted."""
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def load_private_key(pem_data: bytes) -> ec.EllipticCurvePrivateKey:
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise ValueError("Private key is not an elliptic curve key")
    return key


def public_key_to_address(public_key) -> bytes:
    """
    Derives an account address from a public key (object or PEM string).
    Address = first 20 bytes of sha256(DER SubjectPublicKeyInfo).
    """
    if isinstance(public_key, str):
        public_key = deserialize_public_key(public_key)
    der_bytes = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    address_hash = hashlib.sha256(der_bytes).digest()
    return address_hash[:20]


def sign(private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
    """ECDSA/SHA-256 over `data`, DER-encoded."""
    return private_key.sign(data, ec.ECDSA(hashes.SHA256()))


def verify_signature(public_key_pem: str, signature: bytes, data: bytes) -> bool:
    """Verifies an ECDSA/SHA256 signature. Malformed keys count as invalid."""
    try:
        public_key = deserialize_public_key(public_key_pem)
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            return False
        public_key.verify(signature, data, ec.ECDSA(hashes.SHA256()))
        return True
    except (InvalidSignature, UnsupportedAlgorithm, ValueError, TypeError):
        return False
