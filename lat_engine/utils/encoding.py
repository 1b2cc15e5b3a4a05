"""
Byte encodings shared by the engine and off-chain tooling.
"""

ADDRESS_LENGTH = 20
NONCE_WIDTH = 32


def normalize_address(address) -> bytes:
    """
    Accept a 20-byte address as bytes or hex string (with or without 0x).
    """
    if isinstance(address, str):
        text = address[2:] if address.startswith(("0x", "0X")) else address
        try:
            address = bytes.fromhex(text)
        except ValueError:
            raise ValueError(f"Invalid hex address: {text!r}")
    if not isinstance(address, (bytes, bytearray)):
        raise TypeError(f"Address must be bytes or hex string, got {type(address).__name__}")
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(address)}")
    return bytes(address)


def encode_uint256(value: int) -> bytes:
    """Big-endian, left-padded to 32 bytes."""
    if value < 0:
        raise ValueError("Cannot encode negative value as uint256")
    return value.to_bytes(NONCE_WIDTH, 'big')


def pack_address_nonce(address: bytes, nonce: int) -> bytes:
    """
    Tightly packed (address, nonce) pair: 20 address bytes followed by the
    32-byte nonce. Off-chain signers reproduce exactly these bytes.
    """
    return normalize_address(address) + encode_uint256(nonce)
