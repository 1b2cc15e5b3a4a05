"""
Claim Signer Tool

Off-chain counterpart of the trade-claim signature check. Generates signer
keys and produces or checks the signature a trader submits with
claim_trade_rewards(expected_nonce, signature).

    python -m lat_engine.signer_tool keygen --output trader.pem
    python -m lat_engine.signer_tool message --address <hex> --nonce 0
    python -m lat_engine.signer_tool sign --key trader.pem --nonce 0
    python -m lat_engine.signer_tool verify --address <hex> --nonce 0 --signature <hex>
"""
import argparse
import sys
from pathlib import Path

from lat_engine.crypto import (
    generate_key_pair,
    load_private_key,
    public_key_to_address,
    serialize_private_key,
)
from lat_engine.signatures import claim_message, sign_claim, to_signed_message_hash, verify
from lat_engine.utils.encoding import normalize_address


def keygen(output_path: str) -> bytes:
    path = Path(output_path)
    if path.exists():
        raise FileExistsError(f"Refusing to overwrite existing key file '{path}'")
    private_key, public_key = generate_key_pair()
    path.write_bytes(serialize_private_key(private_key))
    address = public_key_to_address(public_key)
    print(f"Address: {address.hex()}")
    print(f"Saved private key to: {path}")
    return address


def show_message(address: str, nonce: int):
    account = normalize_address(address)
    message = claim_message(account, nonce)
    print(f"Message:        {message.hex()}")
    print(f"Signed message: {to_signed_message_hash(message).hex()}")


def sign_with_key(key_path: str, nonce: int) -> bytes:
    private_key = load_private_key(Path(key_path).read_bytes())
    account = public_key_to_address(private_key.public_key())
    signature = sign_claim(private_key, account, nonce)
    print(f"Address:   {account.hex()}")
    print(f"Nonce:     {nonce}")
    print(f"Signature: {signature.hex()}")
    return signature


def check_signature(address: str, nonce: int, signature_hex: str) -> bool:
    valid = verify(address, nonce, bytes.fromhex(signature_hex))
    print("VALID" if valid else "INVALID")
    return valid


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trade claim signer tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_keygen = subparsers.add_parser("keygen", help="Generate a signer key")
    parser_keygen.add_argument("--output", type=str, default="signer.pem", help="Private key output path")

    parser_message = subparsers.add_parser("message", help="Show the claim message for an address and nonce")
    parser_message.add_argument("--address", type=str, required=True, help="Account address (hex)")
    parser_message.add_argument("--nonce", type=int, required=True, help="Expected nonce")

    parser_sign = subparsers.add_parser("sign", help="Sign a claim")
    parser_sign.add_argument("--key", type=str, required=True, help="PEM private key file")
    parser_sign.add_argument("--nonce", type=int, required=True, help="Expected nonce")

    parser_verify = subparsers.add_parser("verify", help="Verify a claim signature")
    parser_verify.add_argument("--address", type=str, required=True, help="Account address (hex)")
    parser_verify.add_argument("--nonce", type=int, required=True, help="Expected nonce")
    parser_verify.add_argument("--signature", type=str, required=True, help="Signature envelope (hex)")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "keygen":
        keygen(args.output)
    elif args.command == "message":
        show_message(args.address, args.nonce)
    elif args.command == "sign":
        sign_with_key(args.key, args.nonce)
    elif args.command == "verify":
        return 0 if check_signature(args.address, args.nonce, args.signature) else 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
