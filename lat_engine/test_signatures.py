"""
Tests for claim message construction, signature verification and nonces.
"""
import unittest

import msgpack

from lat_engine.crypto import (
    generate_hash,
    generate_key_pair,
    public_key_to_address,
    serialize_public_key,
    sign,
)
from lat_engine.errors import AuthenticationError, ReplayError
from lat_engine.signatures import (
    NonceRegistry,
    ReplayProtectionAuthority,
    SIGNED_MESSAGE_PREFIX,
    claim_message,
    recover_signer,
    sign_claim,
    to_signed_message_hash,
    verify,
)


class TestClaimMessage(unittest.TestCase):
    def setUp(self):
        self.account = bytes(range(20))

    def test_message_is_keccak_of_packed_address_and_nonce(self):
        expected = generate_hash(self.account + (7).to_bytes(32, 'big'))
        self.assertEqual(claim_message(self.account, 7), expected)

    def test_message_is_deterministic(self):
        self.assertEqual(claim_message(self.account, 3), claim_message(self.account, 3))
        self.assertEqual(claim_message(self.account, 3), claim_message(self.account.hex(), 3))

    def test_message_binds_nonce_and_account(self):
        other = b'\x01' * 20
        self.assertNotEqual(claim_message(self.account, 0), claim_message(self.account, 1))
        self.assertNotEqual(claim_message(self.account, 0), claim_message(other, 0))

    def test_signed_message_uses_domain_prefix(self):
        message = claim_message(self.account, 0)
        self.assertEqual(
            to_signed_message_hash(message),
            generate_hash(SIGNED_MESSAGE_PREFIX + message)
        )
        self.assertNotEqual(to_signed_message_hash(message), message)

    def test_signed_message_rejects_wrong_length(self):
        with self.assertRaises(ValueError):
            to_signed_message_hash(b'short')


class TestSignatureVerification(unittest.TestCase):
    def setUp(self):
        self.priv_key, self.pub_key = generate_key_pair()
        self.address = public_key_to_address(self.pub_key)

    def test_valid_signature_verifies(self):
        signature = sign_claim(self.priv_key, self.address, 0)
        self.assertTrue(verify(self.address, 0, signature))
        self.assertEqual(recover_signer(self.address, 0, signature), self.address)

    def test_signature_for_other_nonce_fails(self):
        signature = sign_claim(self.priv_key, self.address, 0)
        self.assertFalse(verify(self.address, 1, signature))

    def test_signature_by_other_key_fails(self):
        other_priv, other_pub = generate_key_pair()
        signature = sign_claim(other_priv, self.address, 0)
        # Verifies cryptographically but recovers to the other key's address
        self.assertEqual(recover_signer(self.address, 0, signature), public_key_to_address(other_pub))
        self.assertFalse(verify(self.address, 0, signature))

    def test_signature_without_domain_prefix_fails(self):
        raw = sign(self.priv_key, claim_message(self.address, 0))
        envelope = msgpack.packb(
            [serialize_public_key(self.pub_key), raw],
            use_bin_type=True,
        )
        self.assertFalse(verify(self.address, 0, envelope))

    def test_malformed_signatures_are_rejected(self):
        for bad in (b'', b'\x00' * 65, b'not msgpack \xc1',
                    msgpack.packb([1, 2, 3]), msgpack.packb(["pem", "not-bytes"]),
                    msgpack.packb(["not a pem", b'\x30\x00'], use_bin_type=True), None, "string"):
            self.assertFalse(verify(self.address, 0, bad), repr(bad))

    def test_bad_inputs_return_false(self):
        signature = sign_claim(self.priv_key, self.address, 0)
        self.assertFalse(verify(b'short', 0, signature))
        self.assertFalse(verify(self.address, -1, signature))
        self.assertFalse(verify(self.address, True, signature))


class TestNonceRegistry(unittest.TestCase):
    def setUp(self):
        self.account = b'\xaa' * 20

    def test_starts_at_zero_and_increments_by_one(self):
        registry = NonceRegistry()
        self.assertEqual(registry.get(self.account), 0)
        self.assertEqual(registry.increment(self.account), 1)
        self.assertEqual(registry.increment(self.account), 2)

    def test_require_rejects_stale_and_future_nonces(self):
        registry = NonceRegistry()
        registry.increment(self.account)
        registry.require(self.account, 1)
        with self.assertRaises(ReplayError):
            registry.require(self.account, 0)
        with self.assertRaises(ReplayError):
            registry.require(self.account, 2)

    def test_require_rejects_non_integer_nonces(self):
        registry = NonceRegistry()
        registry.increment(self.account)
        for bad in (True, 1.0, "1", None):
            with self.assertRaises(ReplayError):
                registry.require(self.account, bad)

    def test_round_trips_through_dict(self):
        registry = NonceRegistry()
        registry.increment(self.account)
        restored = NonceRegistry(registry.to_dict())
        self.assertEqual(restored.get(self.account), 1)


class TestReplayProtectionAuthority(unittest.TestCase):
    def setUp(self):
        self.priv_key, self.pub_key = generate_key_pair()
        self.address = public_key_to_address(self.pub_key)
        self.authority = ReplayProtectionAuthority()

    def test_consume_with_signature(self):
        signature = sign_claim(self.priv_key, self.address, 0)
        self.assertEqual(self.authority.consume(self.address, 0, signature), 1)
        self.assertEqual(self.authority.nonces.get(self.address), 1)

    def test_replayed_signature_is_rejected(self):
        signature = sign_claim(self.priv_key, self.address, 0)
        self.authority.consume(self.address, 0, signature)
        with self.assertRaises(ReplayError):
            self.authority.consume(self.address, 0, signature)

    def test_bad_signature_does_not_advance_nonce(self):
        signature = sign_claim(self.priv_key, self.address, 1)
        with self.assertRaises(AuthenticationError):
            self.authority.consume(self.address, 0, signature)
        self.assertEqual(self.authority.nonces.get(self.address), 0)

    def test_missing_signature_fails_when_required(self):
        with self.assertRaises(AuthenticationError):
            self.authority.consume(self.address, 0, None)

    def test_nonce_only_consumption(self):
        self.assertEqual(self.authority.consume(self.address, 0, require_signature=False), 1)


if __name__ == '__main__':
    unittest.main()
