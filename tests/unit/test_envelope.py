"""Unit tests for mpki.services.envelope module."""

import json

import pytest

from mpki.constants import ENVELOPE_LABEL, KEY_WRAP_NAME, KEY_WRAP_PKCS1
from mpki.services import envelope
from mpki.services.errors import DecryptFailedError, EncryptFailedError, VerifyFailedError
from mpki.services.keys import load_secret_key, resolve_public, resolve_secret
from mpki.utils.crypto import armor, dearmor


@pytest.fixture
def alice(generate, provider, secrets):
    generate("alice")
    return resolve_public("alice"), load_secret_key(resolve_secret("alice"), provider, secrets)


@pytest.fixture
def bob(generate, provider, secrets):
    generate("bob")
    return resolve_public("bob"), load_secret_key(resolve_secret("bob"), provider, secrets)


def _tamper(data: bytes, **changes) -> bytes:
    """Re-armor an envelope after editing its JSON."""
    document = json.loads(dearmor(ENVELOPE_LABEL, data))
    document.update(changes)
    return armor(ENVELOPE_LABEL, json.dumps(document).encode("utf-8"))


class TestSignVerify:
    """Tests for attached signatures."""

    def test_round_trip(self, alice, provider):
        public, key = alice

        signed = envelope.sign(b"hi", public, key, provider)

        assert signed.startswith(b"-----BEGIN MPKI ENVELOPE-----\n")
        assert envelope.verify(signed, public, None, provider) == b"hi"

    def test_empty_payload(self, alice, provider):
        public, key = alice

        signed = envelope.sign(b"", public, key, provider)

        assert envelope.verify(signed, public, None, provider) == b""

    def test_binary_payload(self, alice, provider):
        public, key = alice
        payload = bytes(range(256)) * 10

        assert envelope.verify(envelope.sign(payload, public, key, provider), public, None, provider) == payload

    def test_embeds_only_sender_certificate(self, alice, provider):
        public, key = alice

        document = json.loads(dearmor(ENVELOPE_LABEL, envelope.sign(b"hi", public, key, provider)))

        assert document["content_type"] == "signed"
        assert document["certificate"].count("BEGIN CERTIFICATE") == 1

    def test_wrong_sender(self, alice, bob, provider):
        public, key = alice

        signed = envelope.sign(b"hi", public, key, provider)

        with pytest.raises(VerifyFailedError):
            envelope.verify(signed, bob[0], None, provider)

    def test_mutated_payload(self, alice, provider):
        public, key = alice
        signed = envelope.sign(b"hi", public, key, provider)

        with pytest.raises(VerifyFailedError):
            envelope.verify(_tamper(signed, payload="aGo="), public, None, provider)

    def test_garbage(self, alice, provider):
        with pytest.raises(VerifyFailedError):
            envelope.verify(b"hello", alice[0], None, provider)

    def test_with_signer(self, generate, provider, secrets):
        generate("ca")
        generate("bob", signer="ca")
        sender = resolve_public("bob")
        key = load_secret_key(resolve_secret("bob"), provider, secrets)

        signed = envelope.sign(b"hi", sender, key, provider)

        assert envelope.verify(signed, sender, resolve_public("ca"), provider) == b"hi"

    def test_untrusted_sender(self, generate, provider, secrets):
        """A sender issued by someone is not self-signed; checking it alone fails."""
        generate("ca")
        generate("bob", signer="ca")
        sender = resolve_public("bob")
        key = load_secret_key(resolve_secret("bob"), provider, secrets)

        signed = envelope.sign(b"hi", sender, key, provider)

        with pytest.raises(VerifyFailedError):
            envelope.verify(signed, sender, None, provider)

    def test_encrypted_envelope_is_not_signed(self, alice, provider):
        public, _ = alice

        with pytest.raises(VerifyFailedError):
            envelope.verify(envelope.encrypt(b"hi", public, provider), public, None, provider)


class TestDetached:
    """Tests for detached signatures."""

    def test_round_trip(self, alice, provider):
        public, key = alice

        signature = envelope.sign_detached(b"hi", key, provider)

        assert len(signature) == 128
        assert envelope.verify_detached(b"hi", signature, public, provider) == b"hi"

    def test_mutated_payload(self, alice, provider):
        public, key = alice
        signature = envelope.sign_detached(b"hi", key, provider)

        with pytest.raises(VerifyFailedError):
            envelope.verify_detached(b"ho", signature, public, provider)

    def test_wrong_sender(self, alice, bob, provider):
        signature = envelope.sign_detached(b"hi", alice[1], provider)

        with pytest.raises(VerifyFailedError):
            envelope.verify_detached(b"hi", signature, bob[0], provider)


class TestEncryptDecrypt:
    """Tests for encryption to a recipient."""

    def test_round_trip(self, alice, provider):
        public, key = alice

        encrypted = envelope.encrypt(b"hi", public, provider)

        assert b"hi" not in dearmor(ENVELOPE_LABEL, encrypted)
        assert envelope.decrypt(encrypted, key, provider) == b"hi"

    def test_fresh_key_per_message(self, alice, provider):
        public, _ = alice

        assert envelope.encrypt(b"hi", public, provider) != envelope.encrypt(b"hi", public, provider)

    def test_wrong_key(self, alice, bob, provider):
        encrypted = envelope.encrypt(b"hi", alice[0], provider)

        with pytest.raises(DecryptFailedError):
            envelope.decrypt(encrypted, bob[1], provider)

    def test_tampered_ciphertext(self, alice, provider):
        public, key = alice
        encrypted = envelope.encrypt(b"hello world", public, provider)
        document = json.loads(dearmor(ENVELOPE_LABEL, encrypted))

        with pytest.raises(DecryptFailedError):
            envelope.decrypt(_tamper(encrypted, nonce=document["nonce"][::-1]), key, provider)

    def test_records_key_wrap(self, alice, provider):
        document = json.loads(dearmor(ENVELOPE_LABEL, envelope.encrypt(b"hi", alice[0], provider)))

        assert document["recipient"]["key_wrap"] == KEY_WRAP_NAME

    def test_swapped_key_wrap(self, alice, provider):
        public, key = alice
        encrypted = envelope.encrypt(b"hi", public, provider)
        document = json.loads(dearmor(ENVELOPE_LABEL, encrypted))
        document["recipient"]["key_wrap"] = KEY_WRAP_PKCS1

        with pytest.raises(DecryptFailedError):
            envelope.decrypt(_tamper(encrypted, recipient=document["recipient"]), key, provider)

    def test_unknown_cipher(self, alice, provider):
        public, key = alice
        encrypted = envelope.encrypt(b"hi", public, provider)

        with pytest.raises(DecryptFailedError):
            envelope.decrypt(_tamper(encrypted, cipher="des"), key, provider)

    def test_garbage(self, alice, provider):
        with pytest.raises(DecryptFailedError):
            envelope.decrypt(b"-----BEGIN MPKI ENVELOPE-----\nAAAA\n-----END MPKI ENVELOPE-----\n",
                             alice[1], provider)

    def test_signed_envelope_is_not_encrypted(self, alice, provider):
        public, key = alice

        with pytest.raises(DecryptFailedError):
            envelope.decrypt(envelope.sign(b"hi", public, key, provider), key, provider)

    def test_encrypt_failure(self, alice, provider, monkeypatch):
        def refuse(*args, **kwargs):
            raise ValueError("key too small")

        monkeypatch.setattr(provider, "envelope_encrypt", refuse)

        with pytest.raises(EncryptFailedError):
            envelope.encrypt(b"hi", alice[0], provider)


class TestExternalKey:
    """Signing and decrypting through a key object that is not a local RSA key."""

    def test_sign(self, alice, provider, fake_hsm_key):
        public, key = alice
        hsm_key = fake_hsm_key("alice", key)

        signed = envelope.sign(b"hi", public, hsm_key, provider)

        assert hsm_key.calls == ["sign"]
        assert envelope.verify(signed, public, None, provider) == b"hi"

    def test_decrypt(self, alice, provider, fake_hsm_key):
        public, key = alice
        hsm_key = fake_hsm_key("alice", key)

        plaintext = envelope.decrypt(envelope.encrypt(b"hi", public, provider), hsm_key, provider)

        assert hsm_key.calls == ["unwrap"]
        assert plaintext == b"hi"


@pytest.mark.parametrize("bits", [512, 768])
class TestSmallKeys:
    """Moduli too small to carry the content key under OAEP-SHA256."""

    @pytest.fixture
    def carol(self, generate, provider, secrets, bits):
        generate("carol", bits=bits)
        return resolve_public("carol"), load_secret_key(resolve_secret("carol"), provider, secrets)

    def test_encrypt_decrypt(self, carol, provider, bits):
        public, key = carol

        encrypted = envelope.encrypt(b"hi", public, provider)
        document = json.loads(dearmor(ENVELOPE_LABEL, encrypted))

        assert key.key_size == bits
        assert document["recipient"]["key_wrap"] == KEY_WRAP_PKCS1
        assert envelope.decrypt(encrypted, key, provider) == b"hi"

    def test_sign_verify(self, carol, provider):
        public, key = carol

        assert envelope.verify(envelope.sign(b"hi", public, key, provider), public, None, provider) == b"hi"

    def test_external_key(self, carol, provider, fake_hsm_key):
        public, key = carol
        hsm_key = fake_hsm_key("carol", key)

        assert envelope.decrypt(envelope.encrypt(b"hi", public, provider), hsm_key, provider) == b"hi"
        assert hsm_key.calls == ["unwrap"]
