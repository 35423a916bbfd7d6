# mpki/services/envelope.py

from __future__ import annotations

import logging
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature, InvalidTag
from pydantic import ValidationError

from mpki.constants import ENVELOPE_LABEL
from mpki.models.envelope import EncryptedEnvelope, SignedEnvelope, envelope_adapter
from mpki.models.key import PublicKeyHandle
from mpki.services.errors import (
    DecryptFailedError,
    EncryptFailedError,
    PKIError,
    VerifyFailedError,
)
from mpki.services.provider import CryptoProvider, SecretKey
from mpki.services.trust import verify_trust
from mpki.utils.crypto import armor, dearmor

log = logging.getLogger(__name__)

# Everything that can go wrong while opening an envelope. Callers only ever
# see VerifyFailedError / DecryptFailedError, whichever of these it was.
_OPEN_FAILURES = (PKIError, InvalidSignature, InvalidTag, ValidationError, ValueError, TypeError)


def render_envelope(envelope: Union[SignedEnvelope, EncryptedEnvelope]) -> bytes:
    """ Armored wire form of an envelope """
    return armor(ENVELOPE_LABEL, envelope.model_dump_json().encode("utf-8"))


def parse_envelope(data: bytes) -> Union[SignedEnvelope, EncryptedEnvelope]:
    """
    Decode the armored wire form.

    Raises:
        ValueError: Not armored, bad base64, or not a known envelope.
    """
    try:
        return envelope_adapter.validate_json(dearmor(ENVELOPE_LABEL, data))
    except (ValidationError, UnicodeDecodeError) as exc:
        raise ValueError(f"Not a valid envelope: {exc}") from exc


def sign(payload: bytes, sender: PublicKeyHandle, key: SecretKey, provider: CryptoProvider) -> bytes:
    """
    Attached signature: the payload, the signer's certificate and a
    signature over the payload. No other certificates are embedded.
    """
    envelope = SignedEnvelope(
        certificate=provider.dump_certificate(sender.certificate).decode("ascii"),
        payload=payload,
        signature=provider.digest_sign(key, payload),
    )
    log.debug("Signed %d bytes as %r", len(payload), sender.name)
    return render_envelope(envelope)


def sign_detached(payload: bytes, key: SecretKey, provider: CryptoProvider) -> bytes:
    """ Bare signature over the SHA-256 digest of the payload """
    return provider.digest_sign(key, payload)


def verify(data: bytes, sender: PublicKeyHandle, signer: Optional[PublicKeyHandle],
           provider: CryptoProvider) -> bytes:
    """
    Open a signed envelope and return its payload.

    The embedded certificate must be the sender's, the signature must
    validate against it, and the sender must be trusted by `signer`
    (self-signed when no signer is given).

    Raises:
        VerifyFailedError: For any failure, without saying which.
    """
    anchor = signer or sender

    try:
        envelope = parse_envelope(data)
        if not isinstance(envelope, SignedEnvelope):
            raise ValueError("Envelope is not signed.")

        embedded = provider.load_certificate(envelope.certificate.encode("ascii"))
        if embedded != sender.certificate:
            raise ValueError("Envelope was not signed by the expected sender.")

        provider.digest_verify(sender.certificate, envelope.signature, envelope.payload)
        verify_trust(sender.certificate, anchor.certificate, provider)

    except _OPEN_FAILURES as exc:
        log.debug("Verification failed: %r", exc)
        raise VerifyFailedError("Verification failure.") from exc

    return envelope.payload


def verify_detached(payload: bytes, signature: bytes, sender: PublicKeyHandle,
                    provider: CryptoProvider) -> bytes:
    """
    Check a detached signature over `payload`; returns the payload.

    Raises:
        VerifyFailedError: For any failure, without saying which.
    """
    try:
        provider.digest_verify(sender.certificate, signature, payload)
    except _OPEN_FAILURES as exc:
        log.debug("Detached verification failed: %r", exc)
        raise VerifyFailedError("Verification failure.") from exc

    return payload


def encrypt(payload: bytes, recipient: PublicKeyHandle, provider: CryptoProvider) -> bytes:
    """
    Raises:
        EncryptFailedError: Any failure in the underlying primitives.
    """
    try:
        envelope = provider.envelope_encrypt(recipient.certificate, payload)
    except (PKIError, ValueError, TypeError) as exc:
        raise EncryptFailedError(f"Cannot encrypt for '{recipient.name}': {exc}") from exc

    return render_envelope(envelope)


def decrypt(data: bytes, key: SecretKey, provider: CryptoProvider) -> bytes:
    """
    Raises:
        DecryptFailedError: Wrong key and corrupted input look the same.
    """
    try:
        envelope = parse_envelope(data)
        if not isinstance(envelope, EncryptedEnvelope):
            raise ValueError("Envelope is not encrypted.")

        return provider.envelope_decrypt(envelope, key)

    except _OPEN_FAILURES as exc:
        log.debug("Decryption failed: %r", exc)
        raise DecryptFailedError("Decryption failure.") from exc
