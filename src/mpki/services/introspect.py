# mpki/services/introspect.py

from __future__ import annotations

import json
import logging
from typing import Union

from mpki.models.envelope import SignedEnvelope
from mpki.models.key import PublicKeyHandle, SecretKeyHandle
from mpki.services.envelope import parse_envelope
from mpki.services.errors import InvalidKeyError
from mpki.services.keys import companion_public, resolve_any
from mpki.services.provider import CryptoProvider
from mpki.services.trust import subject_of
from mpki.utils.crypto import common_name

log = logging.getLogger(__name__)

DUMP_MODES = ("bits", "cn", "modulus")


def _public_field(handle: PublicKeyHandle, mode: str) -> str:
    public_key = handle.certificate.public_key()

    if mode == "cn":
        return subject_of(handle.certificate)
    if mode == "bits":
        return str(public_key.key_size)
    return format(public_key.public_numbers().n, "X")


def _secret_field(handle: SecretKeyHandle, mode: str, provider: CryptoProvider) -> str:
    """
    Describe a secret key without ever asking for its passphrase: the CN and
    size come from the Info annotation, the modulus from the key itself when
    unlocked and from the companion certificate when locked.
    """
    annotation = handle.annotation

    if mode == "cn":
        if annotation is None or not annotation.cn:
            raise InvalidKeyError(f"'{handle.path}' carries no CN annotation.")
        return annotation.cn

    if mode == "bits" and annotation is not None and annotation.bits:
        return str(annotation.bits)

    if not handle.locked:
        key = provider.load_private_key(handle.pem)
        if mode == "bits":
            return str(key.key_size)
        return format(key.private_numbers().public_numbers.n, "X")

    companion = companion_public(handle)
    if companion is None:
        raise InvalidKeyError(f"'{handle.path}' is locked and has no companion certificate to read the {mode} from.")

    log.debug("Reading %s of locked key %s from %s", mode, handle.path, companion.path)
    return _public_field(companion, mode)


def dump(name: str, mode: str, provider: CryptoProvider) -> str:
    """
    Report the bit length, CN or hex modulus of a public or secret key.

    Raises:
        KeyNotFoundError, InvalidKeyError
    """
    if mode not in DUMP_MODES:
        raise ValueError(f"Unknown dump mode {mode!r}")

    handle: Union[PublicKeyHandle, SecretKeyHandle] = resolve_any(name)

    if isinstance(handle, PublicKeyHandle):
        return _public_field(handle, mode)
    return _secret_field(handle, mode, provider)


def info(data: bytes, provider: CryptoProvider, raw: bool = False) -> str:
    """
    Say who signed or who an envelope is encrypted for. Trust is not checked.

    Raises:
        InvalidKeyError: Not an envelope, or its certificate is unreadable.
    """
    try:
        envelope = parse_envelope(data)
    except ValueError as exc:
        raise InvalidKeyError("Input is not an envelope.") from exc

    if isinstance(envelope, SignedEnvelope):
        certificate = provider.load_certificate(envelope.certificate.encode("ascii"))
        header = {
            "content_type": envelope.content_type,
            "version": envelope.version,
            "digest": envelope.digest,
            "subject_cn": subject_of(certificate),
            "issuer_cn": common_name(certificate.issuer),
            "serial": certificate.serial_number,
            "payload_bytes": len(envelope.payload),
        }
        summary = f'Signed by "{header["subject_cn"]}"'
    else:
        header = {
            "content_type": envelope.content_type,
            "version": envelope.version,
            "cipher": envelope.cipher,
            **envelope.recipient.model_dump(exclude={"encrypted_key"}),
            "ciphertext_bytes": len(envelope.ciphertext),
        }
        summary = f'Encrypted by "{envelope.recipient.subject_cn}"'

    if raw:
        return json.dumps(header, indent=2, ensure_ascii=False)
    return summary
