# mpki/services/keys.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from cryptography.hazmat.primitives.asymmetric import rsa

from mpki.constants import PUBLIC_SUFFIX, SECRET_SUFFIX
from mpki.models.key import KeyInfo, PublicKeyHandle, SecretKeyHandle
from mpki.services.errors import InvalidKeyError, KeyNotFoundError, PKIError
from mpki.services.passphrase import SecretProvider
from mpki.utils.crypto import (
    CERTIFICATE_LABEL,
    PRIVATE_KEY_LABELS,
    is_locked,
    load_certificate_pem,
    split_key_file,
)
from mpki.utils.files import read_bytes

log = logging.getLogger(__name__)


def key_paths(name: str) -> Tuple[Path, Path]:
    """ The (.p, .s) pair for a key base name """
    return Path(f"{name}{PUBLIC_SUFFIX}"), Path(f"{name}{SECRET_SUFFIX}")


def _locate(name: str, suffix: str) -> Path:
    """ Try `name` + suffix first, then the literal name """
    for candidate in (Path(f"{name}{suffix}"), Path(name)):
        if candidate.is_file():
            log.debug("Resolved %r to %s", name, candidate)
            return candidate

    raise KeyNotFoundError(f"Key '{name}' not found (tried '{name}{suffix}' and '{name}').")


def resolve_public(name: str) -> PublicKeyHandle:
    """
    Locate and parse a certificate by name.

    Raises:
        KeyNotFoundError: Neither `name.p` nor `name` exists.
        InvalidKeyError: The file is not a certificate.
    """
    path = _locate(name, PUBLIC_SUFFIX)

    try:
        label, pem, info = split_key_file(read_bytes(path))
    except InvalidKeyError as exc:
        raise InvalidKeyError(f"'{path}' is not a public key: {exc}") from exc

    if label != CERTIFICATE_LABEL:
        raise InvalidKeyError(f"'{path}' is not a public key.")

    return PublicKeyHandle(
        name=name,
        path=path,
        certificate=load_certificate_pem(pem),
        annotation=KeyInfo.from_line(info),
    )


def resolve_secret(name: str) -> SecretKeyHandle:
    """
    Locate a secret key by name and check its PEM markers.

    The key is not parsed here: a locked key would need its passphrase.

    Raises:
        KeyNotFoundError: Neither `name.s` nor `name` exists.
        InvalidKeyError: The file does not hold a private key block.
    """
    path = _locate(name, SECRET_SUFFIX)

    try:
        label, pem, info = split_key_file(read_bytes(path))
    except InvalidKeyError as exc:
        raise InvalidKeyError(f"'{path}' is not a secret key: {exc}") from exc

    if label not in PRIVATE_KEY_LABELS:
        raise InvalidKeyError(f"'{path}' is not a secret key.")

    return SecretKeyHandle(
        name=name,
        path=path,
        pem=pem,
        locked=is_locked(pem),
        annotation=KeyInfo.from_line(info),
        info_line=info,
    )


def resolve_any(name: str) -> Union[PublicKeyHandle, SecretKeyHandle]:
    """ Public key first, then secret key """
    try:
        return resolve_public(name)
    except (KeyNotFoundError, InvalidKeyError) as public_exc:
        try:
            return resolve_secret(name)
        except KeyNotFoundError:
            raise public_exc
        except InvalidKeyError as secret_exc:
            raise InvalidKeyError(f"'{name}' is neither a public nor a secret key.") from secret_exc


def companion_public(handle: SecretKeyHandle) -> Optional[PublicKeyHandle]:
    """ The certificate stored next to a secret key file, if there is a readable one """
    if handle.path.suffix != SECRET_SUFFIX:
        return None

    try:
        return resolve_public(str(handle.path.with_suffix(PUBLIC_SUFFIX)))
    except PKIError as exc:
        log.debug("No usable companion certificate for %s: %s", handle.path, exc)
        return None


def load_secret_key(handle: SecretKeyHandle, provider, secrets: SecretProvider) -> rsa.RSAPrivateKey:
    """
    Parse a secret key, asking for its passphrase only when it is locked.

    Raises:
        PromptDeniedError: Locked and no passphrase available.
        InvalidKeyError: Bad passphrase, or not an RSA key.
    """
    passphrase = None
    if handle.locked:
        passphrase = secrets.passphrase(f"Passphrase for {handle.path}")

    return provider.load_private_key(handle.pem, passphrase)


def check_key_pair(public: PublicKeyHandle, key) -> None:
    """
    Refuse a local secret key that does not belong to the certificate.
    External (HSM) keys cannot be compared here and are passed through.
    """
    if isinstance(key, rsa.RSAPrivateKey) and key.public_key() != public.certificate.public_key():
        raise InvalidKeyError(f"Secret key does not match the public key of '{public.name}'.")
