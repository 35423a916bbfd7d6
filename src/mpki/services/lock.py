# mpki/services/lock.py

from __future__ import annotations

import logging

from mpki.models.key import SecretKeyHandle
from mpki.services.errors import AlreadyLockedError, NotLockedError
from mpki.services.passphrase import SecretProvider
from mpki.services.provider import CryptoProvider
from mpki.utils.crypto import join_key_file

log = logging.getLogger(__name__)


def lock(handle: SecretKeyHandle, provider: CryptoProvider, secrets: SecretProvider) -> bytes:
    """
    Return the key file content with the key encrypted under a new passphrase.

    Raises:
        AlreadyLockedError: The key already carries a passphrase.
        PromptDeniedError: No passphrase given.
    """
    if handle.locked:
        raise AlreadyLockedError(f"'{handle.path}' is already locked.")

    key = provider.load_private_key(handle.pem)
    passphrase = secrets.passphrase(f"New passphrase for {handle.path}", confirm=True)

    log.debug("Locking %s (%d bits)", handle.path, key.key_size)
    return join_key_file(provider.dump_private_key(key, passphrase), handle.info_line)


def unlock(handle: SecretKeyHandle, provider: CryptoProvider, secrets: SecretProvider) -> bytes:
    """
    Return the key file content with the key in cleartext.

    Raises:
        NotLockedError: The key has no passphrase.
        PromptDeniedError: No passphrase given.
        InvalidKeyError: Wrong passphrase.
    """
    if not handle.locked:
        raise NotLockedError(f"'{handle.path}' is not locked.")

    passphrase = secrets.passphrase(f"Passphrase for {handle.path}")
    key = provider.load_private_key(handle.pem, passphrase)

    log.debug("Unlocking %s (%d bits)", handle.path, key.key_size)
    return join_key_file(provider.dump_private_key(key), handle.info_line)
