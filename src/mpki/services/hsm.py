# mpki/services/hsm.py

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

import pkcs11
from pkcs11 import MGF, Mechanism, ObjectClass
from pkcs11.exceptions import MultipleObjectsReturned, NoSuchKey, PinIncorrect, PKCS11Error

from mpki.constants import HSM_CONF_ENV, KEY_WRAP_NAME, KEY_WRAP_PKCS1
from mpki.models.config import HsmConfig
from mpki.services.errors import EnvironmentConfigError, KeyNotFoundError, PromptDeniedError
from mpki.services.passphrase import SecretProvider
from mpki.services.workspace import EphemeralWorkspace

log = logging.getLogger(__name__)

_OAEP_PARAMS = (Mechanism.SHA256, MGF.SHA256, None)


class HsmKey:
    """ A private key object on the token, addressed by label """
    def __init__(self, label: str, key):
        self.label = label
        self._key = key

    def sign(self, data: bytes) -> bytes:
        return bytes(self._key.sign(data, mechanism=Mechanism.SHA256_RSA_PKCS))

    def unwrap(self, data: bytes, key_wrap: str) -> bytes:
        if key_wrap == KEY_WRAP_NAME:
            return bytes(self._key.decrypt(data, mechanism=Mechanism.RSA_PKCS_OAEP, mechanism_param=_OAEP_PARAMS))
        if key_wrap == KEY_WRAP_PKCS1:
            return bytes(self._key.decrypt(data, mechanism=Mechanism.RSA_PKCS))

        raise ValueError(f"Unsupported key wrap {key_wrap}.")

    def __repr__(self) -> str:
        return f"HsmKey(label={self.label!r})"


@contextmanager
def _scoped_env(name: str, value: str) -> Iterator[None]:
    """
    Set an environment variable for the duration of the block only

    The YubiHSM PKCS#11 module reads its connector settings from the file named by
    YUBIHSM_PKCS11_CONF when it is loaded, and offers no other way to configure it.
    The previous value is put back on exit.
    """
    previous = os.environ.get(name)
    os.environ[name] = value
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = previous


class Pkcs11Token:
    """ Thin class to reach a token through the vendor PKCS#11 module """
    def __init__(self, config: HsmConfig, workspace: EphemeralWorkspace, secrets: SecretProvider):
        self.config = config.require()
        self.workspace = workspace
        self.secrets = secrets

    def _token(self, lib):
        if self.config.token_label:
            return lib.get_token(token_label=self.config.token_label)

        slots = lib.get_slots(token_present=True)
        if not slots:
            raise EnvironmentConfigError("No HSM token present.")
        return slots[0].get_token()

    @contextmanager
    def key(self, label: str) -> Iterator[HsmKey]:
        """
        Open a session, log in and yield the private key labelled `label`.
        The session is closed when the block exits.

        Raises:
            EnvironmentConfigError: Module, connector or token unavailable.
            PromptDeniedError: No PIN, or the PIN was rejected.
            KeyNotFoundError: No private key with that label.
        """
        conf_path = self.workspace.write_hsm_config(self.config.connector_url)

        with _scoped_env(HSM_CONF_ENV, str(conf_path)):
            try:
                lib = pkcs11.lib(self.config.module_path)
                token = self._token(lib)
            except (PKCS11Error, RuntimeError, OSError) as exc:
                raise EnvironmentConfigError(
                    f"Cannot reach HSM via {self.config.connector_url}: {exc!r}"
                ) from exc

            pin = self.secrets.passphrase(f"HSM PIN for {token.label}").decode("utf-8")

            try:
                session = token.open(user_pin=pin)
            except PinIncorrect as exc:
                raise PromptDeniedError("HSM rejected the PIN.") from exc
            except PKCS11Error as exc:
                raise EnvironmentConfigError(f"Cannot open HSM session: {exc!r}") from exc

            with session:
                try:
                    key = session.get_key(object_class=ObjectClass.PRIVATE_KEY, label=label)
                except (NoSuchKey, MultipleObjectsReturned) as exc:
                    raise KeyNotFoundError(f"HSM key {label!r} not found or ambiguous.") from exc

                log.debug("Opened HSM key %r on token %r", label, token.label)
                yield HsmKey(label, key)


def open_hsm_key(config: HsmConfig, workspace: EphemeralWorkspace, secrets: SecretProvider,
                 label: Optional[str]):
    if not label:
        raise EnvironmentConfigError("No HSM key label given.")
    return Pkcs11Token(config, workspace, secrets).key(label)
