# mpki/services/passphrase.py

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from mpki.constants import ENV_PASSPHRASE
from mpki.services.errors import PromptDeniedError
from mpki.utils.cli_ui import get_confirmed_password, get_password

log = logging.getLogger(__name__)


class SecretProvider(ABC):
    """
    Source of passphrases and HSM PINs.

    Operations that need a secret ask for one through this interface so that
    they never touch a terminal themselves.
    """
    @abstractmethod
    def passphrase(self, prompt: str, *, confirm: bool = False) -> bytes:
        """
        Return a non-empty passphrase.

        Raises:
            PromptDeniedError: No passphrase could be obtained.
        """


class TerminalSecretProvider(SecretProvider):
    """ Interactive prompts via getpass """
    def passphrase(self, prompt: str, *, confirm: bool = False) -> bytes:
        try:
            value = get_confirmed_password(prompt) if confirm else get_password(prompt)
        except (EOFError, KeyboardInterrupt) as exc:
            raise PromptDeniedError(f"No passphrase entered for: {prompt}") from exc

        if not value:
            raise PromptDeniedError(f"Empty passphrase for: {prompt}")

        return value.encode("utf-8")


class StaticSecretProvider(SecretProvider):
    """ Hands out a fixed passphrase, or refuses when constructed with None """
    def __init__(self, value: Optional[str]):
        self._value = value
        self.prompts: list[str] = []

    def passphrase(self, prompt: str, *, confirm: bool = False) -> bytes:
        self.prompts.append(prompt)

        if not self._value:
            raise PromptDeniedError(f"No passphrase available for: {prompt}")

        return self._value.encode("utf-8")


class EnvSecretProvider(StaticSecretProvider):
    """ Non-interactive runs: passphrase taken from the environment """
    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ
        super().__init__(env.get(ENV_PASSPHRASE))


def default_secret_provider(environ: Optional[Mapping[str, str]] = None) -> SecretProvider:
    env = os.environ if environ is None else environ

    if env.get(ENV_PASSPHRASE):
        log.debug("Using passphrase from %s", ENV_PASSPHRASE)
        return EnvSecretProvider(env)

    return TerminalSecretProvider()
