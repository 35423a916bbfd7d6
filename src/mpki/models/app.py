# mpki/models/app.py

import logging
import os
from argparse import Namespace
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from mpki.models.config import HsmConfig, RuntimeConfig
from mpki.services.errors import EnvironmentConfigError
from mpki.services.keys import load_secret_key, resolve_secret
from mpki.services.passphrase import SecretProvider, default_secret_provider
from mpki.services.provider import CryptoProvider, CryptographyProvider, SecretKey
from mpki.services.workspace import EphemeralWorkspace

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class App:
    """
    Lightweight application context passed to all handlers.
    Holds the per-invocation configuration and the services built from it.
    """
    args: Namespace
    config: RuntimeConfig
    provider: CryptoProvider
    secrets: SecretProvider
    workspace: EphemeralWorkspace

    @classmethod
    def from_args(
        cls,
        args: Namespace,
        workspace: EphemeralWorkspace,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "App":
        env = os.environ if environ is None else environ

        config = RuntimeConfig(
            hsm=HsmConfig.from_env(env),
            verbose=bool(getattr(args, "verbose", False)),
        )
        log.debug("Runtime config: %s", config)

        return cls(
            args=args,
            config=config,
            provider=CryptographyProvider(),
            secrets=default_secret_provider(env),
            workspace=workspace,
        )

    @contextmanager
    def secret_key(self, name: str, *, hsm: bool = False) -> Iterator[SecretKey]:
        """
        Yield the secret key `name`: a local `.s` file, or with `hsm` the
        label of a key on the token. Token sessions close on exit.
        """
        if hsm:
            # python-pkcs11 is optional, only import it when a token is used
            try:
                from mpki.services.hsm import open_hsm_key
            except ImportError as exc:
                raise EnvironmentConfigError("HSM support needs python-pkcs11 (pip install mpki[hsm]).") from exc

            opener = open_hsm_key(self.config.hsm, self.workspace, self.secrets, name)
        else:
            handle = resolve_secret(name)
            opener = nullcontext(load_secret_key(handle, self.provider, self.secrets))

        with opener as key:
            yield key
