# mpki/models/config.py

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from mpki.constants import (
    DEFAULT_HSM_CONNECTOR,
    ENV_HSM_CONNECTOR,
    ENV_HSM_ENGINE,
    ENV_HSM_MODULE,
    ENV_HSM_TOKEN,
)
from mpki.services.errors import EnvironmentConfigError


@dataclass(frozen=True)
class HsmConfig:
    """
    Where to find the hardware security module.

    module_path is the vendor PKCS#11 module. engine_path is the optional
    PKCS#11 engine module some operators keep alongside it; mpki talks to the
    vendor module directly and only reports it.
    """
    module_path: Optional[str] = None
    engine_path: Optional[str] = None
    connector_url: str = DEFAULT_HSM_CONNECTOR
    token_label: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HsmConfig":
        env = os.environ if environ is None else environ
        return cls(
            module_path=env.get(ENV_HSM_MODULE) or None,
            engine_path=env.get(ENV_HSM_ENGINE) or None,
            connector_url=env.get(ENV_HSM_CONNECTOR) or DEFAULT_HSM_CONNECTOR,
            token_label=env.get(ENV_HSM_TOKEN) or None,
        )

    def require(self) -> "HsmConfig":
        """ Fail unless the vendor module is configured and present """
        if not self.module_path:
            raise EnvironmentConfigError(f"HSM module not configured. Set {ENV_HSM_MODULE}.")

        if not os.path.isfile(self.module_path):
            raise EnvironmentConfigError(f"HSM module {self.module_path!r} does not exist.")

        if self.engine_path and not os.path.isfile(self.engine_path):
            raise EnvironmentConfigError(f"PKCS#11 engine {self.engine_path!r} does not exist.")

        return self


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Per-invocation configuration handed to every operation.
    Built once from arguments and environment, never mutated.
    """
    hsm: HsmConfig = field(default_factory=HsmConfig)
    verbose: bool = False
