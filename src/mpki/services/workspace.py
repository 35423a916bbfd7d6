# mpki/services/workspace.py

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from mpki.constants import (
    HSM_CONF_FILENAME,
    WORKSPACE_DB_FILENAME,
    WORKSPACE_PREFIX,
    WORKSPACE_SERIAL_FILENAME,
)
from mpki.services.database import IssuanceDB
from mpki.services.errors import IssuanceFailedError
from mpki.utils.datetime import epoch_serial

log = logging.getLogger(__name__)


class EphemeralWorkspace:
    """
    Private directory for the state of a single invocation: the issuance
    database and serial seed of the CA, and the HSM vendor module
    configuration. Created and destroyed by ephemeral_workspace().
    """
    def __init__(self, path: Path):
        self.path = path
        self._database: Optional[IssuanceDB] = None

    @property
    def database(self) -> IssuanceDB:
        if self._database is None:
            raise IssuanceFailedError("CA state has not been initialised in this workspace.")
        return self._database

    @property
    def serial_path(self) -> Path:
        return self.path / WORKSPACE_SERIAL_FILENAME

    @property
    def hsm_config_path(self) -> Path:
        return self.path / HSM_CONF_FILENAME

    def init_ca_state(self) -> IssuanceDB:
        """ Empty issuance database plus the serial seed, created once """
        if self._database is None:
            self._database = IssuanceDB(self.path / WORKSPACE_DB_FILENAME)
            self.serial_path.write_text("")
            log.debug("CA state initialised in %s", self.path)
        return self._database

    def next_serial(self) -> int:
        """
        Serial for the next certificate: the current epoch second.

        Raises:
            IssuanceFailedError: That serial was already issued in this invocation.
        """
        database = self.init_ca_state()
        serial = epoch_serial()

        if database.serial_exists(serial):
            raise IssuanceFailedError(f"Serial {serial} already issued in this invocation.")

        database.set_serial_seed(serial)
        self.serial_path.write_text(f"{serial:X}\n")
        return serial

    def write_hsm_config(self, connector_url: str) -> Path:
        """ Vendor module configuration pointing at the local connector """
        path = self.hsm_config_path
        path.write_text(f"connector = {connector_url}\n")
        os.chmod(path, 0o600)
        return path

    def close(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None


@contextmanager
def ephemeral_workspace(base_dir: Optional[str] = None) -> Iterator[EphemeralWorkspace]:
    """
    Create a uniquely named private directory and remove it on every exit
    path, including exceptions and KeyboardInterrupt.
    """
    path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=base_dir))
    workspace = EphemeralWorkspace(path)
    log.debug("Created workspace %s", path)

    try:
        yield workspace
    finally:
        workspace.close()
        shutil.rmtree(path, ignore_errors=True)
        log.debug("Removed workspace %s", path)
