# tests/e2e/conftest.py

import os
import stat
import sys
from pathlib import Path

import pytest

pytestmark = pytest.mark.e2e


@pytest.fixture(scope="session")
def mpki_bin(pytestconfig, tmp_path_factory):
    """
    Run repo code via `python -m mpki` (no PATH reliance).
    Allow override via MPKI_BIN.
    """
    override = os.environ.get("MPKI_BIN")
    if override:
        p = Path(override)
        if not p.exists():
            pytest.skip(f"MPKI_BIN={override} does not exist")
        return str(p.resolve())

    root = Path(pytestconfig.rootpath)
    src_dir = root / "src"
    pkg_main = src_dir / "mpki" / "__main__.py"
    if not pkg_main.exists():
        pytest.skip(f"Could not find {pkg_main}. Expected package at src/mpki.")

    # shim that sets PYTHONPATH and runs -m mpki
    shim = tmp_path_factory.mktemp("mpki_shim") / "mpki"
    shim.write_text(
        f"#!/usr/bin/env bash\n"
        f"set -euo pipefail\n"
        f'export PYTHONPATH="{src_dir}:${{PYTHONPATH:-}}"\n'
        f'exec "{sys.executable}" -m mpki "$@"\n'
    )
    shim.chmod(shim.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(shim.resolve())


@pytest.fixture(scope="session")
def keydir(tmp_path_factory):
    """Directory shared by the ordered scenario tests; key files accumulate here."""
    return tmp_path_factory.mktemp("keys")


@pytest.fixture(scope="session")
def passphrase_env():
    env = dict(os.environ)
    env["MPKI_PASSPHRASE"] = "correct horse"
    return env


@pytest.fixture(scope="session")
def bare_env():
    env = dict(os.environ)
    env.pop("MPKI_PASSPHRASE", None)
    return env
