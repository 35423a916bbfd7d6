# tests/e2e/helpers.py

import subprocess

import pytest


def run_mpki(mpki_bin, keydir, *args, input=b"", env=None):
    """
    Run one mpki invocation in `keydir`.

    A new session detaches the child from any terminal, so a passphrase
    prompt can never block the test run.
    """
    return subprocess.run(
        [mpki_bin, *args],
        input=input,
        cwd=keydir,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        start_new_session=True,
        timeout=120,
    )


def assert_ok(res, step_desc):
    if res.returncode != 0:
        pytest.fail(
            f"{step_desc} FAILED (code {res.returncode})\n"
            f"--- stderr ---\n{res.stderr.decode(errors='replace')}\n--------------"
        )
    return res.stdout


def assert_fails(res, step_desc):
    if res.returncode == 0:
        pytest.fail(f"{step_desc} unexpectedly succeeded\n--- stdout ---\n{res.stdout!r}\n--------------")
    assert res.returncode == 2
    return res.stderr.decode(errors="replace")
