# tests/e2e/test_10_keys.py

import pytest

from helpers import assert_fails, assert_ok, run_mpki

pytestmark = pytest.mark.e2e


@pytest.mark.order(10)
def test_generate_self_signed(mpki_bin, keydir, bare_env):
    assert_ok(run_mpki(mpki_bin, keydir, "generate", "-b", "1024", "-i", "e2e", "alice", env=bare_env),
              "generate alice")

    assert (keydir / "alice.p").is_file()
    assert (keydir / "alice.s").is_file()


@pytest.mark.order(11)
def test_check_self_signed(mpki_bin, keydir, bare_env):
    assert_ok(run_mpki(mpki_bin, keydir, "check", "alice", "alice", env=bare_env), "check alice alice")


@pytest.mark.order(12)
def test_refuse_overwrite(mpki_bin, keydir, bare_env):
    before = (keydir / "alice.s").read_bytes()

    err = assert_fails(run_mpki(mpki_bin, keydir, "generate", "-b", "1024", "alice", env=bare_env),
                       "generate alice again")

    assert "already exists" in err
    assert (keydir / "alice.s").read_bytes() == before


@pytest.mark.order(13)
def test_weak_key(mpki_bin, keydir, bare_env):
    err = assert_fails(run_mpki(mpki_bin, keydir, "generate", "-b", "256", "tiny", env=bare_env),
                       "generate 256 bit key")

    assert "minimum" in err
    assert not (keydir / "tiny.p").exists()


@pytest.mark.order(14)
def test_signed_by_ca(mpki_bin, keydir, bare_env):
    assert_ok(run_mpki(mpki_bin, keydir, "generate", "-b", "1024", "-c", "Root", "ca", env=bare_env),
              "generate ca")
    assert_ok(run_mpki(mpki_bin, keydir, "generate", "-b", "1024", "bob", "ca", env=bare_env),
              "generate bob signed by ca")

    assert_ok(run_mpki(mpki_bin, keydir, "check", "bob", "ca", env=bare_env), "check bob ca")
    assert_fails(run_mpki(mpki_bin, keydir, "check", "bob", "bob", env=bare_env), "check bob bob")
    assert_fails(run_mpki(mpki_bin, keydir, "check", "bob", "alice", env=bare_env), "check bob alice")


@pytest.mark.order(15)
def test_dump(mpki_bin, keydir, bare_env):
    assert assert_ok(run_mpki(mpki_bin, keydir, "dump", "-c", "ca", env=bare_env), "dump -c ca") == b"Root\n"
    assert assert_ok(run_mpki(mpki_bin, keydir, "dump", "-b", "ca.s", env=bare_env), "dump -b ca.s") == b"1024\n"

    public = assert_ok(run_mpki(mpki_bin, keydir, "dump", "-m", "ca", env=bare_env), "dump -m ca")
    secret = assert_ok(run_mpki(mpki_bin, keydir, "dump", "-m", "ca.s", env=bare_env), "dump -m ca.s")
    assert public == secret
