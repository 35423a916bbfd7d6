"""Shared fixtures for mpki unit tests."""

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from mpki.constants import KEY_WRAP_PKCS1
from mpki.models.options import GenerateOptions
from mpki.services.issuer import CertificateIssuer
from mpki.services.passphrase import StaticSecretProvider
from mpki.services.provider import CryptographyProvider
from mpki.services.workspace import ephemeral_workspace

# Small keys keep the suite fast; still well above the 512 bit floor
TEST_BITS = 1024


class FakeHsmKey:
    """Stands in for an HSM key: signs and unwraps with a local RSA key."""

    def __init__(self, label, private_key):
        self.label = label
        self._key = private_key
        self.calls = []

    def sign(self, data):
        self.calls.append("sign")
        return self._key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    def unwrap(self, data, key_wrap):
        self.calls.append("unwrap")
        if key_wrap == KEY_WRAP_PKCS1:
            return self._key.decrypt(data, padding.PKCS1v15())
        return self._key.decrypt(
            data,
            padding.OAEP(mgf=padding.MGF1(hashes.SHA256()), algorithm=hashes.SHA256(), label=None),
        )


@pytest.fixture
def provider():
    return CryptographyProvider()


@pytest.fixture
def secrets():
    return StaticSecretProvider("pw")


@pytest.fixture
def no_secrets():
    return StaticSecretProvider(None)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test inside an empty directory; key names resolve against it."""
    work = tmp_path / "keys"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def workspace(tmp_path):
    base = tmp_path / "ws"
    base.mkdir()
    with ephemeral_workspace(str(base)) as ws:
        yield ws


@pytest.fixture
def generate(provider, secrets, workdir, tmp_path):
    """
    Issue a key pair the way one `mpki generate` invocation would: each call
    gets its own workspace.
    """
    base = tmp_path / "generate-ws"
    base.mkdir()

    def _generate(keyname, signer=None, external_signer_key=None, **kwargs):
        kwargs.setdefault("bits", TEST_BITS)
        opts = GenerateOptions(keyname=keyname, signer=signer, **kwargs)
        with ephemeral_workspace(str(base)) as ws:
            return CertificateIssuer(provider, ws, secrets).generate(opts, external_signer_key)

    return _generate


@pytest.fixture
def fake_hsm_key():
    return FakeHsmKey
