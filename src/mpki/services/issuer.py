# mpki/services/issuer.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from mpki.constants import MIN_KEY_SIZE, PUBLIC_FILE_MODE, SECRET_FILE_MODE
from mpki.models.key import KeyInfo, PublicKeyHandle
from mpki.models.options import GenerateOptions
from mpki.services.errors import (
    AlreadyExistsError,
    InvalidKeyError,
    IssuanceFailedError,
    PKIError,
    TrustError,
    WeakKeyError,
)
from mpki.services.keys import key_paths, load_secret_key, resolve_public, resolve_secret
from mpki.services.passphrase import SecretProvider
from mpki.services.provider import CryptoProvider, SecretKey
from mpki.services.trust import subject_of, verify_trust
from mpki.services.workspace import EphemeralWorkspace
from mpki.utils.crypto import join_key_file
from mpki.utils.datetime import validity_window
from mpki.utils.files import write_bytes

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedKeyPair:
    """ What generate() wrote """
    cn: str
    serial: int
    bits: int
    public_path: Path
    secret_path: Path
    certificate: x509.Certificate
    locked: bool


class CertificateIssuer:
    """ Class to issue key pairs and certificates """
    def __init__(self, provider: CryptoProvider, workspace: EphemeralWorkspace, secrets: SecretProvider):
        """
        Construct an issuer.

        Args:
            provider: Cryptographic primitives
            workspace: Ephemeral workspace holding the CA state for this invocation
            secrets: Where passphrases come from
        """
        self.provider = provider
        self.workspace = workspace
        self.secrets = secrets

    def _resolve_signer(self, opts: GenerateOptions, external_key: Optional[SecretKey]):
        """ Signer certificate (which must be self-signed) and its secret key """
        signer = resolve_public(opts.signer)

        try:
            verify_trust(signer.certificate, signer.certificate, self.provider)
        except TrustError as exc:
            raise type(exc)(f"Signer '{opts.signer}' does not anchor its own trust: {exc}") from exc

        if external_key is not None:
            return signer, external_key

        signer_key = load_secret_key(resolve_secret(opts.signer), self.provider, self.secrets)

        if signer_key.public_key() != signer.certificate.public_key():
            raise InvalidKeyError(f"Secret key of signer '{opts.signer}' does not match its certificate.")

        return signer, signer_key

    def _obtain_key(self, opts: GenerateOptions) -> rsa.RSAPrivateKey:
        """ Clone an existing secret key or generate a fresh one """
        if opts.clone:
            source = resolve_secret(opts.clone)
            key = load_secret_key(source, self.provider, self.secrets)
            log.debug("Cloning secret key from %s (%d bits)", source.path, key.key_size)

            if key.key_size < MIN_KEY_SIZE:
                raise WeakKeyError(f"Clone source is {key.key_size} bits, minimum is {MIN_KEY_SIZE}.")
            return key

        try:
            return self.provider.generate_key(opts.bits)
        except ValueError as exc:
            raise IssuanceFailedError(f"Cannot generate a {opts.bits} bit key: {exc}") from exc

    def generate(self, opts: GenerateOptions, external_signer_key: Optional[SecretKey] = None) -> IssuedKeyPair:
        """
        Create `keyname.p` and `keyname.s`.

        The certificate is self-signed unless a signer is named, in which case
        it is issued by the signer's secret key (from file, or `external_signer_key`).

        Raises:
            WeakKeyError: Key size below the floor.
            AlreadyExistsError: Either target file exists.
            KeyNotFoundError, InvalidKeyError: Bad signer or clone source.
            NotSelfSignedError: The signer is not self-signed.
            IssuanceFailedError: The certificate could not be issued.
        """
        if opts.bits < MIN_KEY_SIZE:
            raise WeakKeyError(f"Key size {opts.bits} is below the minimum of {MIN_KEY_SIZE} bits.")

        public_path, secret_path = key_paths(opts.keyname)
        for path in (public_path, secret_path):
            if path.exists():
                raise AlreadyExistsError(f"'{path}' already exists. Refusing to overwrite.")

        signer: Optional[PublicKeyHandle] = None
        signer_key: Optional[SecretKey] = None
        if opts.signer:
            signer, signer_key = self._resolve_signer(opts, external_signer_key)
        elif external_signer_key is not None:
            raise IssuanceFailedError("An HSM signer key needs a signer certificate.")

        key = self._obtain_key(opts)

        passphrase = None
        if opts.lock:
            passphrase = self.secrets.passphrase(f"New passphrase for {secret_path}", confirm=True)

        serial = self.workspace.next_serial()
        cn = opts.cn or f"{opts.keyname} {serial}"
        not_before, not_after = validity_window(opts.days)

        try:
            csr = self.provider.build_csr(key, cn)
            certificate = self.provider.issue_certificate(
                csr,
                serial=serial,
                not_before=not_before,
                not_after=not_after,
                signer_key=signer_key if signer else key,
                signer_certificate=signer.certificate if signer else None,
            )
        except (ValueError, TypeError) as exc:
            raise IssuanceFailedError(f"Failed to issue certificate for '{cn}': {exc}") from exc

        try:
            verify_trust(certificate, signer.certificate if signer else certificate, self.provider)
        except PKIError as exc:
            raise IssuanceFailedError(f"Issued certificate for '{cn}' does not validate: {exc}") from exc

        self.workspace.database.add_cert(certificate)

        annotation = KeyInfo(cn=cn, bits=key.key_size, info=opts.info).to_line()
        secret_pem = join_key_file(self.provider.dump_private_key(key, passphrase), annotation)
        public_pem = join_key_file(self.provider.dump_certificate(certificate), annotation)

        write_bytes(secret_path, secret_pem, mode=SECRET_FILE_MODE)
        try:
            write_bytes(public_path, public_pem, mode=PUBLIC_FILE_MODE)
        except PKIError:
            secret_path.unlink()
            raise

        log.info("Issued %r serial=%d issuer=%r", cn, serial, subject_of(signer.certificate) if signer else cn)

        return IssuedKeyPair(
            cn=cn,
            serial=serial,
            bits=key.key_size,
            public_path=public_path,
            secret_path=secret_path,
            certificate=certificate,
            locked=passphrase is not None,
        )
