# mpki/services/provider.py

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Protocol, Union

import rsa as pure_rsa
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.x509.oid import NameOID

from mpki.constants import (
    CIPHER_NAME,
    CONTENT_KEY_BYTES,
    KEY_WRAP_NAME,
    KEY_WRAP_PKCS1,
    LIBRARY_MIN_KEY_SIZE,
    NONCE_BYTES,
    PUBLIC_EXPONENT,
)
from mpki.models.envelope import EncryptedEnvelope, RecipientInfo
from mpki.services.errors import InvalidKeyError
from mpki.utils.crypto import common_name, load_certificate_pem, replace_certificate_signature

log = logging.getLogger(__name__)

_OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)

_KEY_WRAP_PADDING = {
    KEY_WRAP_NAME: _OAEP,
    KEY_WRAP_PKCS1: padding.PKCS1v15(),
}

# Only used to let the library lay out a certificate that an external key will sign
_PLACEHOLDER_KEY_SIZE = 2048


class ExternalKey(Protocol):
    """ A secret key that lives outside the process, e.g. in an HSM """
    label: str

    def sign(self, data: bytes) -> bytes:
        """ RSA PKCS#1 v1.5 signature over SHA-256 of `data` """

    def unwrap(self, data: bytes, key_wrap: str) -> bytes:
        """ Decrypt a wrapped content key; `key_wrap` names the RSA padding """


SecretKey = Union[rsa.RSAPrivateKey, ExternalKey]


def _generate_small_key(bits: int) -> rsa.RSAPrivateKey:
    """ Keys below LIBRARY_MIN_KEY_SIZE come from python-rsa and are rebuilt as pyca keys """
    _, private = pure_rsa.newkeys(bits, exponent=PUBLIC_EXPONENT)
    p, q, d = private.p, private.q, private.d

    numbers = rsa.RSAPrivateNumbers(
        p=p,
        q=q,
        d=d,
        dmp1=rsa.rsa_crt_dmp1(d, p),
        dmq1=rsa.rsa_crt_dmq1(d, q),
        iqmp=rsa.rsa_crt_iqmp(p, q),
        public_numbers=rsa.RSAPublicNumbers(private.e, private.n),
    )
    return numbers.private_key()


def key_wrap_for(public_key: rsa.RSAPublicKey) -> str:
    """ OAEP-SHA256 when the modulus has room for the content key, PKCS#1 v1.5 otherwise """
    room = (public_key.key_size + 7) // 8 - 2 * hashes.SHA256.digest_size - 2
    return KEY_WRAP_NAME if room >= CONTENT_KEY_BYTES else KEY_WRAP_PKCS1


class CryptoProvider(ABC):
    """
    The cryptographic primitives mpki relies on. Everything above this layer
    deals in certificates, keys and envelopes, never in padding or ciphers.
    """

    @abstractmethod
    def generate_key(self, bits: int) -> rsa.RSAPrivateKey: ...

    @abstractmethod
    def load_certificate(self, pem: bytes) -> x509.Certificate: ...

    @abstractmethod
    def dump_certificate(self, certificate: x509.Certificate) -> bytes: ...

    @abstractmethod
    def load_private_key(self, pem: bytes, passphrase: Optional[bytes] = None) -> rsa.RSAPrivateKey: ...

    @abstractmethod
    def dump_private_key(self, key: rsa.RSAPrivateKey, passphrase: Optional[bytes] = None) -> bytes: ...

    @abstractmethod
    def build_csr(self, key: rsa.RSAPrivateKey, cn: str) -> x509.CertificateSigningRequest: ...

    @abstractmethod
    def issue_certificate(
        self,
        csr: x509.CertificateSigningRequest,
        *,
        serial: int,
        not_before: datetime,
        not_after: datetime,
        signer_key: SecretKey,
        signer_certificate: Optional[x509.Certificate] = None,
    ) -> x509.Certificate: ...

    @abstractmethod
    def digest_sign(self, key: SecretKey, data: bytes) -> bytes: ...

    @abstractmethod
    def digest_verify(self, certificate: x509.Certificate, signature: bytes, data: bytes) -> None: ...

    @abstractmethod
    def verify_issued_by(self, certificate: x509.Certificate, signer: x509.Certificate) -> None: ...

    @abstractmethod
    def envelope_encrypt(self, certificate: x509.Certificate, plaintext: bytes) -> EncryptedEnvelope: ...

    @abstractmethod
    def envelope_decrypt(self, envelope: EncryptedEnvelope, key: SecretKey) -> bytes: ...


class CryptographyProvider(CryptoProvider):
    """ CryptoProvider backed by pyca/cryptography """

    def generate_key(self, bits: int) -> rsa.RSAPrivateKey:
        """
        Generate an RSA private key

        Raises:
            ValueError: The key size cannot be generated.
        """
        if bits < LIBRARY_MIN_KEY_SIZE:
            log.debug("Generating %d bit key with python-rsa", bits)
            return _generate_small_key(bits)

        return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bits)

    def load_certificate(self, pem: bytes) -> x509.Certificate:
        return load_certificate_pem(pem)

    def dump_certificate(self, certificate: x509.Certificate) -> bytes:
        return certificate.public_bytes(serialization.Encoding.PEM)

    def load_private_key(self, pem: bytes, passphrase: Optional[bytes] = None) -> rsa.RSAPrivateKey:
        """
        Parse a PEM private key, decrypting it with `passphrase` if given.

        Raises:
            InvalidKeyError: Wrong or missing passphrase, corrupt data, not RSA.
        """
        try:
            key = serialization.load_pem_private_key(pem, password=passphrase)
        except (ValueError, TypeError) as exc:
            raise InvalidKeyError("Cannot load secret key (wrong passphrase or corrupt key).") from exc

        if not isinstance(key, rsa.RSAPrivateKey):
            raise InvalidKeyError("Secret key is not an RSA key.")

        return key

    def dump_private_key(self, key: rsa.RSAPrivateKey, passphrase: Optional[bytes] = None) -> bytes:
        """ Locked keys are PKCS#8 encrypted, unlocked keys traditional OpenSSL PEM """
        if passphrase:
            return key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.BestAvailableEncryption(passphrase),
            )

        return key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )

    def build_csr(self, key: rsa.RSAPrivateKey, cn: str) -> x509.CertificateSigningRequest:
        subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])

        return (
            x509.CertificateSigningRequestBuilder()
            .subject_name(subject)
            .sign(key, hashes.SHA256())
        )

    def issue_certificate(
        self,
        csr: x509.CertificateSigningRequest,
        *,
        serial: int,
        not_before: datetime,
        not_after: datetime,
        signer_key: SecretKey,
        signer_certificate: Optional[x509.Certificate] = None,
    ) -> x509.Certificate:
        """
        Sign the CSR. Without a signer certificate the result is self-signed.
        Signers that are not local RSA keys sign the TBSCertificate bytes and
        their signature is spliced into the certificate.
        """
        if not csr.is_signature_valid:
            raise ValueError("Certificate signing request signature is invalid.")

        self_signed = signer_certificate is None
        issuer_name = csr.subject if self_signed else signer_certificate.subject
        issuer_public_key = csr.public_key() if self_signed else signer_certificate.public_key()

        builder = x509.CertificateBuilder().subject_name(csr.subject)
        builder = builder.issuer_name(issuer_name)
        builder = builder.public_key(csr.public_key())
        builder = builder.serial_number(int(serial))
        builder = builder.not_valid_before(not_before)
        builder = builder.not_valid_after(not_after)
        builder = builder.add_extension(
            x509.SubjectKeyIdentifier.from_public_key(csr.public_key()),
            critical=False
        )
        builder = builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_public_key),
            critical=False
        )
        builder = builder.add_extension(
            x509.BasicConstraints(ca=self_signed, path_length=0 if self_signed else None),
            critical=True
        )

        if isinstance(signer_key, rsa.RSAPrivateKey):
            return builder.sign(private_key=signer_key, algorithm=hashes.SHA256())

        log.debug("Issuing with external signer %r", getattr(signer_key, "label", signer_key))
        placeholder = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=_PLACEHOLDER_KEY_SIZE)
        draft = builder.sign(private_key=placeholder, algorithm=hashes.SHA256())
        signature = signer_key.sign(draft.tbs_certificate_bytes)
        der = replace_certificate_signature(draft.public_bytes(serialization.Encoding.DER), signature)

        return x509.load_der_x509_certificate(der)

    def digest_sign(self, key: SecretKey, data: bytes) -> bytes:
        if isinstance(key, rsa.RSAPrivateKey):
            return key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        return key.sign(data)

    def digest_verify(self, certificate: x509.Certificate, signature: bytes, data: bytes) -> None:
        """
        Raises:
            cryptography.exceptions.InvalidSignature: Signature does not match.
            TypeError: The certificate does not hold an RSA key.
        """
        public_key = certificate.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise TypeError("Certificate does not hold an RSA public key.")

        public_key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())

    def verify_issued_by(self, certificate: x509.Certificate, signer: x509.Certificate) -> None:
        certificate.verify_directly_issued_by(signer)

    def envelope_encrypt(self, certificate: x509.Certificate, plaintext: bytes) -> EncryptedEnvelope:
        """ AES-256-GCM under a fresh content key, wrapped with RSA for the recipient """
        public_key = certificate.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise TypeError("Recipient certificate does not hold an RSA public key.")

        content_key = AESGCM.generate_key(bit_length=CONTENT_KEY_BYTES * 8)
        wrap = key_wrap_for(public_key)

        recipient = RecipientInfo(
            subject_cn=common_name(certificate.subject),
            issuer_cn=common_name(certificate.issuer),
            serial=certificate.serial_number,
            key_wrap=wrap,
            encrypted_key=public_key.encrypt(content_key, _KEY_WRAP_PADDING[wrap]),
        )
        envelope = EncryptedEnvelope(
            recipient=recipient,
            cipher=CIPHER_NAME,
            nonce=os.urandom(NONCE_BYTES),
            ciphertext=b"",
        )
        ciphertext = AESGCM(content_key).encrypt(envelope.nonce, plaintext, envelope.associated_data())

        return envelope.model_copy(update={"ciphertext": ciphertext})

    def envelope_decrypt(self, envelope: EncryptedEnvelope, key: SecretKey) -> bytes:
        """
        Raises:
            ValueError: Unknown algorithms or a bad key wrap.
            cryptography.exceptions.InvalidTag: Ciphertext or associated data altered.
        """
        wrap = envelope.recipient.key_wrap
        if wrap not in _KEY_WRAP_PADDING or envelope.cipher != CIPHER_NAME:
            raise ValueError(f"Unsupported envelope algorithms {wrap}/{envelope.cipher}.")

        if isinstance(key, rsa.RSAPrivateKey):
            content_key = key.decrypt(envelope.recipient.encrypted_key, _KEY_WRAP_PADDING[wrap])
        else:
            content_key = key.unwrap(envelope.recipient.encrypted_key, wrap)

        if len(content_key) != CONTENT_KEY_BYTES:
            raise ValueError("Unwrapped content key has the wrong length.")

        return AESGCM(content_key).decrypt(envelope.nonce, envelope.ciphertext, envelope.associated_data())
