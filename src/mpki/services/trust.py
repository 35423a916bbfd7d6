# mpki/services/trust.py

from __future__ import annotations

import logging

from cryptography import x509
from cryptography.exceptions import InvalidSignature

from mpki.services.errors import InvalidSignatureError, NotSelfSignedError, NotSignedBySignerError
from mpki.utils.crypto import common_name

log = logging.getLogger(__name__)


def subject_of(certificate: x509.Certificate) -> str:
    """ CN of the certificate subject """
    return common_name(certificate.subject)


def issuer_of(certificate: x509.Certificate) -> str:
    """ CN of the certificate issuer """
    return common_name(certificate.issuer)


def verify_trust(certificate: x509.Certificate, signer: x509.Certificate, provider) -> None:
    """
    Check that `certificate` is either self-signed (same subject as `signer`)
    or directly signed by `signer`. Only these two levels are modelled: the
    signer is the sole trust anchor and is never itself chased upwards.

    Raises:
        InvalidKeyError: Missing or malformed CN.
        NotSelfSignedError: Same subject as the signer but a different issuer.
        NotSignedBySignerError: Issuer is not the signer's subject.
        InvalidSignatureError: Names line up but the signature does not validate.
    """
    subject = subject_of(certificate)
    issuer = issuer_of(certificate)
    signer_subject = subject_of(signer)

    if subject == signer_subject:
        if issuer != subject:
            raise NotSelfSignedError(f"'{subject}' is not self-signed (issuer is '{issuer}').")
    elif issuer != signer_subject:
        raise NotSignedBySignerError(f"'{subject}' is issued by '{issuer}', not by '{signer_subject}'.")

    try:
        provider.verify_issued_by(certificate, signer)
    except (InvalidSignature, ValueError, TypeError) as exc:
        log.debug("Signature check of %r against %r failed: %s", subject, signer_subject, exc)
        raise InvalidSignatureError(f"Signature of '{subject}' does not validate against '{signer_subject}'.") from exc

    log.debug("Trust holds: %r anchored by %r", subject, signer_subject)
