# mpki/models/key.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryptography import x509
from pydantic import BaseModel, ValidationError

log = logging.getLogger(__name__)


class KeyInfo(BaseModel):
    """
    Documentary annotation stored after the PEM block of `.p` and `.s` files.
    Carries the CN and size so a locked secret key can be described without
    being decrypted.
    """
    cn: Optional[str] = None
    bits: Optional[int] = None
    info: Optional[str] = None

    def to_line(self) -> str:
        return json.dumps(self.model_dump(exclude_none=True), ensure_ascii=False, sort_keys=True)

    @classmethod
    def from_line(cls, line: Optional[str]) -> Optional["KeyInfo"]:
        """ Parse an annotation; free text that is not ours becomes `info` """
        if not line:
            return None
        try:
            return cls.model_validate_json(line)
        except ValidationError:
            log.debug("Annotation is not structured, keeping as free text: %r", line)
            return cls(info=line)


@dataclass(frozen=True)
class PublicKeyHandle:
    """ A resolved, structurally valid certificate file """
    name: str
    path: Path
    certificate: x509.Certificate
    annotation: Optional[KeyInfo] = None


@dataclass(frozen=True)
class SecretKeyHandle:
    """
    A resolved secret key file. Only the PEM markers have been checked;
    the key itself is parsed later, once a passphrase is known.
    """
    name: str
    path: Path
    pem: bytes
    locked: bool
    annotation: Optional[KeyInfo] = None
    info_line: Optional[str] = None
