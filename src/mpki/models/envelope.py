# mpki/models/envelope.py

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from mpki.constants import (
    CIPHER_NAME,
    CONTENT_ENCRYPTED,
    CONTENT_SIGNED,
    DIGEST_NAME,
    ENVELOPE_VERSION,
    KEY_WRAP_NAME,
)

# bytes fields are raw in Python and base64 in JSON
_BYTES_AS_BASE64 = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")


class SignedEnvelope(BaseModel):
    """ Payload, signature and the signer's certificate in one container """
    model_config = _BYTES_AS_BASE64

    content_type: Literal["signed"] = CONTENT_SIGNED
    version: int = ENVELOPE_VERSION
    digest: str = DIGEST_NAME
    certificate: str
    payload: bytes
    signature: bytes


class RecipientInfo(BaseModel):
    """ Names the recipient certificate and carries the wrapped content key """
    model_config = _BYTES_AS_BASE64

    subject_cn: str
    issuer_cn: str
    serial: int
    key_wrap: str = KEY_WRAP_NAME
    encrypted_key: bytes


class EncryptedEnvelope(BaseModel):
    model_config = _BYTES_AS_BASE64

    content_type: Literal["encrypted"] = CONTENT_ENCRYPTED
    version: int = ENVELOPE_VERSION
    recipient: RecipientInfo
    cipher: str = CIPHER_NAME
    nonce: bytes
    ciphertext: bytes

    def associated_data(self) -> bytes:
        """ Bytes authenticated alongside the ciphertext """
        return f"{self.content_type}:{self.version}:{self.cipher}:{self.recipient.key_wrap}:{self.recipient.serial}".encode("utf-8")


Envelope = Annotated[Union[SignedEnvelope, EncryptedEnvelope], Field(discriminator="content_type")]

envelope_adapter: TypeAdapter = TypeAdapter(Envelope)
