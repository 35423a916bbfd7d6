# mpki/models/options.py

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from mpki.constants import DEFAULT_KEY_SIZE


class GenerateOptions(BaseModel):
    """ Inputs for issuing a new key pair """
    keyname: str = Field(min_length=1)
    signer: Optional[str] = None
    bits: int = DEFAULT_KEY_SIZE
    info: Optional[str] = None
    days: Optional[int] = Field(default=None, gt=0)
    clone: Optional[str] = None
    lock: bool = False
    cn: Optional[str] = None
    hsm: Optional[str] = None


class DumpOptions(BaseModel):
    key: str = Field(min_length=1)
    mode: Literal["bits", "cn", "modulus"] = "cn"
