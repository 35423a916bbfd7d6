# mpki/commands/helpers.py

from __future__ import annotations

import argparse
import sys
from typing import Type
from pydantic import BaseModel, ValidationError

from mpki.services.errors import UsageError


def prune_opts(model: Type[BaseModel], ns: argparse.Namespace) -> BaseModel:
    """
    Prune an argparse namespace down to fields the Pydantic model knows about,
    then validate. Unknown args (log_level, handler, etc.) are ignored.
    """
    data = vars(ns)
    allowed = model.model_fields.keys()
    pruned = {k: data[k] for k in allowed if k in data and data[k] is not None}

    try:
        return model.model_validate(pruned)
    except ValidationError as exc:
        raise UsageError(str(exc)) from exc


def read_stdin() -> bytes:
    return sys.stdin.buffer.read()


def write_stdout(data: bytes) -> None:
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()
