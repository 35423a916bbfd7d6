# mpki/commands/__init__.py

from __future__ import annotations

import argparse

from . import envelope, key

def register_all(subparsers: argparse._SubParsersAction) -> None:
    """
    Register all subcommands here
    """
    envelope.register(subparsers)
    key.register(subparsers)
