# mpki/commands/envelope/register.py

from __future__ import annotations

import argparse

from .actions import (
    handle_decrypt,
    handle_encrypt,
    handle_info,
    handle_sign,
    handle_verify,
)


def _add_sign_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `sign`
    """
    parser = subparsers.add_parser('sign',
        help='Sign stdin; writes a signed envelope or a detached signature to stdout'
    )
    parser.add_argument('-y', '--hsm',
        action='store_true',
        help='The secret key is an HSM key label instead of a file'
    )
    parser.add_argument('-d', '--detached',
        action='store_true',
        help='Write only the signature, not the payload'
    )
    parser.add_argument('sender',
        help='Public key (certificate) of the signer'
    )
    parser.add_argument('secret',
        nargs='?',
        help='Secret key or HSM label (defaults to the sender name)'
    )
    parser.set_defaults(handler=handle_sign)

    return parser

def _add_verify_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `verify`
    """
    parser = subparsers.add_parser('verify',
        help='Verify a signed envelope (or detached signature) from stdin and write the payload'
    )
    parser.add_argument('-d', '--detached',
        metavar='FILE',
        help='Detached signature file; stdin is then the signed payload'
    )
    parser.add_argument('sender',
        help='Public key expected to have signed'
    )
    parser.add_argument('signer',
        nargs='?',
        help='Public key that must have issued the sender (default: sender is self-signed)'
    )
    parser.set_defaults(handler=handle_verify)

    return parser

def _add_encrypt_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `encrypt`
    """
    parser = subparsers.add_parser('encrypt',
        help='Encrypt stdin for a recipient'
    )
    parser.add_argument('recipient',
        help='Public key of the recipient'
    )
    parser.set_defaults(handler=handle_encrypt)

    return parser

def _add_decrypt_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `decrypt`
    """
    parser = subparsers.add_parser('decrypt',
        help='Decrypt an envelope from stdin'
    )
    parser.add_argument('-y', '--hsm',
        action='store_true',
        help='The recipient is an HSM key label instead of a file'
    )
    parser.add_argument('recipient',
        help='Secret key (or HSM label) of the recipient'
    )
    parser.set_defaults(handler=handle_decrypt)

    return parser

def _add_info_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `info`
    """
    parser = subparsers.add_parser('info',
        help='Show who signed, or who can open, the envelope on stdin (no trust check)'
    )
    parser.add_argument('-r', '--raw',
        action='store_true',
        help='Print the envelope header as JSON'
    )
    parser.set_defaults(handler=handle_info)

    return parser

def register(subparsers: argparse._SubParsersAction) -> None:
    """
    Register the envelope commands.
    """
    _add_sign_command(subparsers)
    _add_verify_command(subparsers)
    _add_encrypt_command(subparsers)
    _add_decrypt_command(subparsers)
    _add_info_command(subparsers)
