# mpki/commands/key/register.py

from __future__ import annotations

import argparse

from .actions import (
    handle_check,
    handle_dump,
    handle_generate,
    handle_lock,
    handle_unlock,
)
from mpki.constants import DEFAULT_KEY_SIZE


def _add_generate_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `generate`
    """
    parser = subparsers.add_parser('generate',
        help='Create keyname.p and keyname.s, self-signed or signed by a signer'
    )
    parser.add_argument('-b', '--bits',
        type=int,
        default=DEFAULT_KEY_SIZE,
        help='RSA key size in bits'
    )
    parser.add_argument('-i', '--info',
        help='Free text recorded in the Info line of both files'
    )
    parser.add_argument('-s', '--clone',
        metavar='SECRET',
        help='Reuse this existing secret key instead of generating one'
    )
    parser.add_argument('-d', '--days',
        type=int,
        help='Validity in days from now (default: 2000-01-01 to 2099-12-31)'
    )
    parser.add_argument('-l', '--lock',
        action='store_true',
        help='Protect the new secret key with a passphrase'
    )
    parser.add_argument('-c', '--cn',
        help='Common Name (default: "<keyname> <serial>")'
    )
    parser.add_argument('-y', '--hsm',
        metavar='LABEL',
        help="The signer's secret key is this HSM key label"
    )
    parser.add_argument('keyname',
        help='Base name of the files to create'
    )
    parser.add_argument('signer',
        nargs='?',
        help='Self-signed key pair to issue the certificate with'
    )
    parser.set_defaults(handler=handle_generate)

    return parser

def _add_check_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `check`
    """
    parser = subparsers.add_parser('check',
        help='Exit 0 when key is self-signed (key == signer) or signed by signer'
    )
    parser.add_argument('key',
        help='Public key to check'
    )
    parser.add_argument('signer',
        help='Public key to check against'
    )
    parser.set_defaults(handler=handle_check)

    return parser

def _add_lock_command(subparsers: argparse._SubParsersAction, name: str, handler, help_text: str) -> argparse.ArgumentParser:
    """
    Register `lock` / `unlock`
    """
    parser = subparsers.add_parser(name, help=help_text)
    parser.add_argument('--stdout',
        action='store_true',
        help='Write the result to stdout and leave the file unchanged'
    )
    parser.add_argument('key',
        help='Secret key'
    )
    parser.set_defaults(handler=handler)

    return parser

def _add_dump_command(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """
    Register `dump`
    """
    parser = subparsers.add_parser('dump',
        help='Show a field of a public or secret key without asking for a passphrase'
    )
    mode = parser.add_mutually_exclusive_group(
        required=False
    )
    mode.add_argument('-b', '--bits',
        dest='mode',
        action='store_const',
        const='bits',
        help='Key size in bits'
    )
    mode.add_argument('-c', '--cn',
        dest='mode',
        action='store_const',
        const='cn',
        help='Common Name (default)'
    )
    mode.add_argument('-m', '--modulus',
        dest='mode',
        action='store_const',
        const='modulus',
        help='RSA modulus in hexadecimal'
    )
    parser.add_argument('key',
        help='Public or secret key'
    )
    parser.set_defaults(handler=handle_dump, mode='cn')

    return parser

def register(subparsers: argparse._SubParsersAction) -> None:
    """
    Register the key management commands.
    """
    _add_generate_command(subparsers)
    _add_check_command(subparsers)
    _add_lock_command(subparsers, 'lock', handle_lock,
        'Protect a secret key with a passphrase')
    _add_lock_command(subparsers, 'unlock', handle_unlock,
        'Remove the passphrase from a secret key')
    _add_dump_command(subparsers)
