# mpki/commands/envelope/actions.py

from __future__ import annotations

import logging

from mpki.commands.helpers import read_stdin, write_stdout
from mpki.constants import EXIT_OK
from mpki.models.app import App
from mpki.services import envelope
from mpki.services.errors import UsageError
from mpki.services.introspect import info
from mpki.services.keys import check_key_pair, resolve_public
from mpki.utils.files import read_bytes

log = logging.getLogger(__name__)


def handle_sign(app: App) -> int:
    args = app.args

    if args.hsm and not args.secret:
        raise UsageError("sign -y needs the HSM key label after the sender.")

    sender = resolve_public(args.sender)

    with app.secret_key(args.secret or args.sender, hsm=args.hsm) as key:
        check_key_pair(sender, key)
        payload = read_stdin()

        if args.detached:
            output = envelope.sign_detached(payload, key, app.provider)
        else:
            output = envelope.sign(payload, sender, key, app.provider)

    write_stdout(output)
    return EXIT_OK

def handle_verify(app: App) -> int:
    args = app.args

    sender = resolve_public(args.sender)

    if args.detached:
        if args.signer:
            raise UsageError("A signer cannot be checked against a detached signature.")

        signature = read_bytes(args.detached)
        payload = envelope.verify_detached(read_stdin(), signature, sender, app.provider)
    else:
        signer = resolve_public(args.signer) if args.signer else None
        payload = envelope.verify(read_stdin(), sender, signer, app.provider)

    write_stdout(payload)
    return EXIT_OK

def handle_encrypt(app: App) -> int:
    recipient = resolve_public(app.args.recipient)

    write_stdout(envelope.encrypt(read_stdin(), recipient, app.provider))
    return EXIT_OK

def handle_decrypt(app: App) -> int:
    args = app.args

    with app.secret_key(args.recipient, hsm=args.hsm) as key:
        payload = envelope.decrypt(read_stdin(), key, app.provider)

    write_stdout(payload)
    return EXIT_OK

def handle_info(app: App) -> int:
    text = info(read_stdin(), app.provider, raw=app.args.raw)

    write_stdout(f"{text}\n".encode("utf-8"))
    return EXIT_OK
