# mpki/commands/key/actions.py

from __future__ import annotations

import logging

from mpki.commands.helpers import prune_opts, write_stdout
from mpki.constants import EXIT_OK, SECRET_FILE_MODE
from mpki.models.app import App
from mpki.models.options import DumpOptions, GenerateOptions
from mpki.services.errors import TrustError, UsageError
from mpki.services.introspect import dump
from mpki.services.issuer import CertificateIssuer
from mpki.services.keys import resolve_public, resolve_secret
from mpki.services.lock import lock, unlock
from mpki.services.trust import issuer_of, subject_of, verify_trust
from mpki.utils.files import write_bytes
from mpki.utils.formatting import highlight, print_result, title

log = logging.getLogger(__name__)


def handle_generate(app: App) -> int:
    opts: GenerateOptions = prune_opts(GenerateOptions, app.args)

    if opts.hsm and not opts.signer:
        raise UsageError("generate -y needs a signer certificate.")

    title(f'Generating key pair {highlight(opts.keyname)}', 3)

    issuer = CertificateIssuer(app.provider, app.workspace, app.secrets)

    if opts.hsm:
        with app.secret_key(opts.hsm, hsm=True) as signer_key:
            issued = issuer.generate(opts, signer_key)
    else:
        issued = issuer.generate(opts)

    title(f'Certificate {highlight(issued.cn)} serial {issued.serial}', 9)
    print_result(True)
    title(f'Issuer {highlight(issuer_of(issued.certificate))}', 7)
    for path in (issued.public_path, issued.secret_path):
        title(f'Wrote {highlight(path)}', 7)

    return EXIT_OK

def handle_check(app: App) -> int:
    key = resolve_public(app.args.key)
    signer = resolve_public(app.args.signer)

    title(f'Checking {highlight(subject_of(key.certificate))} against '
          f'{highlight(subject_of(signer.certificate))}', 9)
    try:
        verify_trust(key.certificate, signer.certificate, app.provider)
    except TrustError:
        print_result(False)
        raise

    print_result(True)
    return EXIT_OK

def _rewrite_secret(app: App, transform) -> int:
    handle = resolve_secret(app.args.key)
    data = transform(handle, app.provider, app.secrets)

    if app.args.stdout:
        write_stdout(data)
        return EXIT_OK

    title(f'Rewriting {highlight(handle.path)}', 9)
    write_bytes(handle.path, data, overwrite=True, mode=SECRET_FILE_MODE)
    print_result(True)

    return EXIT_OK

def handle_lock(app: App) -> int:
    return _rewrite_secret(app, lock)

def handle_unlock(app: App) -> int:
    return _rewrite_secret(app, unlock)

def handle_dump(app: App) -> int:
    opts: DumpOptions = prune_opts(DumpOptions, app.args)

    write_stdout(f"{dump(opts.key, opts.mode, app.provider)}\n".encode("utf-8"))
    return EXIT_OK
