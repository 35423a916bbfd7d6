#!/usr/bin/env python3
"""
#
# mpki - Minimal Public Key Infrastructure
#

A self-contained certificate authority: generate RSA key pairs and
certificates, check trust between them, and sign, verify, encrypt and
decrypt byte streams from stdin to stdout.

Requirements:
  - Python 3.9+
  - Cryptography (pyca/cryptography) - https://cryptography.io
  - Pydantic

Optional Requirements:
  - python-pkcs11 - secret keys held in a hardware security module

"""
from __future__ import annotations

import argparse
import logging
import signal
from typing import Optional, Callable

from mpki import __version__, __title__, __short_title__
from .constants import EXIT_FATAL
from .commands import register_all
from .models.app import App
from .services.errors import PKIError
from .services.workspace import ephemeral_workspace
from .utils.formatting import error, set_verbose, title

log = logging.getLogger(__name__)


def build_parser(prog_desc: str) -> argparse.ArgumentParser:
    """ Build the command line argument parser """

    parser = argparse.ArgumentParser(
        prog="mpki",
        description=prog_desc,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("-v", "--verbose",
        action="store_true",
        help="Show progress and diagnostic detail on stderr",
    )

    parser.add_argument("--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Set logging verbosity",
    )

    parser.add_argument("--version",
        action="version",
        version=f"{__title__} {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command", required=True)

    register_all(subparsers)

    return parser


def _terminate(signum, frame):
    # Turn SIGTERM into an exception so the workspace is released on the way out
    raise SystemExit(EXIT_FATAL)

# ---------------------
# Entry point
# ---------------------

def main(argv: Optional[list[str]] = None) -> int:

    description: str = f'{__title__} - {__short_title__} v{__version__}'

    parser: argparse.ArgumentParser = build_parser(description)
    args: argparse.Namespace = parser.parse_args(argv)
    handler: Optional[Callable[[App], int]] = getattr(args, "handler", None)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    set_verbose(args.verbose)

    title(description, 1)

    if handler is None:
        logging.error("Unknown command: %s", getattr(args, "command", None))
        return EXIT_FATAL

    previous_sigterm = signal.signal(signal.SIGTERM, _terminate)

    try:
        with ephemeral_workspace() as workspace:
            app: App = App.from_args(args=args, workspace=workspace)

            return handler(app)

    except PKIError as e:
        # Usage, key, trust, crypto and HSM problems; detail only with -v
        error(str(e))
        log.debug("%s", type(e).__name__, exc_info=True)
        return EXIT_FATAL
    except KeyboardInterrupt:
        error("Interrupted.")
        return EXIT_FATAL
    except SystemExit:
        raise
    except Exception as e:
        error(f"Unexpected error: {e}")
        log.debug("Unexpected error", exc_info=True)
        return EXIT_FATAL
    finally:
        signal.signal(signal.SIGTERM, previous_sigterm)


if __name__ == "__main__":
    raise SystemExit(main())
