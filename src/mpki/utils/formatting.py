# mpki/utils/formatting.py

from __future__ import annotations

import sys
from mpki.constants import COLOUR, COLOUR_BRIGHT, COLOUR_RESET
from mpki.constants import COLOUR_ERROR, COLOUR_OK
from mpki.constants import STATUS_COLUMN

# stdout carries envelopes and key material, so operator output goes to stderr
_verbose = False


def set_verbose(enabled: bool) -> None:
    """ Enable or disable operator progress output """
    global _verbose
    _verbose = bool(enabled)


def title(text: str, level: int=1) -> None:
    """
    Prints a title in a consistant format

    Args:
        text (str): The text to be displayed
        level (int):  The level of heading (optional)
    """
    if not _verbose:
        return

    reset = COLOUR_RESET

    if level == 1:
        print(f'---===oooO {COLOUR["bold_yellow"]}{text}{reset} Oooo===---\n', file=sys.stderr)

    elif level == 3:
        print(f'{COLOUR["bold_white"]}{text}{reset}\n', file=sys.stderr)

    elif level == 7:
        print(f'{text}', file=sys.stderr)

    elif level == 9:
        print(f'{text}...', end='', file=sys.stderr)

    else:
        print(f'{COLOUR["cyan"]}{text}{reset}\n', file=sys.stderr)


def print_result(success, *, ok_msg='  OK  ', failed_msg='FAILED') -> bool:
    """
    Prints a ANSI success or failure message in a RedHat theme

    Args:
        success (bool): Success test condition
        ok_msg (str): OK message text
        failed_msg (str): Failed message text
    """
    if not _verbose:
        return success

    column = f'\033[{STATUS_COLUMN}G'

    if success:
        msg = ok_msg
        msg_colour = COLOUR_OK
    else:
        msg = failed_msg
        msg_colour = COLOUR_ERROR

    print(f'{column}[ {msg_colour}{msg}{COLOUR_RESET} ]', file=sys.stderr)

    return success


def highlight(text: str) -> str:
    """ Wrap a value for use inside a title """
    return f'[ {COLOUR_BRIGHT}{text}{COLOUR_RESET} ]'


def error(text: str) -> None:
    """
    Prints an error message with custom formatting. Always shown.
    """
    print(f'{COLOUR_ERROR}Error:{COLOUR_RESET} {text}', file=sys.stderr)