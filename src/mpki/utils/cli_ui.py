# mpki/utils/cli_ui.py

import getpass
import sys


def get_password(prompt: str) -> str:
    return getpass.getpass(f'{prompt}: ')


def get_confirmed_password(prompt: str, attempts: int = 3) -> str:
    for _ in range(attempts):
        password = getpass.getpass(f'{prompt}: ')
        confirm_password = getpass.getpass('Confirm passphrase: ')
        if password == confirm_password:
            return password
        print('Passphrases do not match. Please try again.', file=sys.stderr)

    raise EOFError('Passphrase confirmation failed.')
