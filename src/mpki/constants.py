# mpki/constants.py

from __future__ import annotations

from datetime import datetime, timezone

"""
Exit codes for mpki commands.

0 = success
2 = any failure (usage, key, trust, crypto or environment problems)
"""
EXIT_OK: int = 0
EXIT_FATAL: int = 2

# ---- ANSI Colour Codes ----
COLOUR = {
    'red': '\033[31m',
    'green': '\033[32m',
    'yellow': '\033[33m',
    'cyan': '\033[36m',
    'bold_red': '\033[1;31m',
    'bold_yellow': '\033[1;33m',
    'bold_white': '\033[1;37m',
    'underline_white': '\033[4;37m',
    'reset': '\033[0m'
}

# Convenience shortcuts
COLOUR_ERROR = COLOUR['bold_red']
COLOUR_OK = COLOUR['green']
COLOUR_BRIGHT = COLOUR['bold_white']
COLOUR_RESET = COLOUR['reset']

# ---- Key files ----
PUBLIC_SUFFIX = '.p'
SECRET_SUFFIX = '.s'
INFO_PREFIX = 'Info: '

PUBLIC_FILE_MODE = 0o644
SECRET_FILE_MODE = 0o600

# ---- Cryptographic defaults ----
DEFAULT_KEY_SIZE = 4096
MIN_KEY_SIZE = 512
# pyca/cryptography only generates keys from this size up
LIBRARY_MIN_KEY_SIZE = 1024
PUBLIC_EXPONENT = 65537

# Wide enough to outlast devices with a broken real-time clock
DEFAULT_NOT_BEFORE = datetime(2000, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
DEFAULT_NOT_AFTER = datetime(2099, 12, 31, 23, 59, 59, tzinfo=timezone.utc)

# ---- Envelopes ----
ENVELOPE_LABEL = 'MPKI ENVELOPE'
ENVELOPE_VERSION = 1
CONTENT_SIGNED = 'signed'
CONTENT_ENCRYPTED = 'encrypted'
DIGEST_NAME = 'sha256'
KEY_WRAP_NAME = 'rsa-oaep-sha256'
# Moduli too small for OAEP-SHA256 around a content key
KEY_WRAP_PKCS1 = 'rsa-pkcs1v15'
CIPHER_NAME = 'aes-256-gcm'
CONTENT_KEY_BYTES = 32
NONCE_BYTES = 12

# ---- Hardware security module ----
DEFAULT_HSM_CONNECTOR = 'http://127.0.0.1:12345'
HSM_CONF_FILENAME = 'yubihsm_pkcs11.conf'
HSM_CONF_ENV = 'YUBIHSM_PKCS11_CONF'

ENV_HSM_MODULE = 'MPKI_HSM_MODULE'
ENV_HSM_ENGINE = 'MPKI_HSM_ENGINE'
ENV_HSM_CONNECTOR = 'MPKI_HSM_CONNECTOR'
ENV_HSM_TOKEN = 'MPKI_HSM_TOKEN'
ENV_PASSPHRASE = 'MPKI_PASSPHRASE'

# ---- Ephemeral workspace ----
WORKSPACE_PREFIX = 'mpki-'
WORKSPACE_DB_FILENAME = 'index.db'
WORKSPACE_SERIAL_FILENAME = 'serial'

# ---- View defaults ----
STATUS_COLUMN = 70
