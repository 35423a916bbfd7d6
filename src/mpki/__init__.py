# mpki/__init__.py

"""
MPKI - Minimal Public Key Infrastructure
========================================

This module provides a self-contained certificate authority: RSA key pairs,
X.509 certificates, trust checks and envelope based sign/verify/encrypt/decrypt,
with optional delegation of secret keys to a PKCS#11 hardware security module.
"""

# ---- Package metadata ----
__version__ = "1.0.0"
__title__ = "Minimal Public Key Infrastructure"
__short_title__ = "MPKI"
__license__ = "MIT"


# ---- Public exports ----
__all__ = [
    "__version__",
    "__title__",
    "__short_title__",
    "__license__",
]
