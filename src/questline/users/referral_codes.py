"""Referral code generation.

Codes are 8-character alphanumeric (A-Z, 0-9), generated server-side
with a cryptographic random source. Users cannot choose their own codes.
"""

from __future__ import annotations

import secrets
import string

REFERRAL_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
REFERRAL_LENGTH = 8
MAX_GENERATION_ATTEMPTS = 10


def generate_referral_code() -> str:
    """Generate a cryptographically random 8-character referral code."""
    return "".join(secrets.choice(REFERRAL_CHARSET) for _ in range(REFERRAL_LENGTH))
