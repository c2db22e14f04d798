# Overview: Reversible obfuscation of the password field in the shared sync document.

"""
Credential transform

This is obfuscation, not encryption: a fixed salt and base64. It keeps
password values from being readable at a glance when the shared JSON
document is opened, and stays format-compatible with documents written by
other workstations:

    obfuscate("secret") == "ENC:" + base64("<salt>:secret")

reveal() is the identity on anything without the "ENC:" tag, so legacy
plaintext values pass through untouched.
"""

from __future__ import annotations

import base64
import binascii
import logging

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

TAG = "ENC:"
DEFAULT_SALT = "TEVOLTA_INTERNAL_2025"


def _salt(salt: str | None) -> str:
    if salt is not None:
        return salt
    if has_app_context():
        return current_app.config.get("CREDENTIAL_SALT", DEFAULT_SALT)
    return DEFAULT_SALT


def obfuscate(plaintext: str | None, *, salt: str | None = None) -> str:
    if not plaintext:
        return ""
    encoded = base64.b64encode(f"{_salt(salt)}:{plaintext}".encode("utf-8")).decode("ascii")
    return TAG + encoded


def reveal(token: str | None) -> str:
    if not token:
        return ""
    if not token.startswith(TAG):
        return token

    try:
        decoded = base64.b64decode(token[len(TAG):], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        logger.warning("Could not decode obfuscated credential; keeping stored value")
        return token

    # Salt is everything before the first colon; the value may contain colons
    parts = decoded.split(":")
    return ":".join(parts[1:]) if len(parts) > 1 else decoded


def is_obfuscated(value: str | None) -> bool:
    return bool(value) and value.startswith(TAG)
