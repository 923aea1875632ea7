"""Utilities for generating IAM user credentials."""

from __future__ import annotations

import base64
import secrets
import string
from typing import Callable

from ..exceptions import CredentialGenerationError, KeyTooShortError

ACCESS_KEY_ALPHABET = (string.digits + string.ascii_uppercase).encode("ascii")

DEFAULT_ACCESS_KEY_LENGTH = 20
MIN_ACCESS_KEY_LENGTH = 3
DEFAULT_SECRET_KEY_LENGTH = 40
MIN_SECRET_KEY_LENGTH = 8

RandomSource = Callable[[int], bytes]


def _read_random(random: RandomSource, n: int) -> bytes:
    data = random(n)
    if len(data) < n:
        raise CredentialGenerationError(f"Random source returned {len(data)} of {n} bytes")
    return data[:n]


def generate_access_key(length: int = 0, random: RandomSource | None = None) -> bytes:
    """Generate an access key made of digits and uppercase letters.

    Args:
        length: Key length, 0 or less selects the default of 20
        random: Callable returning n random bytes (default: secrets.token_bytes)

    Returns:
        The access key as ASCII bytes

    Raises:
        KeyTooShortError: If length is below 3
    """
    if length <= 0:
        length = DEFAULT_ACCESS_KEY_LENGTH
    if length < MIN_ACCESS_KEY_LENGTH:
        raise KeyTooShortError(f"Access key length {length} is below {MIN_ACCESS_KEY_LENGTH}")

    raw = _read_random(random or secrets.token_bytes, length)
    return bytes(ACCESS_KEY_ALPHABET[b % len(ACCESS_KEY_ALPHABET)] for b in raw)


def generate_secret_key(length: int = 0, random: RandomSource | None = None) -> bytes:
    """Generate a secret key drawn from ``[A-Za-z0-9+]``.

    Args:
        length: Key length, 0 or less selects the default of 40
        random: Callable returning n random bytes (default: secrets.token_bytes)

    Returns:
        The secret key as ASCII bytes, exactly ``length`` long

    Raises:
        KeyTooShortError: If length is below 8
    """
    if length <= 0:
        length = DEFAULT_SECRET_KEY_LENGTH
    if length < MIN_SECRET_KEY_LENGTH:
        raise KeyTooShortError(f"Secret key length {length} is below {MIN_SECRET_KEY_LENGTH}")

    # Every 3 bytes give 4 characters of unpadded base64
    raw = _read_random(random or secrets.token_bytes, (length * 3 + 3) // 4)
    encoded = base64.b64encode(raw).rstrip(b"=")[:length]
    return encoded.replace(b"/", b"+")
