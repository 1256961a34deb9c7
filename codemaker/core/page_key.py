# codemaker/core/page_key.py
"""
Bijective mapping between integer page ids and short alphabetic page keys.

Keys are base-52 numerals over `a-zA-Z`, most significant digit first,
with no leading-zero padding ("a" is 0, "ba" is 52).
"""
from __future__ import annotations

import string

from codemaker.core.errors import ValidationError

ALPHABET = string.ascii_lowercase + string.ascii_uppercase
BASE = len(ALPHABET)

_INDEX = {ch: i for i, ch in enumerate(ALPHABET)}

# largest SQLite INTEGER
MAX_PAGE_ID = 2**63 - 1


def encode(page_id: int) -> str:
    """
    Encode a non-negative page id as a page key.

    Raises:
        ValueError: for negative ids (these never come from storage)
    """
    n = int(page_id)
    if n < 0:
        raise ValueError(f"page id must be >= 0, got {page_id}")

    out = ""
    while n >= BASE:
        out = ALPHABET[n % BASE] + out
        n //= BASE
    return ALPHABET[n] + out


def decode(key: str) -> int:
    """
    Decode a page key back to its integer id.

    Raises:
        ValidationError: empty key, a character outside the alphabet, or an
            id too large to store
    """
    if not key:
        raise ValidationError("invalid page key")

    n = 0
    for ch in key:
        digit = _INDEX.get(ch)
        if digit is None:
            raise ValidationError("invalid page key")
        n = n * BASE + digit
    if n > MAX_PAGE_ID:
        raise ValidationError("invalid page key")
    return n


def is_valid_key(key: str | None) -> bool:
    try:
        decode(key)
    except ValidationError:
        return False
    return True
