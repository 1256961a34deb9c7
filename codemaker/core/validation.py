"""
Validation utilities for CodeMaker query parameters.

Query strings arrive untyped; these helpers decide whether a raw value is an
acceptable integer and whether a JSONP callback name is safe to echo back.
"""
import re
from typing import Any, Optional

from codemaker.core.errors import ValidationError

# JSONP identifiers, see
# http://tav.espians.com/sanitising-jsonp-callback-identifiers-for-security.html
_CALLBACK_IDENTIFIER = re.compile(
    r"""^[a-zA-Z_$][0-9a-zA-Z_$]*(?:\[(?:".+"|'.+'|\d+)\])*?$"""
)

RESERVED_WORDS = frozenset(
    [
        "break", "do", "instanceof", "typeof", "case", "else", "new", "var",
        "catch", "finally", "return", "void", "continue", "for", "switch",
        "while", "debugger", "function", "this", "with", "default", "if",
        "throw", "delete", "in", "try", "class", "enum", "extends", "super",
        "const", "export", "import", "implements", "let", "private",
        "public", "yield", "interface", "package", "protected", "static",
        "null", "true", "false",
    ]
)


def is_integer(value: Any) -> bool:
    """True for an int, or a string holding one (optionally negative)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if not isinstance(value, str):
        return False
    return re.fullmatch(r"-?(0|[1-9][0-9]*)", value.strip()) is not None


def is_positive_or_zero_integer(value: Any) -> bool:
    return is_integer(value) and int(value) >= 0


def require_int(value: Any, reason: str, allow_negative: bool = False) -> int:
    """
    Coerce a raw query value to int.

    Raises:
        ValidationError: with `reason` when the value is missing or malformed
    """
    ok = is_integer(value) if allow_negative else is_positive_or_zero_integer(value)
    if not ok:
        raise ValidationError(reason)
    return int(value)


def optional_int(value: Any, reason: str) -> Optional[int]:
    if value is None:
        return None
    return require_int(value, reason)


def parse_quantity(raw: Any, default: int = 1) -> int:
    """
    Parse a tick box quantity typed by the user.

    Anything that isn't a positive integer falls back to `default`.
    """
    try:
        qty = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return qty if qty > 0 else default


def is_valid_callback(callback: Optional[str]) -> bool:
    """Check a JSONP callback path such as `CodeMaker.handle` for safety."""
    if not callback:
        return False
    for identifier in callback.split("."):
        if not _CALLBACK_IDENTIFIER.match(identifier):
            return False
        if identifier in RESERVED_WORDS:
            return False
    return True
