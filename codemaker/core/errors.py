# codemaker/core/errors.py
"""
Error taxonomy shared by the page service and the editor.

Server-side errors carry a short human readable `reason` which the RPC
router copies into `{"status": "fail", "reason": ...}` (only when debug is on;
otherwise the generic message is used). ConnectivityError is client-side only.
"""
from __future__ import annotations


class CodeMakerError(Exception):
    """Base class. `reason` is the wire-level failure text."""

    reason = "query error"

    def __init__(self, reason: str | None = None):
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class ValidationError(CodeMakerError):
    """Malformed or missing request parameter, bad key, bad geometry."""

    reason = "invalid request"


class NotFoundError(CodeMakerError):
    reason = "page not found"


class TypeMismatchError(CodeMakerError):
    reason = "incorrect page type"


class LockedError(CodeMakerError):
    reason = "the page is locked"


class ConnectivityError(CodeMakerError):
    """No success acknowledgement arrived within the connection timeout."""

    reason = "connection timed out"

    def __init__(self, connection_id: int, reason: str | None = None):
        self.connection_id = connection_id
        super().__init__(reason)


class ImageRejectedError(ValidationError):
    reason = "image rejected"


class PaperSizeError(ValidationError):
    reason = "paper size below minimum"
