# codemaker/editor/patterns.py
"""Marker pattern generation (QR module matrices)."""
from __future__ import annotations

from typing import List, Protocol

import qrcode
from qrcode.constants import ERROR_CORRECT_L

Matrix = List[List[bool]]


class MarkerGenerator(Protocol):
    def matrix(self, text: str) -> Matrix:
        """
        Square module matrix for `text`, without quiet zone.

        Every text passed for one page must produce the same module count,
        otherwise the two markers would differ in size.
        """
        ...


class QrMarkerGenerator:
    """
    Fixed-version QR codes, so the identifier (page key) and dimension
    ("12x16") markers always have the same module count.
    """

    def __init__(self, version: int = 1, error_correction: int = ERROR_CORRECT_L):
        self.version = version
        self.error_correction = error_correction

    def matrix(self, text: str) -> Matrix:
        qr = qrcode.QRCode(
            version=self.version,
            error_correction=self.error_correction,
            border=0,
        )
        qr.add_data(text or "")
        qr.make(fit=False)
        return qr.get_matrix()
