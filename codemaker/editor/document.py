# codemaker/editor/document.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from codemaker.core.geometry import Paper
from codemaker.models import PageType


@dataclass
class DocumentState:
    """The page being edited, as the editor currently believes it to be."""

    paper: Paper
    page_key: Optional[str] = None
    page_type: PageType = PageType.UNSET
    locked: bool = False
    # data URI of the background image, if the document was created from one
    background_image: Optional[str] = None
    destination: Optional[str] = None
