# codemaker/models/__init__.py
"""
Domain models for pages and their annotations.

Each dataclass converts between storage rows (`from_storage`) and the
camelCase dict shape sent over the RPC endpoint (`to_api`).
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional

from codemaker.core import page_key
from codemaker.core.errors import ValidationError


def millitime() -> int:
    """Current time in milliseconds."""
    return int(time.time() * 1000)


class PageType(IntEnum):
    UNSET = 0
    CHECKBOX = 1  # TicQR order forms
    AUDIO = 2  # PaperChains audio pages

    @classmethod
    def parse(cls, value: Any) -> "PageType":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValidationError("invalid page type")


@dataclass
class Page:
    id: int
    width: int
    height: int
    left_code_x: int
    left_code_y: int
    right_code_x: int
    right_code_y: int
    type: PageType = PageType.UNSET
    locked: bool = False
    date_created: int = 0
    date_modified: int = 0

    @property
    def key(self) -> str:
        return page_key.encode(self.id)

    @classmethod
    def from_storage(cls, row: Mapping[str, Any]) -> "Page":
        return cls(
            id=int(row["id"]),
            width=int(row["width"]),
            height=int(row["height"]),
            left_code_x=int(row["leftCodeX"]),
            left_code_y=int(row["leftCodeY"]),
            right_code_x=int(row["rightCodeX"]),
            right_code_y=int(row["rightCodeY"]),
            type=PageType(int(row["type"] or 0)),
            locked=bool(row["locked"]),
            date_created=int(row["dateCreated"] or 0),
            date_modified=int(row["dateModified"] or 0),
        )

    def geometry(self) -> Dict[str, int]:
        return {
            "width": self.width,
            "height": self.height,
            "leftCodeX": self.left_code_x,
            "leftCodeY": self.left_code_y,
            "rightCodeX": self.right_code_x,
            "rightCodeY": self.right_code_y,
        }

    def to_api(self) -> Dict[str, Any]:
        return {
            "pageKey": self.key,
            **self.geometry(),
            "type": int(self.type),
            "locked": self.locked,
            "dateCreated": self.date_created,
            "dateModified": self.date_modified,
        }


@dataclass
class TickBox:
    id: int
    page_id: int
    x: int
    y: int
    description: str = ""
    quantity: int = 1
    deleted: bool = False
    date_created: int = 0
    date_modified: int = 0

    @classmethod
    def from_storage(cls, row: Mapping[str, Any]) -> "TickBox":
        return cls(
            id=int(row["id"]),
            page_id=int(row["pageId"]),
            x=int(row["x"]),
            y=int(row["y"]),
            description=row["description"] or "",
            quantity=int(row["quantity"] if row["quantity"] is not None else 1),
            deleted=bool(row["deleted"]),
            date_created=int(row["dateCreated"] or 0),
            date_modified=int(row["dateModified"] or 0),
        )

    def to_api(self) -> Dict[str, Any]:
        # pageId is the numeric row id, clients only ever see page keys
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "description": self.description,
            "quantity": self.quantity,
            "deleted": self.deleted,
            "dateCreated": self.date_created,
            "dateModified": self.date_modified,
        }


@dataclass
class AudioArea:
    id: int
    page_id: int
    left: int
    top: int
    right: int
    bottom: int
    sound_cloud_id: Optional[str] = None
    deleted: bool = False
    date_created: int = 0
    date_modified: int = 0

    @classmethod
    def from_storage(cls, row: Mapping[str, Any]) -> "AudioArea":
        return cls(
            id=int(row["id"]),
            page_id=int(row["pageId"]),
            left=int(row["left"]),
            top=int(row["top"]),
            right=int(row["right"]),
            bottom=int(row["bottom"]),
            sound_cloud_id=row["soundCloudId"],
            deleted=bool(row["deleted"]),
            date_created=int(row["dateCreated"] or 0),
            date_modified=int(row["dateModified"] or 0),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
            "soundCloudId": self.sound_cloud_id,
            "deleted": self.deleted,
            "dateCreated": self.date_created,
            "dateModified": self.date_modified,
        }


@dataclass
class PageDetails:
    """A page plus whatever content its type carries."""

    page: Page
    tick_boxes: List[TickBox] = field(default_factory=list)
    destination: Optional[str] = None
    audio_areas: List[AudioArea] = field(default_factory=list)
