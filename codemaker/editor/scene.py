# codemaker/editor/scene.py
"""
Exportable scene: a small closed set of primitives.

Anything the exporter doesn't know how to draw is wrapped in
`UnsupportedPrimitive` so it can be skipped without aborting the export.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class RectPrimitive:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[str] = None  # hex colour, None = no fill
    stroke: Optional[str] = None  # hex colour, None = no stroke
    stroke_width: Optional[float] = None  # None with a stroke colour = 1


@dataclass
class ImagePrimitive:
    data_uri: str
    x: float
    y: float
    width: float
    height: float


@dataclass
class UnsupportedPrimitive:
    kind: str
    detail: str = ""


@dataclass
class GroupPrimitive:
    children: List["Primitive"] = field(default_factory=list)
    name: str = ""

    def add(self, child: "Primitive") -> "GroupPrimitive":
        self.children.append(child)
        return self


Primitive = Union[RectPrimitive, ImagePrimitive, GroupPrimitive, UnsupportedPrimitive]
