# codemaker/core/geometry.py
"""
Page geometry in millimetres.

Origin is the top-left corner of the paper, y grows downwards. The left
(identifier) marker sits at the bottom-left of the printable grid and the
right (dimension) marker at the top-right; both are square cells of the
same side length.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from codemaker.core.errors import ValidationError

LEFT = "left"
RIGHT = "right"


def round_half_up(value: float) -> int:
    """Round .5 upwards (python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def round_half_away(value: float) -> int:
    """Round .5 away from zero, as the service stores audio coordinates."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x2 and self.y <= py <= self.y2

    def moved_to(self, x: float, y: float) -> "Rect":
        return Rect(x, y, self.width, self.height)


@dataclass(frozen=True)
class Paper:
    width: int
    height: int

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height

    def as_rect(self) -> Rect:
        return Rect(0, 0, self.width, self.height)


# ---- marker cell ------------------------------------------------------------

def module_size(module_count: int, margin: float) -> float:
    """Side of one pattern module so that N modules plus both margins span N mm."""
    if module_count <= 2 * margin:
        raise ValidationError("marker pattern too small for margin")
    return (module_count - 2 * margin) / module_count


def marker_cell_size(module_count: int, margin: float) -> int:
    """Integer side length (mm) of a rendered marker including its margins."""
    extent = module_count * module_size(module_count, margin)
    return round_half_up(extent + 2 * margin)


def tick_box_size(module_size_mm: float, identifier_boxes: int, stroke_width: float) -> float:
    """A tick box is as wide as a QR finder pattern, less its stroke."""
    return identifier_boxes * module_size_mm - stroke_width


# ---- grid -------------------------------------------------------------------

def grid_counts(paper: Paper, cell: int) -> Tuple[int, int]:
    return paper.width // cell, paper.height // cell


def dimension_code_text(num_x: int, num_y: int) -> str:
    return f"{num_x}x{num_y}"


def grid_counts_from_positions(
    left: Tuple[float, float],
    right: Tuple[float, float],
    cell: int,
) -> Tuple[int, int]:
    """
    Recover the grid span encoded in the dimension marker from persisted
    marker positions.

    Raises:
        ValidationError: positions that are not whole cells apart
    """
    num_x = (right[0] - left[0]) / cell + 1
    num_y = (left[1] - right[1]) / cell + 1
    if num_x != int(num_x) or num_y != int(num_y) or num_x < 1 or num_y < 1:
        raise ValidationError(
            f"marker positions are not aligned to the {cell}mm grid: "
            f"left={left} right={right}"
        )
    return int(num_x), int(num_y)


def default_marker_positions(paper: Paper, cell: int) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    num_x, num_y = grid_counts(paper, cell)
    left = (0, cell * (num_y - 1))
    right = (cell * (num_x - 1), 0)
    return left, right


def snap_to_cell(value: float, cell: int) -> int:
    return round_half_up(value / cell) * cell


# ---- areas ------------------------------------------------------------------

def safe_area(selected: str, other: Rect, paper: Paper, cell: int) -> Rect:
    """
    Region the selected marker's top-left may travel within while dragging.

    The two markers always stay at least one empty cell apart in both axes.
    """
    num_x, num_y = grid_counts(paper, cell)
    if selected == LEFT:
        return Rect(
            0,
            other.y + 2 * cell,
            other.x - cell,
            num_y * cell - other.y - 2 * cell,
        )
    if selected == RIGHT:
        return Rect(
            other.x + 2 * cell,
            0,
            num_x * cell - other.x - 2 * cell,
            other.y - cell,
        )
    raise ValueError(f"unknown marker: {selected}")


def clamp_to_safe_area(x: float, y: float, area: Rect, cell: int) -> Tuple[float, float]:
    x = min(max(x, area.x), area.x2 - cell)
    y = min(max(y, area.y), area.y2 - cell)
    return x, y


def content_area(left: Rect, right: Rect, cell: int) -> Rect:
    """Rectangle spanned by both markers; everything outside it is ignored by scanners."""
    return Rect(
        left.x,
        right.y,
        right.x - left.x + cell,
        left.y - right.y + cell,
    )


def clamp_box(value: float, size: float, extent: float, stroke_width: float) -> float:
    """Keep a tick box's top-left so its stroke stays on the paper."""
    lower = stroke_width / 2
    upper = extent - size - stroke_width / 2
    return min(max(value, lower), upper)


# ---- grid units <-> page mm --------------------------------------------------
# Audio areas are authored in local units: 100 units span one grid cell of
# `grid_scale` mm. x is anchored on the left marker, y on the right marker.

def local_to_page(value: float, anchor: float, grid_scale: float) -> int:
    return round_half_away(value * grid_scale / 100 + anchor)


def page_to_local(value: float, anchor: float, grid_scale: float) -> int:
    return round_half_away((value - anchor) / (grid_scale / 100))
