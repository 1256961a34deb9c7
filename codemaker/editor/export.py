# codemaker/editor/export.py
"""
PDF export of the editor scene.

The page is drawn at 1:1 in millimetres: optional background image first,
then every rectangle of the scene in order. Primitives that can't be
drawn are logged and skipped; one bad element never aborts the export.
"""
from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Callable, Optional, Protocol, Tuple

from fpdf import FPDF

from codemaker.core.geometry import Paper
from codemaker.editor.images import decode_data_uri, image_type_from_data_uri
from codemaker.editor.scene import (
    GroupPrimitive,
    ImagePrimitive,
    Primitive,
    RectPrimitive,
    UnsupportedPrimitive,
)

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = ("jpeg", "jpg", "png")

_SHORTHAND_HEX = re.compile(r"^#?([a-f\d])([a-f\d])([a-f\d])$", re.IGNORECASE)
_HEX = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def hex_to_rgb(colour: Optional[str]) -> Optional[Tuple[int, int, int]]:
    """'#0096ff' or '#fff' -> (r, g, b); anything else -> None."""
    if not colour:
        return None
    colour = _SHORTHAND_HEX.sub(lambda m: "".join(c * 2 for c in m.groups()), colour)
    match = _HEX.match(colour)
    if not match:
        return None
    return tuple(int(part, 16) for part in match.groups())


class PdfRenderer(Protocol):
    def begin(self, orientation: str, width: float, height: float) -> None:
        """Start a single-page document; orientation is "P" or "L"."""
        ...

    def image(self, data: bytes, x: float, y: float, w: float, h: float) -> None:
        ...

    def set_fill_color(self, r: int, g: int, b: int) -> None:
        ...

    def set_draw_color(self, r: int, g: int, b: int) -> None:
        ...

    def set_line_width(self, width: float) -> None:
        ...

    def rect(self, x: float, y: float, w: float, h: float, style: str) -> None:
        ...

    def output(self) -> bytes:
        ...


class FpdfRenderer:
    def __init__(self):
        self._pdf: Optional[FPDF] = None

    def begin(self, orientation: str, width: float, height: float) -> None:
        # fpdf2 takes the portrait format and swaps it for landscape
        self._pdf = FPDF(orientation=orientation, unit="mm", format=(min(width, height), max(width, height)))
        self._pdf.set_auto_page_break(auto=False)
        self._pdf.set_margins(0, 0, 0)
        self._pdf.add_page()

    def image(self, data: bytes, x: float, y: float, w: float, h: float) -> None:
        self._pdf.image(io.BytesIO(data), x=x, y=y, w=w, h=h)

    def set_fill_color(self, r: int, g: int, b: int) -> None:
        self._pdf.set_fill_color(r, g, b)

    def set_draw_color(self, r: int, g: int, b: int) -> None:
        self._pdf.set_draw_color(r, g, b)

    def set_line_width(self, width: float) -> None:
        self._pdf.set_line_width(width)

    def rect(self, x: float, y: float, w: float, h: float, style: str) -> None:
        self._pdf.rect(x, y, w, h, style=style)

    def output(self) -> bytes:
        data = self._pdf.output()
        if isinstance(data, str):
            return data.encode("latin-1")
        return bytes(data)


class ExportSerializer:
    def __init__(self, renderer_factory: Callable[[], PdfRenderer] = FpdfRenderer):
        self.renderer_factory = renderer_factory

    def export(
        self,
        paper: Paper,
        scene: GroupPrimitive,
        background_image: Optional[str] = None,
    ) -> bytes:
        """
        Args:
            paper: page size in mm
            scene: markers and tick boxes (no guide overlays)
            background_image: data URI drawn first at full page size

        Returns:
            The PDF bytes.
        """
        renderer = self.renderer_factory()
        orientation = "L" if paper.is_landscape else "P"
        renderer.begin(orientation, paper.width, paper.height)

        if background_image is not None:
            image_type = image_type_from_data_uri(background_image)
            if image_type in SUPPORTED_IMAGE_TYPES:
                renderer.image(decode_data_uri(background_image), 0, 0, paper.width, paper.height)
            else:
                logger.info(f"Unsupported background image type {image_type!r} - ignoring")

        self._draw(renderer, scene, "0")
        return renderer.output()

    def save(self, path: Path, paper: Paper, scene: GroupPrimitive, background_image: Optional[str] = None) -> Path:
        path = Path(path)
        path.write_bytes(self.export(paper, scene, background_image))
        logger.info(f"Exported {path}")
        return path

    def _draw(self, renderer: PdfRenderer, item: Primitive, index: str) -> None:
        if isinstance(item, GroupPrimitive):
            for i, child in enumerate(item.children):
                self._draw(renderer, child, f"{index}.{i}")
        elif isinstance(item, RectPrimitive):
            self._draw_rect(renderer, item, index)
        elif isinstance(item, ImagePrimitive):
            image_type = image_type_from_data_uri(item.data_uri)
            if image_type not in SUPPORTED_IMAGE_TYPES:
                logger.info(f"Unsupported image type {image_type!r} - ignoring item {index}")
                return
            renderer.image(decode_data_uri(item.data_uri), item.x, item.y, item.width, item.height)
        elif isinstance(item, UnsupportedPrimitive):
            logger.info(f"Unsupported {item.kind} element - ignoring item {index}")
        else:
            logger.warning(f"Unknown PDF element {type(item).__name__} - ignoring item {index}")

    def _draw_rect(self, renderer: PdfRenderer, rect: RectPrimitive, index: str) -> None:
        style = ""

        fill = hex_to_rgb(rect.fill)
        if fill is not None:
            renderer.set_fill_color(*fill)
            style += "F"

        if rect.stroke is not None:
            width = 1 if rect.stroke_width is None else rect.stroke_width
            if width > 0:
                # unparseable stroke colours fall back to black
                renderer.set_draw_color(*(hex_to_rgb(rect.stroke) or (0, 0, 0)))
                renderer.set_line_width(width)
                style += "D"

        if not style:
            logger.debug(f"Rect {index} has neither fill nor stroke - skipped")
            return
        renderer.rect(rect.x, rect.y, rect.width, rect.height, "DF" if style == "FD" else style)
