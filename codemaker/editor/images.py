# codemaker/editor/images.py
"""
Background image ingestion.

An image dropped onto the editor either creates a document of the image's
physical size (pixels at the configured DPI) or, for an existing document,
becomes its background when the aspect ratios match.
"""
from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from codemaker.core.errors import ImageRejectedError
from codemaker.core.geometry import Paper, round_half_up

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4

# Pillow format name -> MIME type
ACCEPTED_FORMATS = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "GIF": "image/gif",
}


@dataclass(frozen=True)
class BackgroundImage:
    pixel_width: int
    pixel_height: int
    width_mm: int
    height_mm: int
    mime_type: str
    data_uri: str

    @property
    def paper(self) -> Paper:
        return Paper(self.width_mm, self.height_mm)


def px_to_mm(pixels: int, dpi: int = 72) -> int:
    return round_half_up(pixels / (dpi / MM_PER_INCH))


def load_background_image(
    data: bytes,
    filename: str = "image",
    dpi: int = 72,
    minimum_size: int = 63,
) -> BackgroundImage:
    """
    Decode an uploaded file and check it can become a page.

    Raises:
        ImageRejectedError: unsupported type, or smaller than the minimum
            paper size in either dimension
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            px_w, px_h = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise ImageRejectedError(f'Sorry, the file type of "{filename}" is unsupported') from e

    mime_type = ACCEPTED_FORMATS.get(fmt or "")
    if mime_type is None:
        raise ImageRejectedError(f'Sorry, the file type of "{filename}" is unsupported')

    width_mm, height_mm = px_to_mm(px_w, dpi), px_to_mm(px_h, dpi)
    if width_mm < minimum_size or height_mm < minimum_size:
        raise ImageRejectedError(
            f'Sorry, "{filename}" is too small. The width and height of the image must both '
            f"be at least {minimum_size}mm (current dimensions: {width_mm}mm × {height_mm}mm)"
        )

    encoded = base64.b64encode(data).decode("ascii")
    logger.info(f"Loaded {filename}: {px_w}x{px_h}px -> {width_mm}x{height_mm}mm")
    return BackgroundImage(
        pixel_width=px_w,
        pixel_height=px_h,
        width_mm=width_mm,
        height_mm=height_mm,
        mime_type=mime_type,
        data_uri=f"data:{mime_type};base64,{encoded}",
    )


def check_aspect_ratio(image: BackgroundImage, paper: Paper, tolerance: float = 0.01) -> None:
    """
    Raises:
        ImageRejectedError: the image's width/height ratio differs from the page's
    """
    image_ratio = image.width_mm / image.height_mm
    paper_ratio = paper.width / paper.height
    if abs(image_ratio - paper_ratio) >= tolerance:
        raise ImageRejectedError(
            "Sorry, unable to include that image – its size does not match. Please ensure that "
            f"the image you use has the same width/height ratio as the page ({paper.width}mm × "
            f"{paper.height}mm). The dimensions of the image you chose are: "
            f"{image.pixel_width}pixels × {image.pixel_height}pixels"
        )


def image_type_from_data_uri(data_uri: str) -> str:
    """'data:image/png;base64,...' -> 'png'"""
    head = data_uri.split(";", 1)[0]
    return head.split("/", 1)[1].lower() if "/" in head else ""


def decode_data_uri(data_uri: str) -> bytes:
    _, _, payload = data_uri.partition(",")
    return base64.b64decode(payload)
