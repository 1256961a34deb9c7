# codemaker/editor/config.py
from enum import Enum
from pathlib import Path

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class ServerFailurePolicy(str, Enum):
    """What the editor does with a `status: fail` answer to a mutation."""

    IGNORE = "ignore"  # optimistic UI: keep the local change, say nothing
    LOG = "log"
    SURFACE = "surface"  # show the server's reason in a dialog


class EditorConfig(BaseSettings):
    # Page service
    server_url: str = "http://localhost:8000"
    # seconds to wait for a success signal before warning the user
    connection_timeout: float = 10.0

    # Paper
    minimum_paper_size: int = 63  # mm, both dimensions
    default_dpi: int = 72  # used to turn image pixels into mm
    image_ratio_tolerance: float = 0.01

    # Markers
    identifier_num_boxes: int = 7  # modules across a QR finder pattern
    marker_margin: int = 2  # mm of quiet zone inside each marker cell

    # Tick boxes
    tick_box_snap_distance: float = 3.0  # mm
    tick_box_stroke_width: float = 0.5  # mm

    # Export
    export_filename: str = "enterise"

    server_failure_policy: ServerFailurePolicy = Field(
        default=ServerFailurePolicy.IGNORE,
        description="Handling of logical failures reported by the page service",
    )
    # a type choice made before the page key arrives is retried once after this delay
    page_type_retry_delay: float = 2.0

    model_config = ConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_prefix="CODEMAKER_EDITOR_",
        extra="ignore",
    )

    @property
    def export_file_name(self) -> str:
        return f"{self.export_filename}.pdf"
