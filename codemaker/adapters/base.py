# codemaker/adapters/base.py
"""
Storage contract for the page service.

PageService only talks to these protocols, so a different relational backend
can be dropped in by implementing `PageStore.transaction()`.
"""
from __future__ import annotations

from typing import ContextManager, Dict, List, Optional, Protocol

from codemaker.models import AudioArea, Page, PageType, TickBox


class PageTransaction(Protocol):
    """
    Operations available inside one atomic unit of work.

    Every RPC call opens exactly one transaction: the lock/type checks and
    the write they guard see the same snapshot, and nothing is committed
    if a check fails part-way through.
    """

    # ---- pages ----
    def get_page(self, page_id: int) -> Optional[Page]:
        """Return the page row, or None when it doesn't exist."""
        ...

    def insert_page(self, geometry: Dict[str, int], now: int) -> int:
        """Insert an UNSET, unlocked page and return its new row id."""
        ...

    def update_page_geometry(self, page_id: int, geometry: Dict[str, int], now: int) -> None:
        ...

    def set_page_type(self, page_id: int, page_type: PageType, now: int) -> None:
        ...

    def lock_page(self, page_id: int) -> None:
        """Set locked=1. Never cleared again."""
        ...

    # ---- tick boxes ----
    def list_tick_boxes(self, page_id: int) -> List[TickBox]:
        """Live (non-deleted) boxes in insertion order."""
        ...

    def get_tick_box(self, box_id: int) -> Optional[TickBox]:
        ...

    def insert_tick_box(
        self, page_id: int, x: int, y: int, description: str, quantity: int, now: int
    ) -> int:
        ...

    def update_tick_box(
        self,
        box_id: int,
        x: int,
        y: int,
        now: int,
        description: Optional[str] = None,
        quantity: Optional[int] = None,
    ) -> None:
        """Move a box; description and quantity only change when both are given."""
        ...

    def delete_tick_box(self, box_id: int, now: int) -> None:
        """Soft delete."""
        ...

    # ---- destination ----
    def get_destination(self, page_id: int) -> Optional[str]:
        ...

    def replace_destination(self, page_id: int, destination: str) -> None:
        ...

    # ---- audio areas ----
    def list_audio_areas(self, page_id: int) -> List[AudioArea]:
        ...

    def insert_audio_area(
        self,
        page_id: int,
        left: int,
        top: int,
        right: int,
        bottom: int,
        sound_cloud_id: Optional[str],
        now: int,
    ) -> int:
        ...


class PageStore(Protocol):
    def transaction(self) -> ContextManager[PageTransaction]:
        """Open a transaction; commit on clean exit, roll back on exception."""
        ...

    def ping(self) -> None:
        """Cheap connectivity check used by /health. Raises on failure."""
        ...
