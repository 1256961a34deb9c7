# codemaker/core/pages.py
"""
Page service: every RPC operation as validate-then-write inside one
transaction.

Methods take already-typed arguments (the router does query parsing) and
return the JSON-ready result dict. Guard failures raise CodeMakerError
subclasses; because they are raised inside `store.transaction()`, nothing
the call wrote before the failure is committed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from codemaker.adapters.base import PageStore, PageTransaction
from codemaker.core import page_key
from codemaker.core.errors import NotFoundError, PaperSizeError, TypeMismatchError, ValidationError
from codemaker.core.geometry import local_to_page, page_to_local
from codemaker.core.page_lock import lock_on_lookup, require_page, require_tick_box
from codemaker.models import PageDetails, PageType, millitime

logger = logging.getLogger(__name__)

GEOMETRY_FIELDS = ("width", "height", "leftCodeX", "leftCodeY", "rightCodeX", "rightCodeY")


def _ok(**payload: Any) -> Dict[str, Any]:
    return {"status": "ok", **payload}


@dataclass
class PageService:
    store: PageStore
    grid_scale: int = 21
    minimum_paper_size: int = 63
    duplicate_audio_areas: bool = True

    # ========== Lookup ==========

    def details(self, key: str, scale: bool = False, lock: bool = False) -> Dict[str, Any]:
        """
        Full page payload: geometry plus tick boxes and destination (checkbox
        pages) or audio areas (audio pages).

        Args:
            key: page key
            scale: convert annotation coordinates from page mm to grid units
            lock: scanner lookup; locks the page once its type is set
        """
        page_id = page_key.decode(key)
        with self.store.transaction() as tx:
            page = tx.get_page(page_id)
            if page is None:
                raise NotFoundError("pagekey not found")
            if lock:
                lock_on_lookup(tx, page)
            details = self._load_content(tx, PageDetails(page=page))

        return self._details_to_api(details, scale)

    def _load_content(self, tx: PageTransaction, details: PageDetails) -> PageDetails:
        page = details.page
        if page.type == PageType.CHECKBOX:
            details.tick_boxes = tx.list_tick_boxes(page.id)
            details.destination = tx.get_destination(page.id)
        elif page.type == PageType.AUDIO:
            details.audio_areas = tx.list_audio_areas(page.id)
        return details

    def _details_to_api(self, details: PageDetails, scale: bool) -> Dict[str, Any]:
        page = details.page
        out = page.to_api()

        def sx(v: int) -> int:
            return page_to_local(v, page.left_code_x, self.grid_scale) if scale else v

        def sy(v: int) -> int:
            return page_to_local(v, page.right_code_y, self.grid_scale) if scale else v

        if page.type == PageType.CHECKBOX:
            boxes = []
            for box in details.tick_boxes:
                item = box.to_api()
                item["x"], item["y"] = sx(box.x), sy(box.y)
                boxes.append(item)
            out["tickBoxes"] = boxes
            out["destination"] = details.destination
        elif page.type == PageType.AUDIO:
            areas = []
            for area in details.audio_areas:
                item = area.to_api()
                item["left"], item["right"] = sx(area.left), sx(area.right)
                item["top"], item["bottom"] = sy(area.top), sy(area.bottom)
                areas.append(item)
            out["audioAreas"] = areas

        out["status"] = "ok"
        return out

    # ========== Pages ==========

    def save_page(self, key: Optional[str], geometry: Dict[str, int]) -> Dict[str, Any]:
        """Create a page (key is None) or move the markers / resize an unlocked one."""
        if set(geometry) != set(GEOMETRY_FIELDS):
            raise ValidationError("new/update page attribute invalid or missing")
        if min(geometry["width"], geometry["height"]) < self.minimum_paper_size:
            raise PaperSizeError("paper size below minimum")

        now = millitime()
        with self.store.transaction() as tx:
            if key is None:
                page_id = tx.insert_page(geometry, now)
                logger.info(f"Created page {page_key.encode(page_id)}")
            else:
                page_id = page_key.decode(key)
                require_page(tx, page_id)
                tx.update_page_geometry(page_id, geometry, now)

        return _ok(pageKey=page_key.encode(page_id))

    def update_type(self, key: str, raw_type: Any) -> Dict[str, Any]:
        page_type = PageType.parse(raw_type)
        if page_type == PageType.UNSET:
            raise ValidationError("invalid page type")

        page_id = page_key.decode(key)
        with self.store.transaction() as tx:
            page = require_page(tx, page_id)
            if page.type not in (PageType.UNSET, page_type):
                raise TypeMismatchError("page type already set")
            tx.set_page_type(page_id, page_type, millitime())

        return _ok(pageKey=key)

    def update_destination(self, key: str, destination: str) -> Dict[str, Any]:
        page_id = page_key.decode(key)
        with self.store.transaction() as tx:
            require_page(tx, page_id, expected_type=PageType.CHECKBOX)
            tx.replace_destination(page_id, destination)

        return _ok(pageKey=key)

    # ========== Tick boxes ==========

    def save_tick_box(
        self,
        box_id: Optional[int],
        key: str,
        x: int,
        y: int,
        description: Optional[str] = None,
        quantity: Optional[int] = None,
        temp_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Create (box_id is None) or update a tick box on an unlocked checkbox page.

        When the client sent a temp id, it is echoed back together with the
        stored centre so the client can match and correct its local box.
        """
        page_id = page_key.decode(key)
        now = millitime()
        with self.store.transaction() as tx:
            page = require_page(tx, page_id, expected_type=PageType.CHECKBOX)
            if box_id is None:
                box_id = tx.insert_tick_box(
                    page_id,
                    x,
                    y,
                    description if description is not None else "",
                    quantity if quantity is not None else 1,
                    now,
                )
            else:
                require_tick_box(tx, box_id, page)
                tx.update_tick_box(box_id, x, y, now, description=description, quantity=quantity)

        result = _ok(id=box_id)
        if temp_id is not None:
            result.update(tempId=temp_id, x=x, y=y)
        return result

    def delete_tick_box(self, box_id: int, key: str) -> Dict[str, Any]:
        page_id = page_key.decode(key)
        with self.store.transaction() as tx:
            page = require_page(tx, page_id, expected_type=PageType.CHECKBOX)
            require_tick_box(tx, box_id, page)
            tx.delete_tick_box(box_id, millitime())

        return _ok(id=box_id)

    # ========== Audio areas ==========

    def save_audio_area(
        self,
        key: str,
        left: int,
        top: int,
        right: int,
        bottom: int,
        sound_cloud_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Add an audio area given in grid units. Allowed on locked audio pages."""
        page_id = page_key.decode(key)
        with self.store.transaction() as tx:
            page = require_page(tx, page_id, expected_type=PageType.AUDIO, allow_locked=True)
            area_id = tx.insert_audio_area(
                page_id,
                local_to_page(left, page.left_code_x, self.grid_scale),
                local_to_page(top, page.right_code_y, self.grid_scale),
                local_to_page(right, page.left_code_x, self.grid_scale),
                local_to_page(bottom, page.right_code_y, self.grid_scale),
                sound_cloud_id,
                millitime(),
            )

        return _ok(id=area_id)

    # ========== Duplicate ==========

    def duplicate(self, key: str) -> Dict[str, Any]:
        """
        Copy a page (locked or not) into a fresh unlocked page with the same
        geometry and type, plus its live content. Returns the new page details.
        """
        source_id = page_key.decode(key)
        now = millitime()
        with self.store.transaction() as tx:
            source = require_page(tx, source_id, allow_locked=True)
            new_id = tx.insert_page(source.geometry(), now)
            if source.type != PageType.UNSET:
                tx.set_page_type(new_id, source.type, now)

            if source.type == PageType.CHECKBOX:
                for box in tx.list_tick_boxes(source_id):
                    tx.insert_tick_box(new_id, box.x, box.y, box.description, box.quantity, now)
                destination = tx.get_destination(source_id)
                if destination:
                    tx.replace_destination(new_id, destination)
            elif source.type == PageType.AUDIO and self.duplicate_audio_areas:
                # stored values are already page mm
                for area in tx.list_audio_areas(source_id):
                    tx.insert_audio_area(
                        new_id, area.left, area.top, area.right, area.bottom, area.sound_cloud_id, now
                    )

        new_key = page_key.encode(new_id)
        logger.info(f"Duplicated page {key} as {new_key}")
        return self.details(new_key)
