# codemaker/core/page_lock.py
"""
Server-side guard rules for page mutations.

A page is editable until a scanner looks it up for the first time after its
type was chosen; from then on it is locked for good. Audio pages are the
exception: new audio areas may still be added after locking.
"""
from __future__ import annotations

from typing import Optional

from codemaker.adapters.base import PageTransaction
from codemaker.core.errors import LockedError, NotFoundError, TypeMismatchError, ValidationError
from codemaker.models import Page, PageType, TickBox


def require_page(
    tx: PageTransaction,
    page_id: int,
    expected_type: Optional[PageType] = None,
    allow_locked: bool = False,
) -> Page:
    """
    Load a page and apply the guards in order: exists, type, lock.

    Args:
        tx: open transaction; the returned row is valid for its lifetime
        page_id: numeric id decoded from the page key
        expected_type: required type for type-specific operations
        allow_locked: skip the lock check (audio area creation)

    Returns:
        The page row.

    Raises:
        NotFoundError, TypeMismatchError, LockedError
    """
    page = tx.get_page(page_id)
    if page is None:
        raise NotFoundError("page not found")
    if expected_type is not None and page.type != expected_type:
        raise TypeMismatchError("incorrect page type")
    if page.locked and not allow_locked:
        raise LockedError("the page is locked")
    return page


def require_tick_box(tx: PageTransaction, box_id: int, page: Page) -> TickBox:
    box = tx.get_tick_box(box_id)
    if box is None:
        raise NotFoundError("box not found")
    if box.page_id != page.id:
        raise ValidationError("incorrect page id")
    return box


def lock_on_lookup(tx: PageTransaction, page: Page) -> Page:
    """Lock a page on scanner lookup, unless its type hasn't been chosen yet."""
    if page.type != PageType.UNSET and not page.locked:
        tx.lock_page(page.id)
        page.locked = True
    return page
