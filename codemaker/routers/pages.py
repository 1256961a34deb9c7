# codemaker/routers/pages.py
"""
Flat RPC surface: one GET endpoint, operation chosen by which query key is
present. Every answer is a JSON object with `status` "ok" or "fail"; clients
that load it as a script tag pass `callback` (and optionally `success` + `id`)
to get it wrapped as JSONP.
"""
import html
import json
import logging
from typing import Any, Callable, Dict, List, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from codemaker.core.errors import CodeMakerError, ValidationError
from codemaker.core.pages import PageService
from codemaker.core.validation import is_integer, is_valid_callback
from codemaker.schemas import (
    AudioAreaQuery,
    DeleteTickBoxQuery,
    DestinationQuery,
    PageGeometryQuery,
    PageTypeQuery,
    TickBoxQuery,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/pages",
    tags=["pages"],
)


# ---- handlers (one per query key) ----

def _require_key(params: Dict[str, Any], name: str) -> str:
    key = params.get(name)
    if not key:
        raise ValidationError("pagekey not specified")
    return key


def _edit(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    return service.details(_require_key(params, "edit"))


def _lookup(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    # scanner read: grid units, and locks the page once its type is set
    return service.details(_require_key(params, "lookup"), scale=True, lock=True)


def _save_page(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    query = PageGeometryQuery.from_query(params)
    key = params.get("update") if "update" in params else None
    if key is not None and not key:
        raise ValidationError(PageGeometryQuery.reason)
    return service.save_page(key, query.geometry())


def _update_destination(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    query = DestinationQuery.from_query(params)
    key = params.get("updatedestination")
    if not key:
        raise ValidationError(DestinationQuery.reason)
    return service.update_destination(key, query.destination)


def _update_type(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    query = PageTypeQuery.from_query(params)
    key = params.get("updatetype")
    if not key:
        raise ValidationError(PageTypeQuery.reason)
    return service.update_type(key, query.type)


def _save_tick_box(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    query = TickBoxQuery.from_query(params)
    box_id = None
    if "updatebox" in params:
        if not is_integer(params["updatebox"]) or int(params["updatebox"]) < 0:
            raise ValidationError(TickBoxQuery.reason)
        box_id = int(params["updatebox"])
    return service.save_tick_box(
        box_id,
        query.page,
        query.x,
        query.y,
        description=query.description,
        quantity=query.quantity,
        temp_id=query.temp_id,
    )


def _delete_tick_box(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    query = DeleteTickBoxQuery.from_query(params)
    return service.delete_tick_box(query.box_id, query.page)


def _save_audio_area(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    query = AudioAreaQuery.from_query(params)
    return service.save_audio_area(
        query.page_id, query.left, query.top, query.right, query.bottom, query.sound_cloud_id
    )


def _duplicate(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    return service.duplicate(_require_key(params, "duplicate"))


Handler = Callable[[PageService, Dict[str, Any]], Dict[str, Any]]

# Checked in order; the first key present wins.
DISPATCH: List[Tuple[Tuple[str, ...], Handler]] = [
    (("edit",), _edit),
    (("lookup",), _lookup),
    (("new", "update"), _save_page),
    (("updatedestination",), _update_destination),
    (("updatetype",), _update_type),
    (("newbox", "updatebox"), _save_tick_box),
    (("deletebox",), _delete_tick_box),
    (("newaudio",), _save_audio_area),
    (("duplicate",), _duplicate),
]


def handle_query(service: PageService, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Route a raw query to its operation.

    Raises:
        CodeMakerError: validation or guard failure
    """
    for keys, handler in DISPATCH:
        if any(k in params for k in keys):
            return handler(service, params)
    raise ValidationError("no query specified")


# ---- response shaping ----

def failure(reason: str, debug: bool, default_message: str) -> Dict[str, Any]:
    return {"status": "fail", "reason": reason if debug else default_message}


def wrap_callback(body: str, params: Dict[str, Any]) -> str:
    """
    JSONP: `callback(body);`, prefixed with `success(id);` when the caller
    asked for a separate success signal. Invalid callback names are ignored.
    """
    callback = params.get("callback")
    if not is_valid_callback(callback):
        return body

    prefix = ""
    success = params.get("success")
    if is_valid_callback(success):
        raw_id = params.get("id", "0")
        connection_id = int(raw_id) if is_integer(raw_id) else 0
        prefix = f"{html.escape(success)}({connection_id});"
    return f"{prefix}{html.escape(callback)}({body});"


@router.get("")
async def pages_rpc(request: Request):
    """
    Single RPC entry point, e.g.

      GET /pages?new=true&width=210&height=297&leftCodeX=0&leftCodeY=273&rightCodeX=189&rightCodeY=0
      GET /pages?newbox=true&page=b&x=50&y=50&tempId=3&callback=CodeMaker.ack&success=CodeMaker.ok&id=7
    """
    params = dict(request.query_params)
    service: PageService = request.app.state.page_service
    settings = request.app.state.settings

    try:
        payload = handle_query(service, params)
    except CodeMakerError as e:
        logger.info(f"RPC failed: {e.reason} (query keys: {sorted(params)})")
        payload = failure(e.reason, settings.debug, settings.default_error_message)

    if is_valid_callback(params.get("callback")):
        body = json.dumps(payload, separators=(",", ":"))
        return Response(content=wrap_callback(body, params), media_type="application/javascript")
    return JSONResponse(content=payload)
