# codemaker/editor/sync.py
"""
Optimistic sync with the page service.

Every mutation is applied locally first and then dispatched without
blocking. Each dispatch gets a connection id and a timeout; if no success
signal arrives before the timeout fires, the user is warned once for that
call. Nothing is ever retried automatically.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Set

import httpx

from codemaker.core.errors import ConnectivityError
from codemaker.editor.config import ServerFailurePolicy
from codemaker.editor.dialogs import Dialog, DialogButton, DialogPresenter

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]
ResultHandler = Callable[[Payload], None]
Deliver = Callable[[int, Payload], None]

CONNECTION_PROBLEM_MESSAGE = (
    "Is there an internet connection problem?\n\n"
    "Unable to save your changes; any edits you make will be lost"
)


class Scheduler(Protocol):
    """The subset of `asyncio.AbstractEventLoop` the editor relies on."""

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> Any:
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any:
        ...


class Transport(Protocol):
    def send(self, connection_id: int, params: Dict[str, str], deliver: Deliver) -> None:
        """
        Start the request and return immediately.

        `deliver(connection_id, payload)` must be called once the service
        answers; on transport errors it is simply never called.
        """
        ...


@dataclass
class PendingCall:
    connection_id: int
    params: Dict[str, str]
    on_result: Optional[ResultHandler] = None
    on_failure: Optional[ResultHandler] = None
    succeeded: bool = False
    timed_out: bool = False


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SyncClient:
    def __init__(
        self,
        transport: Transport,
        scheduler: Scheduler,
        dialogs: DialogPresenter,
        timeout: float = 10.0,
        failure_policy: ServerFailurePolicy = ServerFailurePolicy.IGNORE,
        on_reload: Optional[Callable[[], None]] = None,
    ):
        self.transport = transport
        self.scheduler = scheduler
        self.dialogs = dialogs
        self.timeout = timeout
        self.failure_policy = failure_policy
        self.on_reload = on_reload
        self.pending: Dict[int, PendingCall] = {}
        self._ids = itertools.count()

    def dispatch(
        self,
        params: Dict[str, Any],
        on_result: Optional[ResultHandler] = None,
        on_failure: Optional[ResultHandler] = None,
    ) -> int:
        """
        Send one RPC request without waiting for it.

        Args:
            params: query parameters; None values are dropped
            on_result: called with the payload of an "ok" answer
            on_failure: called with a "fail" payload instead of applying
                the failure policy

        Returns:
            The connection id assigned to this call.
        """
        connection_id = next(self._ids)
        query = {k: _query_value(v) for k, v in params.items() if v is not None}
        query["id"] = str(connection_id)

        self.pending[connection_id] = PendingCall(connection_id, query, on_result, on_failure)
        self.scheduler.call_later(self.timeout, self._check_timeout, connection_id)
        self.transport.send(connection_id, query, self.deliver)
        return connection_id

    def connection_succeeded(self, connection_id: int) -> None:
        """Idempotent; late or duplicate signals are ignored."""
        call = self.pending.get(connection_id)
        if call is not None:
            call.succeeded = True

    def deliver(self, connection_id: int, payload: Payload) -> None:
        """
        Transport callback: success signal first, then the result.

        A response that lands after its timeout warning still runs its
        handlers; only the first response for a connection is used.
        """
        self.connection_succeeded(connection_id)
        call = self.pending.pop(connection_id, None)
        if call is None:
            logger.debug(f"Duplicate response for connection {connection_id} ignored")
            return
        if call.timed_out:
            logger.info(f"Late response for connection {connection_id} after timeout")

        if payload.get("status") == "ok":
            if call.on_result is not None:
                call.on_result(payload)
        elif call.on_failure is not None:
            call.on_failure(payload)
        else:
            self._apply_failure_policy(call, payload)

    def _apply_failure_policy(self, call: PendingCall, payload: Payload) -> None:
        reason = payload.get("reason", "unknown failure")
        if self.failure_policy == ServerFailurePolicy.IGNORE:
            return
        logger.warning(f"Server rejected connection {call.connection_id}: {reason}")
        if self.failure_policy == ServerFailurePolicy.SURFACE:
            self.dialogs.show(
                Dialog(
                    f"Unable to save your changes: {reason}",
                    buttons=[DialogButton("Ignore")],
                )
            )

    def _check_timeout(self, connection_id: int) -> None:
        call = self.pending.get(connection_id)
        if call is None or call.succeeded:
            return
        call.timed_out = True

        error = ConnectivityError(connection_id)
        logger.warning(f"No response for connection {connection_id} after {self.timeout}s")
        self.dialogs.show(
            Dialog(
                CONNECTION_PROBLEM_MESSAGE,
                buttons=[
                    DialogButton("Ignore"),
                    DialogButton("Reload page", self.on_reload),
                ],
                error=error,
            )
        )


class HttpTransport:
    """
    Sends RPC requests with httpx on the running asyncio loop.

    Requests are fire-and-forget tasks; HTTP and network errors are only
    logged, the sync client's timeout is what tells the user.
    """

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._tasks: Set[asyncio.Task] = set()

    def send(self, connection_id: int, params: Dict[str, str], deliver: Deliver) -> None:
        task = asyncio.get_running_loop().create_task(self._fetch(connection_id, params, deliver))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch(self, connection_id: int, params: Dict[str, str], deliver: Deliver) -> None:
        try:
            resp = await self.client.get("/pages", params=params)
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Request {connection_id} failed: {e}")
            return
        deliver(connection_id, payload)

    async def drain(self) -> None:
        """Wait for all in-flight requests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def aclose(self) -> None:
        await self.drain()
        await self.client.aclose()
