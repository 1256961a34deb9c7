"""
Shared fixtures and test doubles.

Run with: pytest tests -v
"""
import heapq
import itertools
from typing import Any, Callable, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from codemaker.adapters.sqlite import SqliteAdapter
from codemaker.core.errors import CodeMakerError
from codemaker.core.geometry import Paper
from codemaker.core.pages import PageService
from codemaker.editor.dialogs import HeadlessDialogPresenter
from codemaker.editor.document import DocumentState
from codemaker.editor.sync import SyncClient
from codemaker.main import create_app
from codemaker.routers.pages import handle_query
from codemaker.settings import Settings


# ========== Editor doubles ==========

class ManualScheduler:
    """Deterministic stand-in for the asyncio loop's call_soon / call_later."""

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, Callable, tuple]] = []
        self._seq = itertools.count()

    def call_soon(self, callback, *args):
        heapq.heappush(self._queue, (self.now, next(self._seq), callback, args))

    def call_later(self, delay, callback, *args):
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), callback, args))

    def run_ready(self) -> int:
        """Run everything due now, including callbacks scheduled meanwhile."""
        ran = 0
        while self._queue and self._queue[0][0] <= self.now:
            _, _, callback, args = heapq.heappop(self._queue)
            callback(*args)
            ran += 1
        return ran

    def advance(self, seconds: float) -> int:
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            self.now = max(self.now, self._queue[0][0])
            ran += self.run_ready()
        self.now = target
        return ran


class RecordingTransport:
    """Records every request; answers only when a test says so."""

    def __init__(self):
        self.sent: List[Tuple[int, Dict[str, str], Callable]] = []

    def send(self, connection_id, params, deliver):
        self.sent.append((connection_id, params, deliver))

    @property
    def requests(self) -> List[Dict[str, str]]:
        return [params for _, params, _ in self.sent]

    def with_key(self, key: str) -> List[Dict[str, str]]:
        return [params for params in self.requests if key in params]

    def respond(self, index: int, payload: Dict[str, Any]) -> None:
        connection_id, _, deliver = self.sent[index]
        deliver(connection_id, payload)


class ServiceTransport:
    """Queues requests and answers them from a real PageService on flush()."""

    def __init__(self, service: PageService):
        self.service = service
        self.queue: List[Tuple[int, Dict[str, str], Callable]] = []
        self.log: List[Dict[str, str]] = []

    def send(self, connection_id, params, deliver):
        self.queue.append((connection_id, params, deliver))
        self.log.append(params)

    def flush(self) -> int:
        answered = 0
        while self.queue:
            connection_id, params, deliver = self.queue.pop(0)
            try:
                payload = handle_query(self.service, params)
            except CodeMakerError as e:
                payload = {"status": "fail", "reason": e.reason}
            deliver(connection_id, payload)
            answered += 1
        return answered


class FixedMatrixGenerator:
    """Same-size checkerboard for every text; records what was encoded."""

    def __init__(self, size: int = 21):
        self.size = size
        self.texts: List[str] = []

    def matrix(self, text):
        self.texts.append(text)
        return [[(r + c) % 2 == 0 for c in range(self.size)] for r in range(self.size)]


class RecordingRenderer:
    """PdfRenderer that keeps the call log instead of producing a PDF."""

    instances: List["RecordingRenderer"] = []

    def __init__(self):
        self.calls: List[Tuple[str, tuple]] = []
        RecordingRenderer.instances.append(self)

    def begin(self, orientation, width, height):
        self.calls.append(("begin", (orientation, width, height)))

    def image(self, data, x, y, w, h):
        self.calls.append(("image", (data, x, y, w, h)))

    def set_fill_color(self, r, g, b):
        self.calls.append(("fill", (r, g, b)))

    def set_draw_color(self, r, g, b):
        self.calls.append(("draw", (r, g, b)))

    def set_line_width(self, width):
        self.calls.append(("line_width", (width,)))

    def rect(self, x, y, w, h, style):
        self.calls.append(("rect", (x, y, w, h, style)))

    def output(self):
        return b"%PDF-recorded"

    def named(self, name: str) -> List[tuple]:
        return [args for call, args in self.calls if call == name]


# ========== Fixtures ==========

@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def dialogs():
    return HeadlessDialogPresenter()


@pytest.fixture
def generator():
    return FixedMatrixGenerator()


@pytest.fixture
def sync(transport, scheduler, dialogs):
    return SyncClient(transport, scheduler, dialogs, timeout=10.0)


@pytest.fixture
def a4_doc():
    return DocumentState(Paper(210, 297))


@pytest.fixture
def store():
    adapter = SqliteAdapter.from_url("sqlite://")
    yield adapter
    adapter.dispose()


@pytest.fixture
def service(store):
    return PageService(store=store)


@pytest.fixture
def settings(tmp_path):
    return Settings(db_url=f"sqlite:///{tmp_path / 'codemaker.db'}", debug=True)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
    app.state.storage_adapter.dispose()


# ========== Helpers ==========

A4_GEOMETRY = {
    "width": 210,
    "height": 297,
    "leftCodeX": 0,
    "leftCodeY": 273,
    "rightCodeX": 189,
    "rightCodeY": 0,
}


def make_page(service: PageService, page_type=None, locked: bool = False) -> str:
    """Create an A4 page, optionally typed and locked; returns its key."""
    key = service.save_page(None, dict(A4_GEOMETRY))["pageKey"]
    if page_type is not None:
        service.update_type(key, int(page_type))
    if locked:
        service.details(key, lock=True)
    return key
