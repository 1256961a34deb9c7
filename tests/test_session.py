"""
Editor session flows against a real page service.

Run with: pytest tests/test_session.py -v
"""
import io

import pytest
from PIL import Image

from conftest import RecordingRenderer, RecordingTransport, ServiceTransport, make_page

from codemaker.core.errors import ImageRejectedError, PaperSizeError
from codemaker.core.geometry import Paper
from codemaker.editor.session import (
    DUPLICATE_SUCCESS_MESSAGE,
    LOCKED_AUDIO_MESSAGE,
    LOCKED_CHECKBOX_MESSAGE,
    PAGE_NOT_FOUND_MESSAGE,
    TICQR_READY_MESSAGE,
    TYPE_CHOOSER_MESSAGE,
    EditorSession,
)
from codemaker.editor.sync import CONNECTION_PROBLEM_MESSAGE
from codemaker.models import PageType


def _png(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def backend(service):
    return ServiceTransport(service)


@pytest.fixture
def session(backend, scheduler, dialogs, generator):
    RecordingRenderer.instances.clear()
    return EditorSession(
        backend,
        scheduler,
        dialogs=dialogs,
        generator=generator,
        renderer_factory=RecordingRenderer,
    )


def _ticqr_page(session, backend, dialogs):
    session.new_blank_document(210, 297)
    backend.flush()
    dialogs.press("TicQR")
    backend.flush()
    return session.doc.page_key


class TestNewDocuments:
    def test_below_minimum(self, session, dialogs, backend):
        assert session.new_blank_document(62, 297) is None
        dialog = dialogs.current
        assert dialog.message == "Currently, documents must be larger than 63mm in both dimensions"
        assert [b.label for b in dialog.buttons] == ["Retry"]
        assert isinstance(dialog.error, PaperSizeError)
        assert backend.log == []

    def test_blank_page_registered(self, session, dialogs, backend, service, scheduler):
        doc = session.new_blank_document(210, 297)
        assert doc.paper == Paper(210, 297)
        assert dialogs.current.message == TYPE_CHOOSER_MESSAGE
        assert backend.log[0]["new"] == "true"

        backend.flush()
        scheduler.run_ready()
        assert doc.page_key is not None
        assert session.markers.left.text == doc.page_key
        assert service.details(doc.page_key)["leftCodeY"] == 273

    def test_choose_type_after_key(self, session, dialogs, backend, service):
        key = _ticqr_page(session, backend, dialogs)
        assert session.doc.page_type == PageType.CHECKBOX
        assert service.details(key)["type"] == int(PageType.CHECKBOX)
        assert dialogs.current.message == TICQR_READY_MESSAGE

    def test_choose_type_before_key_retries_once(self, session, dialogs, backend, service, scheduler):
        session.new_blank_document(210, 297)
        dialogs.press("PaperChains")
        assert backend.log[-1].get("updatetype") is None

        backend.flush()
        scheduler.advance(2)
        assert backend.log[-1]["updatetype"] == session.doc.page_key
        backend.flush()
        assert service.details(session.doc.page_key)["type"] == int(PageType.AUDIO)

    def test_type_never_saved_without_key(self, transport, scheduler, dialogs, generator):
        session = EditorSession(transport, scheduler, dialogs=dialogs, generator=generator)
        session.new_blank_document(210, 297)
        session.update_page_type(PageType.CHECKBOX)
        scheduler.advance(2)
        scheduler.advance(2)
        assert transport.with_key("updatetype") == []

    def test_image_document(self, session, dialogs):
        doc = session.new_image_document(_png(595, 842), "form.png")
        assert doc.paper == Paper(210, 297)
        assert doc.background_image.startswith("data:image/png;base64,")

    def test_image_too_small(self, session, dialogs):
        assert session.new_image_document(_png(100, 100), "tiny.png") is None
        assert isinstance(dialogs.current.error, ImageRejectedError)
        assert [b.label for b in dialogs.current.buttons] == ["Ignore"]

    def test_attach_image(self, session, dialogs):
        session.new_blank_document(210, 297)
        assert session.attach_image(_png(600, 600), "square.png") is False
        assert dialogs.current.message.startswith("Sorry, unable to include that image")
        assert session.doc.background_image is None

        assert session.attach_image(_png(595, 842), "a4.png") is True
        assert session.doc.background_image is not None


class TestEditing:
    def test_box_moved_before_ack(self, session, dialogs, backend, service):
        key = _ticqr_page(session, backend, dialogs)

        session.interaction.pointer_down(100, 100)
        session.interaction.pointer_move(120, 110)
        session.interaction.pointer_up()
        backend.flush()

        box = session.tick_boxes.boxes[0]
        assert box.is_confirmed
        assert len([p for p in backend.log if "updatebox" in p]) == 1
        stored = service.details(key)["tickBoxes"][0]
        assert (stored["id"], stored["x"], stored["y"]) == (box.box_id, 120, 110)

    def test_tick_box_editor(self, session, dialogs, backend, service):
        key = _ticqr_page(session, backend, dialogs)
        session.interaction.pointer_down(100, 100)
        session.interaction.pointer_up()
        backend.flush()

        box = session.tick_boxes.boxes[0]
        session.show_tick_box_editor(box)
        assert dialogs.current.fields == {"description": "", "quantity": "1"}
        dialogs.fill("description", "Tea")
        dialogs.fill("quantity", "3")
        dialogs.press("Done")
        backend.flush()

        stored = service.details(key)["tickBoxes"][0]
        assert (stored["description"], stored["quantity"]) == ("Tea", 3)

    def test_destination(self, session, dialogs, backend, service):
        key = _ticqr_page(session, backend, dialogs)
        session.update_destination("orders@example.com")
        backend.flush()
        assert service.details(key)["destination"] == "orders@example.com"


class TestExistingPages:
    def test_load_checkbox_page(self, session, backend, service, dialogs):
        key = make_page(service, PageType.CHECKBOX)
        service.save_tick_box(None, key, 50, 60, description="Milk", quantity=2)
        service.update_destination(key, "shop@example.com")

        session.open_existing(key)
        backend.flush()
        assert session.doc.page_key == key
        assert session.doc.destination == "shop@example.com"
        assert not dialogs.is_showing()

        box = session.tick_boxes.boxes[0]
        assert box.is_confirmed
        assert box.rounded_center == (50, 60)
        assert (box.description, box.quantity) == ("Milk", 2)

    def test_unset_page_shows_chooser(self, session, backend, service, dialogs):
        session.open_existing(make_page(service))
        backend.flush()
        assert dialogs.current.message == TYPE_CHOOSER_MESSAGE

    def test_unknown_page(self, backend, scheduler, dialogs, generator):
        homes = []
        session = EditorSession(
            backend, scheduler, dialogs=dialogs, generator=generator, on_home=lambda: homes.append(1)
        )
        session.open_existing("zzzz")
        backend.flush()
        assert dialogs.current.message == PAGE_NOT_FOUND_MESSAGE
        dialogs.press("Home")
        assert homes == [1]

    def test_locked_checkbox_page_duplicate(self, session, backend, service, dialogs):
        key = make_page(service, PageType.CHECKBOX)
        service.save_tick_box(None, key, 50, 60)
        service.details(key, lock=True)

        session.open_existing(key)
        backend.flush()
        assert session.doc.locked is True
        assert dialogs.current.message == LOCKED_CHECKBOX_MESSAGE

        dialogs.press("Create a new page")
        backend.flush()
        assert dialogs.current.message == DUPLICATE_SUCCESS_MESSAGE
        assert session.doc.page_key != key
        assert session.doc.locked is False
        assert len(session.tick_boxes.boxes) == 1
        assert session.tick_boxes.boxes[0].is_confirmed

    def test_locked_audio_page(self, session, backend, service, dialogs):
        key = make_page(service, PageType.AUDIO)
        service.save_audio_area(key, 0, 0, 100, 100, "clip")
        service.details(key, lock=True)

        session.open_existing(key)
        backend.flush()
        assert dialogs.current.message == LOCKED_AUDIO_MESSAGE
        assert [b.label for b in dialogs.current.buttons] == ["Continue"]
        area = session.audio_areas.areas[0]
        assert (area.left, area.top, area.right, area.bottom) == (0, 0, 21, 21)
        assert area.sound_cloud_id == "clip"


class TestExport:
    def test_export_clears_highlight(self, session, backend, dialogs):
        _ticqr_page(session, backend, dialogs)
        session.interaction.pointer_down(100, 100)
        session.interaction.pointer_up()
        box = session.tick_boxes.boxes[0]
        assert box.highlighted

        assert session.export_pdf() == b"%PDF-recorded"
        assert box.highlighted is False
        renderer = RecordingRenderer.instances[-1]
        assert renderer.named("image") == []
        # one white box in the tick box layer
        assert renderer.named("rect")[-1][:4] == (box.x, box.y, box.size, box.size)

    def test_include_image(self, session, backend):
        session.new_image_document(_png(595, 842))
        backend.flush()
        session.export_pdf(include_image=True)
        assert len(RecordingRenderer.instances[-1].named("image")) == 1

        session.export_pdf(include_image=False)
        assert RecordingRenderer.instances[-1].named("image") == []

    def test_audio_areas_not_exported(self, session, backend, service):
        key = make_page(service, PageType.AUDIO)
        service.save_audio_area(key, 0, 0, 100, 100)
        session.open_existing(key)
        backend.flush()
        scene = session.build_scene()
        assert [group.name for group in scene.children] == ["left-marker", "right-marker"]

    def test_save_pdf(self, session, backend, tmp_path):
        session.new_blank_document(210, 297)
        backend.flush()
        path = session.save_pdf(tmp_path)
        assert path.name == "enterise.pdf"
        assert path.read_bytes() == b"%PDF-recorded"


class TestConnectivity:
    def test_timeout_offers_reload(self, scheduler, dialogs, generator):
        transport = RecordingTransport()
        reloads = []
        session = EditorSession(
            transport, scheduler, dialogs=dialogs, generator=generator, on_reload=lambda: reloads.append(1)
        )
        session.new_blank_document(210, 297)
        scheduler.advance(10)
        assert dialogs.current.message == CONNECTION_PROBLEM_MESSAGE
        dialogs.press("Reload page")
        assert reloads == [1]

    def test_reload_refetches_page(self, session, backend, service):
        key = make_page(service, PageType.CHECKBOX)
        session.open_existing(key)
        backend.flush()
        session.reload()
        assert backend.log[-1]["edit"] == key
