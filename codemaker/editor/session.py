# codemaker/editor/session.py
"""
Editor session: one document at a time, from creation or load to export.

The session wires the document state to the marker controller, the
annotation layers, the interaction state machine and the sync client, and
drives the dialog-based flows around them (type chooser, locked-page
warnings, duplicate-on-locked, image ratio checks).
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from codemaker.core import geometry
from codemaker.core.errors import ImageRejectedError, PaperSizeError
from codemaker.core.geometry import Paper
from codemaker.editor.annotations import AudioAreaLayer, EditorTickBox, TickBoxLayer
from codemaker.editor.config import EditorConfig
from codemaker.editor.dialogs import Dialog, DialogButton, DialogPresenter, HeadlessDialogPresenter
from codemaker.editor.document import DocumentState
from codemaker.editor.export import ExportSerializer, FpdfRenderer, PdfRenderer
from codemaker.editor.identity import ConfirmedId
from codemaker.editor.images import check_aspect_ratio, load_background_image
from codemaker.editor.interaction import InteractionStateMachine
from codemaker.editor.markers import MarkerPlacementController
from codemaker.editor.patterns import MarkerGenerator, QrMarkerGenerator
from codemaker.editor.scene import GroupPrimitive
from codemaker.editor.sync import Scheduler, SyncClient, Transport
from codemaker.models import PageType

logger = logging.getLogger(__name__)

# ========== Dialog text ==========

TYPE_CHOOSER_MESSAGE = "Which system would you like to create a page for?"
PAPERCHAINS = "PaperChains"
TICQR = "TicQR"

PAPERCHAINS_READY_MESSAGE = (
    "Great! Here's your document. There's nothing else you need to do: you can start "
    "adding audio straight away using the PaperChains app"
)
TICQR_READY_MESSAGE = (
    "Great! The next step is to add tickboxes to your document. Click anywhere on the page "
    "to add a box\n\nDouble-click on any box to add item details, or press the delete key "
    "to remove a box"
)
EDIT_CAUTION_MESSAGE = (
    "A word of caution:\n\nInitially, anyone can edit this page. However, once you (or anyone "
    "else) scan the page for the first time, its properties are locked, and no more changes "
    "are allowed"
)

LOCKED_CHECKBOX_MESSAGE = (
    "Warning: this document has been scanned, and is now locked – changes you make will not "
    "be saved\n\nTo modify this document you will need to create a new page from these elements"
)
LOCKED_AUDIO_MESSAGE = (
    "This document has been scanned, and is now locked – changes you make to its layout will "
    "not be saved\n\nTo add audio to this document, you should use the PaperChains app"
)
DUPLICATE_SUCCESS_MESSAGE = (
    "Copy created successfully – this new document may now be modified as usual"
)
PAGE_NOT_FOUND_MESSAGE = (
    "Unable to find that page\n\nYou can create your own document from the CodeMaker homepage"
)


class EditorSession:
    def __init__(
        self,
        transport: Transport,
        scheduler: Scheduler,
        config: Optional[EditorConfig] = None,
        dialogs: Optional[DialogPresenter] = None,
        generator: Optional[MarkerGenerator] = None,
        renderer_factory: Callable[[], PdfRenderer] = FpdfRenderer,
        on_reload: Optional[Callable[[], None]] = None,
        on_home: Optional[Callable[[], None]] = None,
    ):
        self.config = config or EditorConfig()
        self.scheduler = scheduler
        self.dialogs = dialogs or HeadlessDialogPresenter()
        self.generator = generator or QrMarkerGenerator()
        self.exporter = ExportSerializer(renderer_factory)
        self.on_reload = on_reload
        self.on_home = on_home

        self.sync = SyncClient(
            transport,
            scheduler,
            self.dialogs,
            timeout=self.config.connection_timeout,
            failure_policy=self.config.server_failure_policy,
            on_reload=self.reload,
        )

        self.doc: Optional[DocumentState] = None
        self.markers: Optional[MarkerPlacementController] = None
        self.tick_boxes: Optional[TickBoxLayer] = None
        self.audio_areas = AudioAreaLayer()
        self.interaction: Optional[InteractionStateMachine] = None

    # ---- document setup ----

    def _start_document(self, doc: DocumentState) -> None:
        self.doc = doc
        self.markers = MarkerPlacementController(
            doc, self.generator, self.sync, self.scheduler, margin=self.config.marker_margin
        )
        self.audio_areas = AudioAreaLayer()

    def _attach_layers(self) -> None:
        """Tick box size depends on the marker modules, so markers come first."""
        size = geometry.tick_box_size(
            self.markers.module_size,
            self.config.identifier_num_boxes,
            self.config.tick_box_stroke_width,
        )
        self.tick_boxes = TickBoxLayer(
            self.doc,
            self.sync,
            size,
            stroke_width=self.config.tick_box_stroke_width,
            snap_distance=self.config.tick_box_snap_distance,
        )
        self.interaction = InteractionStateMachine(self.doc, self.markers, self.tick_boxes, self.dialogs)

    def new_blank_document(self, width: int, height: int) -> Optional[DocumentState]:
        """
        Create a page of the given size in mm and register it with the service.

        Sizes below the minimum show a dialog and create nothing.
        """
        minimum = self.config.minimum_paper_size
        if width < minimum or height < minimum:
            self.dialogs.show(
                Dialog(
                    f"Currently, documents must be larger than {minimum}mm in both dimensions",
                    buttons=[DialogButton("Retry")],
                    error=PaperSizeError(f"{width}x{height}mm is below {minimum}mm"),
                )
            )
            return None
        return self._create_document(Paper(width, height))

    def new_image_document(self, data: bytes, filename: str = "image") -> Optional[DocumentState]:
        """A page sized after the image's physical dimensions, with it as background."""
        try:
            image = load_background_image(
                data, filename, dpi=self.config.default_dpi, minimum_size=self.config.minimum_paper_size
            )
        except ImageRejectedError as e:
            self._show_image_error(e)
            return None
        return self._create_document(image.paper, background_image=image.data_uri)

    def attach_image(self, data: bytes, filename: str = "image") -> bool:
        """Use an image as the background of the current document if its ratio matches."""
        try:
            image = load_background_image(
                data, filename, dpi=self.config.default_dpi, minimum_size=self.config.minimum_paper_size
            )
            check_aspect_ratio(image, self.doc.paper, self.config.image_ratio_tolerance)
        except ImageRejectedError as e:
            self._show_image_error(e)
            return False
        self.doc.background_image = image.data_uri
        return True

    def _show_image_error(self, error: ImageRejectedError) -> None:
        logger.info(f"Image rejected: {error.reason}")
        self.dialogs.show(Dialog(error.reason, buttons=[DialogButton("Ignore")], error=error))

    def _create_document(self, paper: Paper, background_image: Optional[str] = None) -> DocumentState:
        self._start_document(DocumentState(paper, background_image=background_image))
        self.markers.place_initial()
        self._attach_layers()
        self.show_page_type_chooser()
        logger.info(f"New {paper.width}x{paper.height}mm document")
        return self.doc

    # ---- existing pages ----

    def open_existing(self, key: str) -> int:
        """Ask the service for a page; the answer loads it or shows an error."""
        return self.sync.dispatch(
            {"edit": key},
            on_result=self.load_existing,
            on_failure=self._page_not_found,
        )

    def _page_not_found(self, payload: Dict[str, Any]) -> None:
        logger.info(f"Page load failed: {payload.get('reason')}")
        self.dialogs.show(Dialog(PAGE_NOT_FOUND_MESSAGE, buttons=[DialogButton("Home", self.on_home)]))

    def load_existing(self, payload: Dict[str, Any]) -> DocumentState:
        """Restore a page from an `edit` (or `duplicate`) answer."""
        doc = DocumentState(
            Paper(int(payload["width"]), int(payload["height"])),
            page_key=payload["pageKey"],
            page_type=PageType.parse(payload.get("type", 0)),
            locked=bool(payload.get("locked", False)),
        )
        self._start_document(doc)
        self.markers.load_existing(
            (int(payload["leftCodeX"]), int(payload["leftCodeY"])),
            (int(payload["rightCodeX"]), int(payload["rightCodeY"])),
        )
        self._attach_layers()

        if doc.page_type == PageType.CHECKBOX:
            # tick box coordinates are centres
            for box in payload.get("tickBoxes", []):
                if box.get("deleted"):
                    continue
                self.tick_boxes.add(
                    box["x"],
                    box["y"],
                    identity=ConfirmedId(int(box["id"])),
                    description=box.get("description") or "",
                    quantity=int(box.get("quantity") or 1),
                )
            doc.destination = payload.get("destination")
            if doc.locked:
                self.dialogs.show(
                    Dialog(
                        LOCKED_CHECKBOX_MESSAGE,
                        buttons=[
                            DialogButton("Ignore"),
                            DialogButton("Create a new page", self.request_duplicate),
                        ],
                    )
                )
        elif doc.page_type == PageType.AUDIO:
            for area in payload.get("audioAreas", []):
                if area.get("deleted"):
                    continue
                self.audio_areas.add(
                    area["left"],
                    area["top"],
                    area["right"],
                    area["bottom"],
                    area_id=int(area["id"]),
                    sound_cloud_id=area.get("soundCloudId"),
                )
            if doc.locked:
                self.dialogs.show(Dialog(LOCKED_AUDIO_MESSAGE, buttons=[DialogButton("Continue")]))
        else:
            self.show_page_type_chooser()

        logger.info(f"Loaded page {doc.page_key} (type {int(doc.page_type)}, locked={doc.locked})")
        return doc

    def request_duplicate(self) -> int:
        return self.sync.dispatch({"duplicate": self.doc.page_key}, on_result=self.load_duplicate)

    def load_duplicate(self, payload: Dict[str, Any]) -> DocumentState:
        doc = self.load_existing(payload)
        self.dialogs.show(Dialog(DUPLICATE_SUCCESS_MESSAGE, buttons=[DialogButton("Continue")]))
        return doc

    # ---- page type ----

    def show_page_type_chooser(self) -> None:
        self.dialogs.show(
            Dialog(
                TYPE_CHOOSER_MESSAGE,
                buttons=[
                    DialogButton(PAPERCHAINS, lambda: self.choose_page_type(PageType.AUDIO)),
                    DialogButton(TICQR, lambda: self.choose_page_type(PageType.CHECKBOX)),
                ],
            )
        )

    def choose_page_type(self, page_type: PageType) -> None:
        self.update_page_type(page_type)
        if page_type == PageType.AUDIO:
            self.dialogs.show(
                Dialog(
                    PAPERCHAINS_READY_MESSAGE,
                    buttons=[
                        DialogButton("Download PDF", lambda: self.save_pdf(include_image=True)),
                        DialogButton("Edit page", self._show_edit_caution),
                    ],
                )
            )
        else:
            self.dialogs.show(
                Dialog(TICQR_READY_MESSAGE, buttons=[DialogButton("Edit page", self._show_edit_caution)])
            )

    def _show_edit_caution(self) -> None:
        self.dialogs.show(Dialog(EDIT_CAUTION_MESSAGE, buttons=[DialogButton("I understand")]))

    def update_page_type(self, page_type: PageType, second_try: bool = False) -> Optional[int]:
        """
        Set the type locally and on the service. Before the page key has
        arrived the request is retried once, after a short delay.
        """
        self.doc.page_type = page_type
        if self.doc.page_key is not None:
            return self.sync.dispatch({"updatetype": self.doc.page_key, "type": int(page_type)})
        if not second_try:
            self.scheduler.call_later(
                self.config.page_type_retry_delay, self.update_page_type, page_type, True
            )
        else:
            logger.warning(f"Page type {int(page_type)} not saved: no page key yet")
        return None

    # ---- destination ----

    def update_destination(self, address: str) -> int:
        self.doc.destination = address
        return self.sync.dispatch({"updatedestination": self.doc.page_key, "destination": address})

    # ---- tick box details ----

    def show_tick_box_editor(self, box: EditorTickBox) -> None:
        """Description / quantity form; changes are sent when the dialog closes."""
        self.dialogs.show(
            Dialog(
                "Item details",
                buttons=[DialogButton("Done")],
                fields={"description": box.description, "quantity": str(box.quantity)},
                on_close=lambda dialog: self.tick_boxes.edit(
                    box, dialog.fields.get("description", ""), dialog.fields.get("quantity")
                ),
            )
        )

    # ---- export ----

    def build_scene(self) -> GroupPrimitive:
        """Markers and tick boxes; guide overlays and audio areas are never exported."""
        scene = GroupPrimitive(name="page")
        for marker in self.markers.to_primitives():
            scene.add(marker)
        if self.doc.page_type == PageType.CHECKBOX:
            scene.add(self.tick_boxes.to_primitive())
        return scene

    def export_pdf(self, include_image: bool = False) -> bytes:
        self.tick_boxes.highlight(None)
        background = self.doc.background_image if include_image else None
        return self.exporter.export(self.doc.paper, self.build_scene(), background)

    def save_pdf(self, directory: Path = Path("."), include_image: bool = False) -> Path:
        self.tick_boxes.highlight(None)
        background = self.doc.background_image if include_image else None
        path = Path(directory) / self.config.export_file_name
        return self.exporter.save(path, self.doc.paper, self.build_scene(), background)

    # ---- navigation ----

    def reload(self) -> None:
        """Reload the current page from the service, discarding local state."""
        if self.on_reload is not None:
            self.on_reload()
        elif self.doc is not None and self.doc.page_key is not None:
            self.open_existing(self.doc.page_key)
        else:
            logger.warning("Nothing to reload")
