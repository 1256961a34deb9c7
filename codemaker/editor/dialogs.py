# codemaker/editor/dialogs.py
"""
Modal dialogs.

At most one dialog is visible; showing a new one closes the current one
first. A dialog may carry editable fields (the tick box editor) which its
`on_close` hook reads back when it is dismissed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class DialogButton:
    label: str
    action: Optional[Callable[[], None]] = None


@dataclass
class Dialog:
    message: str
    buttons: List[DialogButton] = field(default_factory=list)
    fields: Dict[str, str] = field(default_factory=dict)
    on_close: Optional[Callable[["Dialog"], None]] = None
    # the error that caused the dialog, if any
    error: Optional[Exception] = None

    def button(self, label: str) -> DialogButton:
        for b in self.buttons:
            if b.label == label:
                return b
        raise KeyError(f"no button labelled {label!r}")


class DialogPresenter(Protocol):
    def show(self, dialog: Dialog) -> None:
        ...

    def close(self) -> bool:
        """Close the current dialog. Returns False when none was showing."""
        ...

    def is_showing(self) -> bool:
        ...


class HeadlessDialogPresenter:
    """
    Presenter without a UI toolkit: keeps the current dialog and a history,
    and lets callers press buttons or fill fields programmatically.
    """

    def __init__(self):
        self.current: Optional[Dialog] = None
        self.history: List[Dialog] = []

    def show(self, dialog: Dialog) -> None:
        self.close()
        logger.debug(f"Dialog: {dialog.message}")
        self.current = dialog
        self.history.append(dialog)

    def close(self) -> bool:
        dialog = self.current
        if dialog is None:
            return False
        self.current = None
        if dialog.on_close is not None:
            dialog.on_close(dialog)
        return True

    def is_showing(self) -> bool:
        return self.current is not None

    def fill(self, name: str, value: str) -> None:
        if self.current is None:
            raise RuntimeError("no dialog showing")
        self.current.fields[name] = value

    def press(self, label: str) -> None:
        """Every button closes its dialog before running its action."""
        if self.current is None:
            raise RuntimeError("no dialog showing")
        button = self.current.button(label)
        self.close()
        if button.action is not None:
            button.action()
