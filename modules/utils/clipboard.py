"""Clipboard access."""

from __future__ import annotations

import pyperclip


class ClipboardError(RuntimeError):
    """Raised when the system clipboard cannot be written."""


def copy_to_clipboard(text: str) -> None:
    """Place text on the system clipboard."""
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as exc:
        raise ClipboardError(str(exc)) from exc
