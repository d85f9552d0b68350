"""Filename generation from user patterns."""

from __future__ import annotations

import getpass
import re
import socket
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePath
from typing import Dict, Optional

_PLACEHOLDER = re.compile(r"\$\{(\w+)\}")
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


@dataclass(slots=True)
class CaptureDetails:
    """Information about the capture used when naming the upload."""

    title: str = "screenshot"
    captured_at: datetime = field(default_factory=datetime.now)


def _pattern_values(details: CaptureDetails) -> Dict[str, str]:
    moment = details.captured_at
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = ""
    return {
        "title": details.title or "",
        "YYYY": f"{moment.year:04d}",
        "MM": f"{moment.month:02d}",
        "DD": f"{moment.day:02d}",
        "hh": f"{moment.hour:02d}",
        "mm": f"{moment.minute:02d}",
        "ss": f"{moment.second:02d}",
        "user": user,
        "hostname": socket.gethostname(),
    }


def sanitize_filename(name: str) -> str:
    """Replace characters that are not allowed in file names."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip(" .")
    return cleaned or "screenshot"


def filename_from_pattern(
    pattern: str,
    extension: str,
    details: Optional[CaptureDetails] = None,
) -> str:
    """Expand ${...} placeholders and append the extension.

    Unknown placeholders are left untouched. Directory components produced by
    the pattern are dropped, only the final name is kept.
    """
    values = _pattern_values(details or CaptureDetails())

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key in values:
            return sanitize_filename(values[key]) if values[key] else ""
        return match.group(0)

    expanded = _PLACEHOLDER.sub(_replace, pattern or "")
    basename = PurePath(expanded.replace("\\", "/")).name
    return f"{sanitize_filename(basename)}.{extension.lstrip('.')}"
