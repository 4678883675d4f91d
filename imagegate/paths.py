"""Request path helpers: storage keys and embedded size directives."""

from __future__ import annotations

import re
from enum import Enum
from typing import NamedTuple, Optional, Tuple

DIRECTIVE_DELIMITER = "__"

_DIMENSION_RE = re.compile(r"[+-]?[0-9]+")


class ResizeMode(str, Enum):
    """How a size directive maps the image onto the requested box."""

    FIT_WITHIN = "fit"
    COVER_CROP = "crop"


_MODE_SEPARATORS: Tuple[Tuple[str, ResizeMode], ...] = (
    ("x", ResizeMode.FIT_WITHIN),
    ("z", ResizeMode.COVER_CROP),
)


class SizeDirective(NamedTuple):
    """Requested output size; a zero axis is unconstrained."""

    width: int
    height: int
    mode: ResizeMode


def resolve_path(url_path: str) -> Tuple[str, str]:
    """
    Split a URL path into the document name and its comma-joined folder key.

    Folder segments are trimmed, lower-cased and empty ones dropped. The leaf is
    only lower-cased, so a trailing slash yields an empty name.
    """
    segments = url_path.split("/")
    folders = [segment.strip().lower() for segment in segments[:-1] if segment.strip()]
    return segments[-1].lower(), ",".join(folders)


def file_extension(name: str) -> str:
    """Return the suffix starting at the last dot, or an empty string."""
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _parse_dimension(token: str) -> int:
    if not _DIMENSION_RE.fullmatch(token):
        return 0
    return max(0, int(token))


def parse_size_directive(raw_name: str) -> Tuple[str, Optional[SizeDirective]]:
    """
    Strip a ``__WxH`` or ``__WzH`` directive from a leaf name.

    ``x`` selects fit-within scaling and ``z`` a cover crop. A delimiter with any
    other content still strips the name but yields no directive. Unparseable
    dimensions become zero.
    """
    delimiter_pos = raw_name.rfind(DIRECTIVE_DELIMITER)
    if delimiter_pos <= 0:
        return raw_name, None

    extension = file_extension(raw_name).lower()
    basename = raw_name[: len(raw_name) - len(extension)]
    name = (raw_name[:delimiter_pos] + extension).lower()
    token = basename[delimiter_pos + len(DIRECTIVE_DELIMITER) :]

    for separator, mode in _MODE_SEPARATORS:
        if separator in token:
            parts = token.split(separator)
            width = _parse_dimension(parts[0])
            height = _parse_dimension(parts[1])
            return name, SizeDirective(width=width, height=height, mode=mode)

    return name, None
