"""Filename sanitizing and validation."""
import re
from typing import Optional

FALLBACK_NAME = "upload.bin"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_SAFE_NAME = re.compile(r"[A-Za-z0-9._-]+")


def sanitize_filename(candidate: Optional[str]) -> str:
    """Map an arbitrary client-supplied filename to a filesystem-safe one.

    Every character outside ``[A-Za-z0-9._-]`` becomes ``_``. Absent or
    blank names fall back to ``upload.bin``.

    Examples:
        >>> sanitize_filename("my report (1).pdf")
        'my_report__1_.pdf'
        >>> sanitize_filename("   ")
        'upload.bin'
    """
    trimmed = (candidate or "").strip()
    if not trimmed:
        return FALLBACK_NAME
    safe = _UNSAFE_CHARS.sub("_", trimmed)
    return safe or FALLBACK_NAME


def is_safe_name(name: str) -> bool:
    """Return True if *name* may be served from or listed in the store.

    ``.`` and ``..`` match the character class but name directories.
    """
    if name in (".", ".."):
        return False
    return _SAFE_NAME.fullmatch(name) is not None
