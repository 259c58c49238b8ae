"""Rendering helpers for the listing page.

The template uses simple ``{{ name }}`` placeholder substitution; every
value inserted into it is HTML-escaped here first.
"""
import html
from datetime import datetime
from pathlib import Path
from typing import Iterable
from urllib.parse import quote

from ..uploads.schemas import UploadedFile

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_EMPTY_ROW = '        <tr><td colspan="3">No files uploaded yet.</td></tr>'


def format_bytes(num: int) -> str:
    """Human-readable size, e.g. ``512 B`` or ``1.5 KB``."""
    if num < 1024:
        return f"{num} B"
    value = float(num)
    for unit in ["KB", "MB", "GB", "TB"]:
        value /= 1024.0
        if value < 1024.0:
            return f"{value:.1f} {unit}"
    return f"{value / 1024.0:.1f} PB"


def format_timestamp(ts: float) -> str:
    """Local time as ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def render_row(upload: UploadedFile) -> str:
    href = "/uploads/" + quote(upload.name)
    name = html.escape(upload.name)
    return (
        f'        <tr><td><a href="{html.escape(href)}">{name}</a></td>'
        f'<td class="size">{format_bytes(upload.size_bytes)}</td>'
        f"<td>{format_timestamp(upload.modified_at)}</td></tr>"
    )


def render_listing(files: Iterable[UploadedFile]) -> str:
    """Table rows for *files*, or a single empty-state row."""
    rows = [render_row(upload) for upload in files]
    return "\n".join(rows) if rows else _EMPTY_ROW


def render_page(files: Iterable[UploadedFile], directory: str) -> str:
    template = (TEMPLATES_DIR / "index.html").read_text(encoding="utf-8")
    content = template.replace("{{ file_rows }}", render_listing(files))
    return content.replace("{{ directory }}", html.escape(directory))
