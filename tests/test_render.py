"""Tests for listing page rendering helpers."""
import pytest

from upload_receiver.pages.render import format_bytes, render_listing, render_page, render_row
from upload_receiver.uploads.schemas import UploadedFile


@pytest.mark.parametrize(
    "size, expected",
    [
        (0, "0 B"),
        (1023, "1023 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (5 * 1024 ** 2, "5.0 MB"),
        (3 * 1024 ** 3, "3.0 GB"),
    ],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


def test_row_links_to_download_and_escapes():
    row = render_row(UploadedFile(name="a<b>.txt", size_bytes=2048, modified_at=0))
    assert 'href="/uploads/a%3Cb%3E.txt"' in row
    assert "a&lt;b&gt;.txt" in row
    assert "2.0 KB" in row


def test_empty_listing():
    assert "No files uploaded yet." in render_listing([])


def test_listing_keeps_order():
    files = [
        UploadedFile(name="2-new.txt", size_bytes=1, modified_at=2000),
        UploadedFile(name="1-old.txt", size_bytes=1, modified_at=1000),
    ]
    rows = render_listing(files)
    assert rows.index("2-new.txt") < rows.index("1-old.txt")


def test_page_fills_placeholders():
    page = render_page([], "/srv/<uploads>")
    assert "{{" not in page
    assert "/srv/&lt;uploads&gt;" in page
