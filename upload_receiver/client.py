"""Client helper for submitting a file to an upload receiver.

Usage:
    from upload_receiver.client import UploadableAsset, upload_asset

    result = upload_asset(
        "http://192.168.1.20:3400/upload",
        UploadableAsset(path="photo.jpg", content_type="image/jpeg"),
        extra_fields={"note": "kitchen"},
    )
    print(result["files"][0]["savedAs"])
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
# Uploads over slow links can take a long time
DEFAULT_TIMEOUT_SECONDS = 120.0


class UploadFailedError(Exception):
    """Raised when the receiver answers with a non-success status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        if body:
            message = f"Upload failed ({status_code}): {body}"
        else:
            message = f"Upload failed with status {status_code}"
        super().__init__(message)


@dataclass
class UploadableAsset:
    """A local file to upload.

    Attributes:
        path: File on disk.
        name: Filename sent to the receiver (defaults to the path's name).
        content_type: MIME type of the part (defaults to octet-stream).
    """
    path: Union[str, Path]
    name: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.name or Path(self.path).name


def _read_body_safely(response: httpx.Response) -> str:
    try:
        return response.text
    except Exception as e:
        logger.warning(f"Unable to read response body: {e}")
        return ""


def upload_asset(
    url: str,
    asset: UploadableAsset,
    field_name: str = "file",
    extra_fields: Optional[Dict[str, str]] = None,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Dict[str, Any]:
    """Send *asset* as ``multipart/form-data`` and return the JSON reply.

    Args:
        url: Receiver upload endpoint, e.g. ``http://host:3400/upload``.
        asset: The file to send.
        field_name: Multipart field name for the file part.
        extra_fields: Text fields sent alongside the file.
        client: Existing httpx client to reuse. A temporary one is created
            (and closed) otherwise.
        timeout: Request timeout in seconds for a temporary client.

    Returns:
        The decoded response body.

    Raises:
        UploadFailedError: If the receiver responds with a non-2xx status.
        httpx.HTTPError: On transport failures.
    """
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        with Path(asset.path).open("rb") as fh:
            files = {
                field_name: (asset.filename, fh, asset.content_type or DEFAULT_CONTENT_TYPE),
            }
            response = http.post(url, data=extra_fields or {}, files=files)
    finally:
        if owns_client:
            http.close()

    if not response.is_success:
        raise UploadFailedError(response.status_code, _read_body_safely(response))

    logger.info(f"Uploaded {asset.filename} to {url} ({response.status_code})")
    return response.json()
