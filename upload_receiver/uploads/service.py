"""Upload storage service.

Handles writing multipart file parts to disk and reading the store back.
Files are stored in: <uploads_dir>/<epoch-millis>-<sanitized-name>
"""
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Iterable, List, Tuple, Union

from starlette.datastructures import UploadFile

from .sanitizer import FALLBACK_NAME, is_safe_name, sanitize_filename
from .schemas import CHUNK_SIZE, StoredFile, UploadedFile, UploadOutcome

logger = logging.getLogger(__name__)

FormPart = Tuple[str, Union[str, UploadFile]]


class UploadStoreError(Exception):
    """Base class for store lookup errors."""


class InvalidUploadName(UploadStoreError):
    """The requested name fails the safe-name check."""


class UploadNotFound(UploadStoreError):
    """No regular file with the requested name exists."""


class UploadStore:
    """Service for persisting and listing uploaded files.

    The directory is the sole source of truth; the store keeps no index.
    It is created (recursively) on construction, and failure to create it
    propagates to the caller.
    """

    def __init__(self, directory: Union[str, Path], clock: Callable[[], float] = time.time):
        """Initialize the store and ensure the directory exists."""
        self._directory = Path(directory).resolve()
        self._clock = clock
        self._ensure_upload_dir()

    @property
    def directory(self) -> Path:
        return self._directory

    def _ensure_upload_dir(self) -> None:
        """Ensure the upload directory exists."""
        self._directory.mkdir(parents=True, exist_ok=True)

    async def save_upload(self, parts: Iterable[FormPart]) -> UploadOutcome:
        """Persist every file part of a decoded multipart submission.

        Text fields are collected under their field name in submission
        order. File parts are streamed to disk under a timestamp-prefixed
        sanitized name.

        Args:
            parts: (field name, value) pairs in submission order. Values are
                either plain strings or Starlette ``UploadFile`` objects.

        Returns:
            UploadOutcome listing stored files and received text fields.
            ``outcome.ok`` is False when no file part was present.

        Raises:
            OSError: If a file cannot be written. Files stored earlier in
                the same submission are kept.
        """
        outcome = UploadOutcome()
        for field, value in parts:
            if isinstance(value, str):
                outcome.fields.setdefault(field, []).append(value)
                continue

            original_name = value.filename or FALLBACK_NAME
            saved_as, size = await self._write_part(value)
            outcome.stored.append(
                StoredFile(
                    field=field,
                    savedAs=saved_as,
                    originalName=original_name,
                    size=size,
                )
            )
            logger.info(f"Saved upload: {saved_as} ({size} bytes) from field '{field}'")
        return outcome

    async def _write_part(self, upload: Any) -> Tuple[str, int]:
        """Stream one file part into a newly created file.

        The file is opened with exclusive create. If the timestamped name is
        taken the millisecond prefix is advanced until a free name is found.
        """
        safe_name = sanitize_filename(upload.filename)
        millis = int(self._clock() * 1000)
        while True:
            saved_as = f"{millis}-{safe_name}"
            path = self._directory / saved_as
            try:
                handle = path.open("xb")
            except FileExistsError:
                millis += 1
                continue
            break

        size = 0
        try:
            with handle:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    handle.write(chunk)
                    size += len(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        return saved_as, size

    def list_uploads(self) -> List[UploadedFile]:
        """List stored files, most recently modified first.

        Entries that are not regular files or whose names fail the
        safe-name check are skipped, as are entries removed between the
        scan and their stat. Any directory read failure yields an empty
        list.
        """
        files: List[UploadedFile] = []
        try:
            with os.scandir(self._directory) as entries:
                for entry in entries:
                    if not is_safe_name(entry.name):
                        continue
                    try:
                        if not entry.is_file(follow_symlinks=False):
                            continue
                        stat = entry.stat(follow_symlinks=False)
                    except OSError as exc:
                        logger.debug(f"Skipping {entry.name}: {exc}")
                        continue
                    files.append(
                        UploadedFile(
                            name=entry.name,
                            size_bytes=stat.st_size,
                            modified_at=stat.st_mtime,
                        )
                    )
        except OSError as exc:
            logger.warning(f"Could not list uploads in {self._directory}: {exc}")
            return []

        # Name as tie-breaker keeps repeated listings identical
        files.sort(key=lambda f: (f.modified_at, f.name), reverse=True)
        return files

    def resolve_upload(self, name: str) -> Path:
        """Return the on-disk path of a stored file for streaming.

        Args:
            name: On-disk filename, already URL-decoded.

        Raises:
            InvalidUploadName: If *name* fails the safe-name check. Nothing
                is touched on disk in that case.
            UploadNotFound: If no regular file with that name exists.
        """
        if not is_safe_name(name):
            raise InvalidUploadName(name)

        path = self._directory / name
        if not path.is_file():
            raise UploadNotFound(name)
        return path
