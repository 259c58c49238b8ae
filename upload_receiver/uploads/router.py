"""FastAPI router for upload endpoints."""
import logging
import mimetypes

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse

from .schemas import UploadResponse
from .service import InvalidUploadName, UploadNotFound, UploadStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


def _store(request: Request) -> UploadStore:
    return request.app.state.store


def _failure(store: UploadStore, message: str, status_code: int) -> JSONResponse:
    body = UploadResponse(ok=False, message=message, directory=str(store.directory))
    return JSONResponse(body.model_dump(), status_code=status_code)


@router.post("/upload")
async def receive_upload(request: Request) -> JSONResponse:
    """Store every file part of a ``multipart/form-data`` submission.

    Text fields are echoed back grouped by name. A submission without any
    file part is answered with 400 but still reports its text fields.

    Returns:
        UploadResponse JSON, 200 if at least one file was stored, else 400.

    Raises:
        Nothing: malformed bodies map to 400 and disk failures to 500.
    """
    store = _store(request)

    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Rejected malformed multipart body: {e}")
        return _failure(store, f"Could not parse multipart body: {e}", 400)

    try:
        outcome = await store.save_upload(form.multi_items())
    except OSError as e:
        logger.error(f"Upload failed: {e}")
        # Parts written before the failure stay on disk
        request.app.state.debouncer.trigger()
        return _failure(store, f"Upload failed: {e}", 500)
    finally:
        await form.close()

    if outcome.ok:
        request.app.state.debouncer.trigger()

    body = UploadResponse(
        ok=True,
        message="Files saved successfully." if outcome.ok else "No files detected in upload.",
        files=outcome.stored,
        fields=outcome.fields,
        directory=str(store.directory),
    )
    logger.info(
        f"Upload received: {len(body.files)} file(s), "
        f"fields={sorted(body.fields)}"
    )
    return JSONResponse(body.model_dump(), status_code=200 if outcome.ok else 400)


@router.get("/uploads/{name:path}")
async def download_upload(request: Request, name: str):
    """Stream a stored file back with an inferred content type.

    Args:
        name: On-disk filename (URL-decoded by the framework).

    Returns:
        The file bytes, 400 for an unsafe name or 404 if it does not exist.
    """
    try:
        path = _store(request).resolve_upload(name)
    except InvalidUploadName:
        logger.warning(f"Rejected unsafe filename: {name!r}")
        return PlainTextResponse("Invalid filename", status_code=400)
    except UploadNotFound:
        return PlainTextResponse("Not found", status_code=404)

    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return FileResponse(path=path, media_type=media_type)
