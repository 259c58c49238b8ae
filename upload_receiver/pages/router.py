"""Listing page router: GET / serves the upload form and current files."""
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from .render import render_page

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
async def index_page(request: Request) -> HTMLResponse:
    """Serve the upload form with the live file listing.

    The listing is re-read from disk on every request. The page subscribes
    to ``/events`` and re-fetches itself on each ``refresh``.
    """
    store = request.app.state.store
    content = render_page(store.list_uploads(), str(store.directory))
    return HTMLResponse(content=content)
