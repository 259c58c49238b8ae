"""Upload Receiver.

A small FastAPI service that accepts multipart uploads, stores them in a
local directory, lists them on a web page and pushes live refresh
notifications to connected browsers over server-sent events.

Modules:
    - uploads: filename sanitizing, on-disk storage and the upload/download routes
    - events: subscriber registry, debouncer, directory watcher and the SSE route
    - pages: the HTML listing page
    - client: httpx helper for submitting files to a receiver
"""

__version__ = "0.1.0"
