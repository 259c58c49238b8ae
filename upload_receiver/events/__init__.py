"""Live update module: subscriber registry, debouncer, watcher and SSE route."""
