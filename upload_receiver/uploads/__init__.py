"""Upload storage module.

Files are written to a single flat directory as ``<epoch-millis>-<name>``
where ``<name>`` is the sanitized client filename. The directory is the
only source of truth: every listing re-reads it.
"""
