"""HTML listing page."""
