"""Pydantic schemas for the upload store and its HTTP surface.

This module defines:
- UploadedFile: a file currently present in the store directory
- StoredFile: one file part written by a single upload request
- UploadOutcome: everything a multipart submission produced
- UploadResponse: JSON body returned by POST /upload

Wire models use camelCase field names because browsers and the mobile
client consume them directly.
"""
from typing import Dict, List

from pydantic import BaseModel, Field

# Chunk size used when streaming a file part to disk
CHUNK_SIZE = 1024 * 1024


class UploadedFile(BaseModel):
    """A regular file in the store directory.

    Built from a directory scan; never mutated and never cached.
    """
    name: str = Field(..., description="On-disk filename")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")
    modified_at: float = Field(..., description="Modification time (Unix seconds)")


class StoredFile(BaseModel):
    """A file part written during one upload."""
    field: str = Field(..., description="Multipart field name")
    savedAs: str = Field(..., description="Generated on-disk filename")
    originalName: str = Field(..., description="Filename supplied by the client")
    size: int = Field(..., ge=0, description="Bytes written")


class UploadOutcome(BaseModel):
    """Result of saving one multipart submission."""
    stored: List[StoredFile] = Field(default_factory=list)
    fields: Dict[str, List[str]] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True when at least one file part was stored."""
        return len(self.stored) > 0


class UploadResponse(BaseModel):
    """Response body for POST /upload.

    ``ok`` reports that the request was understood. The HTTP status
    (200 vs 400) reports whether any file was actually stored.
    """
    ok: bool = True
    message: str
    files: List[StoredFile] = Field(default_factory=list)
    fields: Dict[str, List[str]] = Field(default_factory=dict)
    directory: str
