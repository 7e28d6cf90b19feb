"""Blob storage interface for uploaded documents and rendered estimate PDFs."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol


class BlobStore(Protocol):
    """Pluggable object storage (S3, GCS, local disk...)."""

    def put(self, path: str, payload: bytes, content_type: str) -> str:
        """Store ``payload`` under ``path`` and return a URL for it."""
        ...


@dataclass(frozen=True)
class StoredBlob:
    path: str
    payload: bytes
    content_type: str


class InMemoryBlobStore:
    """Dict-backed BlobStore for development and tests."""

    def __init__(self, base_url: str = "memory://blobs") -> None:
        self._base_url = base_url.rstrip("/")
        self._lock = threading.Lock()
        self._blobs: dict[str, StoredBlob] = {}

    def put(self, path: str, payload: bytes, content_type: str) -> str:
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError(f"payload must be bytes, got {type(payload).__name__}")
        path = path.lstrip("/")
        with self._lock:
            self._blobs[path] = StoredBlob(path, bytes(payload), content_type)
        return f"{self._base_url}/{path}"

    def get(self, path: str) -> StoredBlob | None:
        with self._lock:
            return self._blobs.get(path.lstrip("/"))

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
