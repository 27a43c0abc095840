from __future__ import annotations

from typing import Protocol


class ImageStoragePort(Protocol):
    async def upload(self, name: str, content: bytes, content_type: str) -> str:
        """Upload an object and return its public URL. Raises ImageUploadFailed."""
