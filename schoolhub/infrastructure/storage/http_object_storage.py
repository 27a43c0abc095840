from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from schoolhub.domain.errors import ImageUploadFailed
from schoolhub.domain.ports.image_storage import ImageStoragePort

logger = logging.getLogger(__name__)


class HttpObjectStorage(ImageStoragePort):
    """
    Bucket storage behind an HTTP object API:

        POST {base_url}/object/{bucket}/{name}         upload
        GET  {base_url}/object/public/{bucket}/{name}  public read
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        *,
        api_key: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._api_key = api_key
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    def public_url(self, name: str) -> str:
        return f"{self._base_url}/object/public/{self._bucket}/{name}"

    def _headers(self, content_type: str) -> Dict[str, str]:
        headers = {"Content-Type": content_type, "x-upsert": "false"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
            headers["apikey"] = self._api_key
        return headers

    async def upload(self, name: str, content: bytes, content_type: str) -> str:
        url = f"{self._base_url}/object/{self._bucket}/{name}"
        try:
            resp = await self._client.post(
                url, content=content, headers=self._headers(content_type)
            )
        except httpx.HTTPError as e:
            raise ImageUploadFailed(f"storage HTTP error: {e}") from e

        if not resp.is_success:
            raise ImageUploadFailed(
                f"storage responded {resp.status_code}: {resp.text[:200]}"
            )

        logger.info(
            "image uploaded",
            extra={"bucket": self._bucket, "object": name, "bytes": len(content)},
        )
        return self.public_url(name)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
