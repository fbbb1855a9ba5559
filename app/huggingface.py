import logging
from typing import Any, Dict, List

import httpx

from .errors import CatalogError


logger = logging.getLogger("uvicorn.error")

SOURCE_NAME = "Hugging Face"
USER_AGENT = "metadata-explorer/0.1"


class HuggingFaceCatalog:
    def __init__(self, base_url: str = "https://huggingface.co", limit: int = 15, timeout: float = 20.0):
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        # The Hub may block requests without a User-Agent.
        self.client = httpx.AsyncClient(timeout=timeout, headers={"User-Agent": USER_AGENT})

    async def search(self, keywords: str) -> List[Dict[str, Any]]:
        params = {"search": keywords, "limit": self.limit, "full": "true"}
        try:
            resp = await self.client.get(f"{self.base_url}/api/datasets", params=params)
        except httpx.RequestError as exc:
            logger.error("Error making request to Hugging Face API: %s", exc)
            raise CatalogError(SOURCE_NAME) from exc
        if resp.status_code != 200:
            logger.error("Hugging Face API responded with status code: %s", resp.status_code)
            raise CatalogError(SOURCE_NAME, details={"status_code": resp.status_code})
        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("Failed to parse JSON from Hugging Face API: %s", exc)
            raise CatalogError(SOURCE_NAME) from exc
        if not isinstance(data, list):
            logger.error("Hugging Face API did not return the expected array format")
            raise CatalogError(SOURCE_NAME)
        return data

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()
