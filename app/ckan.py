import logging
from typing import Any, Dict, List

import httpx

from .errors import CatalogError


logger = logging.getLogger("uvicorn.error")

SOURCE_NAME = "data.gov (CKAN)"


class CkanCatalog:
    def __init__(self, base_url: str = "https://catalog.data.gov", rows: int = 9, timeout: float = 20.0):
        self.base_url = base_url.rstrip("/")
        self.rows = rows
        self.client = httpx.AsyncClient(timeout=timeout)

    async def search(self, keywords: str) -> List[Dict[str, Any]]:
        result = await self._action("package_search", {"q": keywords, "rows": self.rows})
        items = result.get("results") if isinstance(result, dict) else None
        if not isinstance(items, list):
            logger.error("CKAN package_search returned no result list")
            raise CatalogError(SOURCE_NAME)
        return items

    async def get_details(self, dataset_id: str) -> Dict[str, Any]:
        result = await self._action("package_show", {"id": dataset_id})
        if not isinstance(result, dict):
            logger.error("CKAN package_show returned no result object for %s", dataset_id)
            raise CatalogError(SOURCE_NAME)
        return result

    async def _action(self, action: str, params: Dict[str, Any]) -> Any:
        """Call a CKAN action endpoint and unwrap its ``result`` envelope."""
        url = f"{self.base_url}/api/3/action/{action}"
        try:
            resp = await self.client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("CKAN %s responded with status %s", action, exc.response.status_code)
            raise CatalogError(SOURCE_NAME) from exc
        except httpx.RequestError as exc:
            logger.error("CKAN %s request failed: %s", action, exc)
            raise CatalogError(SOURCE_NAME) from exc
        except ValueError as exc:
            logger.error("CKAN %s returned malformed JSON: %s", action, exc)
            raise CatalogError(SOURCE_NAME) from exc
        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            logger.error("CKAN API returned an error for %s: %s", action, error)
            raise CatalogError(SOURCE_NAME)
        return data.get("result")

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()
