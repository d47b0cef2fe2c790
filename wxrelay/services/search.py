"""SearXNG search client."""

from typing import Any

import httpx
from loguru import logger


class SearchService:
    """Query a SearXNG instance through its JSON API."""

    def __init__(
        self,
        base_url: str,
        max_results: int = 5,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_results = max_results
        self.timeout = timeout
        self._client = client

    async def search(self, keywords: list[str] | str) -> list[dict[str, Any]]:
        """
        Search for the given keywords.

        Args:
            keywords: Keyword list (joined with spaces) or a single query.

        Returns:
            Up to ``max_results`` results with title, url and content.

        Raises:
            ValueError: If no keywords were given.
            httpx.HTTPError: On network or HTTP status errors.
        """
        if isinstance(keywords, str):
            keywords = [keywords]
        query = " ".join(k.strip() for k in keywords if k and k.strip())
        if not query:
            raise ValueError("No search keywords given")

        logger.info(f"Searching SearXNG for: {query}")
        params = {"q": query, "format": "json"}

        if self._client is not None:
            response = await self._client.get(f"{self.base_url}/search", params=params)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/search", params=params)
        response.raise_for_status()

        results = response.json().get("results", [])
        return [
            {
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "content": item.get("content", ""),
            }
            for item in results[: self.max_results]
        ]
