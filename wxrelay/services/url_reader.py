"""Fetch a URL and extract its readable content."""

from typing import Any

import httpx
from loguru import logger

from wxrelay.services.extract import html_title, html_to_text, pdf_to_text, truncate

USER_AGENT = "Mozilla/5.0 (compatible; wxrelay/0.1)"


class URLReaderService:
    """Read webpages, PDFs, JSON APIs and plain text over HTTP."""

    def __init__(
        self,
        max_chars: int = 8000,
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.max_chars = max_chars
        self.timeout = timeout
        self._client = client

    async def _fetch(self, url: str) -> httpx.Response:
        headers = {"User-Agent": USER_AGENT}
        if self._client is not None:
            return await self._client.get(url, headers=headers, follow_redirects=True)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, headers=headers, follow_redirects=True)

    async def read_url(self, url: str) -> dict[str, Any]:
        """
        Fetch ``url`` and return its content.

        Returns:
            ``{"url", "title", "content", "truncated"}``; for JSON responses
            ``content`` holds the decoded document instead of text.

        Raises:
            ValueError: If the URL is not http(s).
            httpx.HTTPError: On network or HTTP status errors.
        """
        if not url or not url.startswith(("http://", "https://")):
            raise ValueError(f"Unsupported URL: {url!r}")

        logger.info(f"Reading URL: {url}")
        response = await self._fetch(url)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "").lower()
        final_url = str(response.url)

        if "application/pdf" in content_type or final_url.lower().endswith(".pdf"):
            text, pages = pdf_to_text(response.content)
            text, truncated = truncate(text, self.max_chars)
            return {"url": final_url, "title": f"PDF ({pages} pages)", "content": text, "truncated": truncated}

        if "json" in content_type:
            return {"url": final_url, "title": "", "content": response.json(), "truncated": False}

        body = response.text
        if "html" in content_type or body.lstrip()[:15].lower().startswith(("<!doctype", "<html")):
            text, truncated = truncate(html_to_text(body), self.max_chars)
            return {"url": final_url, "title": html_title(body), "content": text, "truncated": truncated}

        text, truncated = truncate(body.strip(), self.max_chars)
        return {"url": final_url, "title": "", "content": text, "truncated": truncated}
