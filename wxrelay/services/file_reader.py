"""Summarize files sent in direct chats."""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from wxrelay.bus.events import Attachment
from wxrelay.services.extract import TEXT_EXTENSIONS, html_to_text, pdf_to_text, truncate

if TYPE_CHECKING:
    from wxrelay.providers.base import LLMProvider

FILE_SUMMARY_INSTRUCTION = (
    "你是一个文件阅读助手。请用中文概括用户发送的文件内容，先用一句话说明文件主题，"
    "再列出三到五条要点。"
)


class FileReaderService:
    """Extract text from an attachment and reply with a short summary."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_chars: int = 12000,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.provider = provider
        self.model = model
        self.max_chars = max_chars
        self.timeout = timeout
        self._client = client

    async def handle_file(self, attachment: Attachment) -> str:
        """Produce the reply for a file message. Never raises."""
        logger.info(f"Reading file attachment: {attachment.name}")
        try:
            suffix = Path(attachment.name).suffix.lower()
            if suffix != ".pdf" and suffix not in TEXT_EXTENSIONS:
                return f"暂不支持读取该类型的文件：{attachment.name}"

            data = await self._load_bytes(attachment)
            text = await self._extract_text(data, suffix)
            if not text.strip():
                return f"文件《{attachment.name}》中没有可读取的文字内容。"

            text, truncated = truncate(text, self.max_chars)
            note = "（内容过长，仅截取前半部分）" if truncated else ""
            response = await self.provider.chat(
                messages=[
                    {"role": "system", "content": FILE_SUMMARY_INSTRUCTION},
                    {"role": "user", "content": f"文件名：{attachment.name}{note}\n\n{text}"},
                ],
                model=self.model,
            )
            if response.is_error:
                raise RuntimeError(response.content or "summary request failed")
            return response.content or ""
        except Exception as e:
            logger.error(f"File handling failed for {attachment.name}: {e}")
            return f"文件读取失败: {e}"

    async def _load_bytes(self, attachment: Attachment) -> bytes:
        if attachment.data is not None:
            if isinstance(attachment.data, str):
                return base64.b64decode(attachment.data)
            return attachment.data
        if attachment.path:
            return await asyncio.to_thread(Path(attachment.path).expanduser().read_bytes)
        if attachment.url:
            if self._client is not None:
                response = await self._client.get(attachment.url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(attachment.url, follow_redirects=True)
            response.raise_for_status()
            return response.content
        raise ValueError("attachment has no path, data or url")

    async def _extract_text(self, data: bytes, suffix: str) -> str:
        if suffix == ".pdf":
            text, _pages = await asyncio.to_thread(pdf_to_text, data)
            return text
        text = data.decode("utf-8", errors="replace")
        if suffix in (".html", ".htm"):
            return html_to_text(text)
        return text
