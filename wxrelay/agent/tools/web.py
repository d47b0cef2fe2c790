"""Internet tools: search, URL reading and the daily news digest."""

from typing import Any

from wxrelay.agent.tools.base import Tool, ToolContext
from wxrelay.services.search import SearchService
from wxrelay.services.url_reader import URLReaderService

DEFAULT_NEWS_URL = "https://api.lbbb.cc/api/60miao"


class SearchInternetTool(Tool):
    """Search the internet through the configured SearXNG instance."""

    def __init__(self, search: SearchService):
        self._search = search

    @property
    def name(self) -> str:
        return "search_internet"

    @property
    def description(self) -> str:
        return "Search the internet for current information using SearXNG"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "keywords": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Search keywords list. Example: ['Python', 'machine learning', 'latest developments']"
                }
            },
            "required": ["keywords"]
        }

    async def execute(self, context: ToolContext, keywords: list[str] | str = (), **kwargs: Any) -> Any:
        return await self._search.search(keywords)


class ReadUrlTool(Tool):
    """Read a webpage or PDF."""

    def __init__(self, reader: URLReaderService):
        self._reader = reader

    @property
    def name(self) -> str:
        return "read_url"

    @property
    def description(self) -> str:
        return "Read and extract content from a URL (webpage or PDF)"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "The URL to read (supports webpages and PDFs)"
                }
            },
            "required": ["url"]
        }

    async def execute(self, context: ToolContext, url: str = "", **kwargs: Any) -> Any:
        return await self._reader.read_url(url)


class TodayNewsTool(Tool):
    """Fetch today's news digest from a fixed endpoint. Arguments are ignored."""

    def __init__(self, reader: URLReaderService, news_url: str = DEFAULT_NEWS_URL):
        self._reader = reader
        self.news_url = news_url

    @property
    def name(self) -> str:
        return "get_today_news"

    @property
    def description(self) -> str:
        return "Get today's news summary, only used when the message includes the word news or '新闻'"

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    async def execute(self, context: ToolContext, **kwargs: Any) -> Any:
        return await self._reader.read_url(self.news_url)
