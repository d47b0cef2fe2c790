"""Factory for the relay's tool registry."""

from wxrelay.agent.tools.chat import SummarizeChatTool
from wxrelay.agent.tools.registry import ToolRegistry
from wxrelay.agent.tools.web import DEFAULT_NEWS_URL, ReadUrlTool, SearchInternetTool, TodayNewsTool
from wxrelay.history.store import HistoryStore
from wxrelay.services.search import SearchService
from wxrelay.services.url_reader import URLReaderService


def create_default_registry(
    search: SearchService,
    reader: URLReaderService,
    history: HistoryStore,
    news_url: str = DEFAULT_NEWS_URL,
) -> ToolRegistry:
    """Create and freeze the registry with the four built-in tools.

    Args:
        search: Search backend for ``search_internet``.
        reader: Content extractor for ``read_url`` and ``get_today_news``.
        history: History store for ``summarize_chat``.
        news_url: Fixed endpoint for ``get_today_news``.

    Returns:
        A frozen ToolRegistry.
    """
    registry = ToolRegistry()
    registry.register(SearchInternetTool(search))
    registry.register(ReadUrlTool(reader))
    registry.register(TodayNewsTool(reader, news_url))
    registry.register(SummarizeChatTool(history))
    registry.freeze()
    return registry
