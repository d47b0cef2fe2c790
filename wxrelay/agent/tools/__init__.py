"""Agent tools module."""

from wxrelay.agent.tools.base import Tool, ToolContext, ToolDescriptor
from wxrelay.agent.tools.chat import SummarizeChatTool
from wxrelay.agent.tools.factory import create_default_registry
from wxrelay.agent.tools.registry import (
    ToolRegistry,
    ToolRegistryFrozenError,
    select_tool_call,
    serialize_result,
)
from wxrelay.agent.tools.web import ReadUrlTool, SearchInternetTool, TodayNewsTool

__all__ = [
    "Tool",
    "ToolContext",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolRegistryFrozenError",
    "select_tool_call",
    "serialize_result",
    "SearchInternetTool",
    "ReadUrlTool",
    "TodayNewsTool",
    "SummarizeChatTool",
    "create_default_registry",
]
