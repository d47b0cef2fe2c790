"""Tool registry and dispatcher."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from wxrelay.agent.outcome import Failed, FailureKind, Ok, Outcome
from wxrelay.agent.tools.base import Tool, ToolContext, ToolDescriptor
from wxrelay.providers.base import ToolCallRequest


class ToolRegistryFrozenError(RuntimeError):
    """Raised when a tool is registered after the registry was frozen."""


def select_tool_call(tool_calls: list[ToolCallRequest]) -> ToolCallRequest | None:
    """First tool call wins.

    A turn dispatches at most one tool: the first call in the model's list.
    Any further calls are ignored entirely.
    """
    if not tool_calls:
        return None
    if len(tool_calls) > 1:
        ignored = ", ".join(tc.name for tc in tool_calls[1:])
        logger.info(f"Model requested {len(tool_calls)} tool calls; ignoring: {ignored}")
    return tool_calls[0]


def no_handler_result(name: str) -> dict[str, str]:
    return {"error": f"No handler for tool: {name}"}


def serialize_result(result: Any) -> str:
    """Serialize a tool result for the ``tool`` message."""
    return json.dumps(result, ensure_ascii=False, default=str)


class ToolRegistry:
    """
    Process-wide mapping from tool name to tool.

    Tools are registered once at startup; :meth:`freeze` then locks the
    registry so the advertised schema never changes while serving.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        self._definitions: list[dict[str, Any]] | None = None

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        if self._frozen:
            raise ToolRegistryFrozenError(f"Cannot register {tool.name}: registry is frozen")
        self._tools[tool.name] = tool
        self._definitions = None

    def freeze(self) -> None:
        self._frozen = True

    def descriptors(self) -> list[ToolDescriptor]:
        return [tool.descriptor for tool in self._tools.values()]

    def get_definitions(self) -> list[dict[str, Any]]:
        """Tool schema sent with every routing completion."""
        if self._definitions is None:
            self._definitions = [d.to_schema() for d in self.descriptors()]
        return self._definitions

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    async def dispatch(self, call: ToolCallRequest, context: ToolContext) -> Outcome[Any]:
        """
        Execute a tool call.

        Unknown tools yield an explicit "no handler" result so the turn can
        still complete. Argument errors and collaborator exceptions are
        returned as a tool failure; nothing is raised.
        """
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning(f"No handler for tool call: {call.name}")
            return Ok(no_handler_result(call.name))

        try:
            args = call.parse_arguments()
            logger.info(f"Dispatching tool {call.name} for {context.conversation_id}: {args}")
            result = await tool.execute(context, **args)
        except Exception as e:
            logger.error(f"Tool execution failed: {call.name}: {e}")
            return Failed(FailureKind.TOOL, str(e) or type(e).__name__)

        return Ok(result)
