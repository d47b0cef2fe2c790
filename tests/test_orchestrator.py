"""Tests for the two-phase conversation orchestrator."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from conftest import TEMPLATES, ScriptedProvider, text, tool_call, wants_tools
from wxrelay.agent.orchestrator import (
    PROMPT_SWITCHED_REPLY,
    UNABLE_TO_ANSWER_REPLY,
    ConversationOrchestrator,
    TurnState,
)
from wxrelay.agent.outcome import FailureKind
from wxrelay.agent.tools import create_default_registry
from wxrelay.agent.tools.web import DEFAULT_NEWS_URL
from wxrelay.providers.base import LLMResponse


@pytest.fixture
def reader():
    service = Mock()
    service.read_url = AsyncMock(
        return_value={"url": "https://example.com", "title": "Example", "content": "Example body", "truncated": False}
    )
    return service


@pytest.fixture
def search():
    service = Mock()
    service.search = AsyncMock(return_value=[])
    return service


def make_orchestrator(provider, history, prompts, search, reader):
    tools = create_default_registry(search, reader, history)
    return ConversationOrchestrator(provider, history, prompts, tools)


class TestPlainTurn:
    """Turns that need no tool."""

    @pytest.mark.asyncio
    async def test_reply_and_history(self, history, prompts, search, reader):
        provider = ScriptedProvider([text(None), text("你好！")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        result = await orchestrator.run_turn("你好", "room-1", "alice")

        assert result.failure is None
        assert result.reply == "你好！"
        assert result.states == [
            TurnState.START,
            TurnState.AWAITING_FIRST_COMPLETION,
            TurnState.AWAITING_FINAL_REPLY,
            TurnState.DONE,
        ]
        assert [(m.role, m.content) for m in history.get_context("room-1")] == [
            ("user", "你好"),
            ("assistant", "你好！"),
        ]

    @pytest.mark.asyncio
    async def test_first_call_sees_only_the_message(self, history, prompts, search, reader):
        """The routing completion gets the bare message and the tool schema."""
        history.append("room-1", "user", "earlier question")
        history.append("room-1", "assistant", "earlier answer")
        provider = ScriptedProvider([text(None), text("reply")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        await orchestrator.process_message("what now?", "room-1")

        first = provider.calls[0]
        assert first["messages"] == [{"role": "user", "content": "what now?"}]
        assert first["tools"] == orchestrator.tools.get_definitions()
        assert len(first["tools"]) == 4

    @pytest.mark.asyncio
    async def test_final_call_has_system_and_history(self, history, prompts, search, reader):
        history.append("room-1", "user", "earlier question")
        provider = ScriptedProvider([text(None), text("reply")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        await orchestrator.process_message("what now?", "room-1")

        final = provider.calls[1]
        assert final["tools"] is None
        assert final["messages"] == [
            {"role": "system", "content": TEMPLATES["default"]},
            {"role": "user", "content": "earlier question"},
            {"role": "user", "content": "what now?"},
            {"role": "user", "content": "what now?"},
        ]

    @pytest.mark.asyncio
    async def test_history_bound_applies_to_context(self, search, reader):
        from wxrelay.history.store import HistoryStore
        from wxrelay.prompts.selector import PromptSelector

        history = HistoryStore(max_length=4)
        prompts = PromptSelector(history, templates=TEMPLATES)
        provider = ScriptedProvider()
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        for i in range(5):
            await orchestrator.process_message(f"q{i}", "room-1")

        assert len(history.get_context("room-1")) == 4
        final_messages = provider.calls[-1]["messages"]
        # System prompt, at most max_length history entries, then the user message
        assert len(final_messages) == 6
        assert final_messages[-2] == {"role": "user", "content": "q4"}
        assert final_messages[-1] == {"role": "user", "content": "q4"}


class TestPromptSwitch:
    """Prompt switch commands."""

    @pytest.mark.asyncio
    async def test_switch_alone_short_circuits(self, history, prompts, search, reader):
        provider = ScriptedProvider()
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        reply = await orchestrator.process_message("/prompt translator", "room-1")

        assert reply == PROMPT_SWITCHED_REPLY
        assert provider.calls == []
        assert history.get_context("room-1") == []
        assert history.get_prompt("room-1") == "translator"

    @pytest.mark.asyncio
    async def test_switch_with_content_continues(self, history, prompts, search, reader):
        provider = ScriptedProvider([text(None), text("Hello")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        reply = await orchestrator.process_message("/prompt translator 你好", "room-1")

        assert reply == "Hello"
        assert provider.calls[0]["messages"] == [{"role": "user", "content": "你好"}]
        assert provider.calls[1]["messages"][0] == {"role": "system", "content": TEMPLATES["translator"]}
        assert history.get_context("room-1")[0].content == "你好"


class TestToolTurn:
    """Turns that dispatch a tool."""

    @pytest.mark.asyncio
    async def test_read_url_round_trip(self, history, prompts, search, reader):
        call = tool_call("read_url", '{"url": "https://example.com"}', call_id="call_abc")
        provider = ScriptedProvider([wants_tools(call), text("这是一个示例网站。")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        result = await orchestrator.run_turn("看看 https://example.com", "room-1")

        assert result.reply == "这是一个示例网站。"
        assert result.tool_name == "read_url"
        assert TurnState.AWAITING_TOOL_RESULT in result.states
        reader.read_url.assert_awaited_once_with("https://example.com")

        final = provider.calls[1]["messages"]
        assistant, tool_message = final[-2], final[-1]
        assert assistant["role"] == "assistant"
        assert assistant["tool_calls"][0]["id"] == "call_abc"
        assert assistant["tool_calls"][0]["function"]["name"] == "read_url"
        assert tool_message["role"] == "tool"
        assert tool_message["tool_call_id"] == "call_abc"
        assert json.loads(tool_message["content"])["content"] == "Example body"
        # The user message is already the last history entry
        assert final[-3] == {"role": "user", "content": "看看 https://example.com"}
        assert sum(1 for m in final if m["role"] == "user") == 1

    @pytest.mark.asyncio
    async def test_tool_exchange_not_stored(self, history, prompts, search, reader):
        call = tool_call("read_url", '{"url": "https://example.com"}')
        provider = ScriptedProvider([wants_tools(call), text("done")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        await orchestrator.process_message("read it", "room-1")

        assert [m.role for m in history.get_context("room-1")] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_tool_failure_is_contained(self, history, prompts, search, reader):
        """A failing tool ends the turn without a final completion."""
        reader.read_url.side_effect = RuntimeError("timeout")
        call = tool_call("read_url", '{"url": "https://down.example"}')
        provider = ScriptedProvider([wants_tools(call), text("never used")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        result = await orchestrator.run_turn("read https://down.example", "room-1")

        assert result.reply == "工具执行失败: timeout"
        assert result.failure.kind == FailureKind.TOOL
        assert len(provider.calls) == 1
        assert TurnState.AWAITING_FINAL_REPLY not in result.states
        assert result.states[-1] == TurnState.DONE
        assert [m.role for m in history.get_context("room-1")] == ["user"]

    @pytest.mark.asyncio
    async def test_only_first_tool_call_runs(self, history, prompts, search, reader):
        calls = [
            tool_call("read_url", '{"url": "https://a.example"}', call_id="a"),
            tool_call("search_internet", '{"keywords": ["b"]}', call_id="b"),
        ]
        provider = ScriptedProvider([wants_tools(*calls), text("ok")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        await orchestrator.process_message("do both", "room-1")

        reader.read_url.assert_awaited_once_with("https://a.example")
        search.search.assert_not_awaited()
        final = provider.calls[1]["messages"]
        assert [tc["id"] for tc in final[-2]["tool_calls"]] == ["a"]
        assert [m["tool_call_id"] for m in final if m["role"] == "tool"] == ["a"]

    @pytest.mark.asyncio
    async def test_news_request(self, history, prompts, search, reader):
        reader.read_url.return_value = {"url": DEFAULT_NEWS_URL, "title": "", "content": {"news": ["a", "b"]}, "truncated": False}
        provider = ScriptedProvider([wants_tools(tool_call("get_today_news")), text("今日新闻：a、b")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        reply = await orchestrator.process_message("今天有什么新闻", "room-1")

        assert reply == "今日新闻：a、b"
        reader.read_url.assert_awaited_once_with(DEFAULT_NEWS_URL)
        tool_message = provider.calls[1]["messages"][-1]
        assert json.loads(tool_message["content"])["content"] == {"news": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_unknown_tool_folded_into_final_call(self, history, prompts, search, reader):
        provider = ScriptedProvider([wants_tools(tool_call("make_coffee")), text("I can't do that.")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        result = await orchestrator.run_turn("coffee please", "room-1")

        assert result.failure is None
        assert result.reply == "I can't do that."
        tool_message = provider.calls[1]["messages"][-1]
        assert json.loads(tool_message["content"]) == {"error": "No handler for tool: make_coffee"}


class TestCompletionFailures:
    """Completion errors produce the fixed apology."""

    @pytest.mark.asyncio
    async def test_first_completion_error(self, history, prompts, search, reader):
        provider = ScriptedProvider([LLMResponse(content="Error calling LLM: 500", finish_reason="error")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        result = await orchestrator.run_turn("hi", "room-1")

        assert result.reply == UNABLE_TO_ANSWER_REPLY
        assert result.failure.kind == FailureKind.COMPLETION
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_final_completion_exception(self, history, prompts, search, reader):
        provider = ScriptedProvider([text(None), ConnectionError("reset")])
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)

        reply = await orchestrator.process_message("hi", "room-1")

        assert reply == UNABLE_TO_ANSWER_REPLY
        assert [m.role for m in history.get_context("room-1")] == ["user"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal_failure(self, history, prompts, search, reader):
        provider = ScriptedProvider()
        orchestrator = make_orchestrator(provider, history, prompts, search, reader)
        orchestrator.prompts = Mock()
        orchestrator.prompts.resolve_system_prompt.side_effect = KeyError("boom")

        result = await orchestrator.run_turn("hi", "room-1")

        assert result.reply == UNABLE_TO_ANSWER_REPLY
        assert result.failure.kind == FailureKind.INTERNAL
        assert result.states[-1] == TurnState.DONE
