"""Shared fixtures for wxrelay tests."""

import os

# Use litellm's bundled model cost map; its import-time network fetch
# fails offline and the resulting warning deadlocks under pytest.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest

from wxrelay.history.store import HistoryStore
from wxrelay.prompts.selector import PromptSelector
from wxrelay.providers.base import LLMProvider, LLMResponse, ToolCallRequest


class ScriptedProvider(LLMProvider):
    """Provider that replays queued responses and records every request."""

    def __init__(self, responses=None):
        super().__init__()
        self.responses = list(responses or [])
        self.calls = []

    async def chat(self, messages, tools=None, model=None, max_tokens=4096, temperature=0.7):
        self.calls.append({"messages": messages, "tools": tools, "model": model})
        if not self.responses:
            return LLMResponse(content="ok")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get_default_model(self) -> str:
        return "test-model"


def text(content):
    return LLMResponse(content=content)


def tool_call(name, arguments="{}", call_id="call_1"):
    return ToolCallRequest(id=call_id, name=name, arguments=arguments)


def wants_tools(*calls):
    return LLMResponse(content=None, tool_calls=list(calls), finish_reason="tool_calls")


TEMPLATES = {
    "default": "You are a helpful assistant.",
    "translator": "You are a translator.",
}


@pytest.fixture
def history():
    return HistoryStore(max_length=20)


@pytest.fixture
def prompts(history):
    return PromptSelector(history, templates=TEMPLATES)
