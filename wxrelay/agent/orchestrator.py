"""Conversation orchestrator: the two-phase completion protocol.

A turn runs through these states::

    START -> AWAITING_FIRST_COMPLETION -> [AWAITING_TOOL_RESULT] -> AWAITING_FINAL_REPLY -> DONE

The first completion only sees the bare user message plus the tool schema;
it decides whether a tool is needed. The second completion sees the system
prompt and the conversation history, followed by the tool result when a tool
ran or by the user message again when none did.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from wxrelay.agent.outcome import Failed, FailureKind, Ok, Outcome
from wxrelay.agent.tools.base import ToolContext
from wxrelay.agent.tools.registry import ToolRegistry, select_tool_call, serialize_result
from wxrelay.history.models import ChatMessage
from wxrelay.history.store import HistoryStore
from wxrelay.prompts.selector import PromptSelector
from wxrelay.providers.base import LLMProvider, LLMResponse

PROMPT_SWITCHED_REPLY = "已切换系统提示词。"
UNABLE_TO_ANSWER_REPLY = "抱歉，我目前无法回答您的问题。"


def tool_failure_reply(error: str) -> str:
    return f"工具执行失败: {error}"


class TurnState(str, Enum):
    START = "start"
    AWAITING_FIRST_COMPLETION = "awaiting_first_completion"
    AWAITING_TOOL_RESULT = "awaiting_tool_result"
    AWAITING_FINAL_REPLY = "awaiting_final_reply"
    DONE = "done"


@dataclass
class TurnResult:
    """What a turn produced and the states it went through."""
    reply: str
    states: list[TurnState]
    tool_name: str | None = None
    failure: Failed | None = None


@dataclass
class Turn:
    """Mutable progress of a single turn."""
    conversation_id: str
    states: list[TurnState] = field(default_factory=lambda: [TurnState.START])
    tool_name: str | None = None

    @property
    def state(self) -> TurnState:
        return self.states[-1]

    def advance(self, state: TurnState) -> None:
        logger.debug(f"[{self.conversation_id}] {self.state.value} -> {state.value}")
        self.states.append(state)

    def finish(self, reply: str, failure: Failed | None = None) -> TurnResult:
        self.advance(TurnState.DONE)
        return TurnResult(reply=reply, states=list(self.states), tool_name=self.tool_name, failure=failure)


class ConversationOrchestrator:
    """
    Turns one user message into one reply.

    The orchestrator holds no state of its own; the history store is its
    only side effect.
    """

    def __init__(
        self,
        provider: LLMProvider,
        history: HistoryStore,
        prompts: PromptSelector,
        tools: ToolRegistry,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ):
        self.provider = provider
        self.history = history
        self.prompts = prompts
        self.tools = tools
        self.model = model or provider.get_default_model()
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def process_message(self, raw_text: str, conversation_id: str, author_name: str = "") -> str:
        """Process a user message and return the reply text."""
        result = await self.run_turn(raw_text, conversation_id, author_name)
        return result.reply

    async def run_turn(self, raw_text: str, conversation_id: str, author_name: str = "") -> TurnResult:
        """Run a full turn. Always returns a reply, never raises."""
        turn = Turn(conversation_id)
        try:
            return await self._run(turn, raw_text, author_name)
        except Exception as e:
            logger.exception(f"Error processing message in {conversation_id}: {e}")
            return turn.finish(UNABLE_TO_ANSWER_REPLY, Failed(FailureKind.INTERNAL, str(e)))

    async def _run(self, turn: Turn, raw_text: str, author_name: str) -> TurnResult:
        cid = turn.conversation_id
        system_prompt = self.prompts.resolve_system_prompt(cid, raw_text)
        content = self.prompts.extract_content(raw_text)

        if self.prompts.is_switch_command(raw_text) and not content:
            return turn.finish(PROMPT_SWITCHED_REPLY)

        async with self.history.lock(cid):
            self.history.append(cid, "user", content, author_name)
            context = self.history.get_context(cid)

        turn.advance(TurnState.AWAITING_FIRST_COMPLETION)
        first = await self._complete(
            [ChatMessage.user(content).to_llm()],
            tools=self.tools.get_definitions(),
        )
        if isinstance(first, Failed):
            return turn.finish(UNABLE_TO_ANSWER_REPLY, first)

        messages = [system_prompt.to_llm(), *(m.to_llm() for m in context)]

        call = select_tool_call(first.value.tool_calls)
        if call is not None:
            turn.advance(TurnState.AWAITING_TOOL_RESULT)
            turn.tool_name = call.name
            dispatched = await self.tools.dispatch(call, ToolContext(cid))
            if isinstance(dispatched, Failed):
                return turn.finish(tool_failure_reply(dispatched.error), dispatched)

            result_text = serialize_result(dispatched.value)
            logger.info(f"Tool response ({call.name}): {result_text[:500]}")
            messages.append(first.value.assistant_message([call]))
            messages.append(ChatMessage.tool(result_text, call.id).to_llm())
        else:
            messages.append(ChatMessage.user(content).to_llm())

        turn.advance(TurnState.AWAITING_FINAL_REPLY)
        final = await self._complete(messages)
        if isinstance(final, Failed):
            return turn.finish(UNABLE_TO_ANSWER_REPLY, final)

        reply = final.value.content or ""
        async with self.history.lock(cid):
            self.history.append(cid, "assistant", reply)
        return turn.finish(reply)

    async def _complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> Outcome[LLMResponse]:
        try:
            response = await self.provider.chat(
                messages=messages,
                tools=tools,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"Completion request failed: {e}")
            return Failed(FailureKind.COMPLETION, str(e))

        if response.is_error:
            return Failed(FailureKind.COMPLETION, response.content or "completion error")
        return Ok(response)
