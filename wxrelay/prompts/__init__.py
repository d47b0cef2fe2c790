"""System prompt selection module."""

from wxrelay.prompts.selector import PromptSelector

__all__ = ["PromptSelector"]
