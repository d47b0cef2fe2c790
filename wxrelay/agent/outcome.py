"""Result union returned by each stage of a turn."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    """Where a turn failed."""
    TOOL = "tool"
    COMPLETION = "completion"
    INTERNAL = "internal"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A stage that produced a value."""
    value: T


@dataclass(frozen=True)
class Failed:
    """A stage that failed; the turn ends with a failure reply."""
    kind: FailureKind
    error: str


Outcome = Union[Ok[T], Failed]
