"""Append-only conversation for a single agent turn."""

from collections.abc import Iterator
from dataclasses import dataclass

from application.agents.llm_provider import LlmMessage


@dataclass(frozen=True)
class Conversation:
    """Ordered, immutable sequence of messages.

    `append` returns a new Conversation; an instance handed to a model request
    never changes afterwards.
    """

    messages: tuple[LlmMessage, ...] = ()

    @classmethod
    def start(cls, task: str) -> "Conversation":
        """Create a conversation holding the initial user task."""
        return cls(messages=(LlmMessage.user(task),))

    def append(self, *messages: LlmMessage) -> "Conversation":
        return Conversation(messages=self.messages + tuple(messages))

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[LlmMessage]:
        return iter(self.messages)
