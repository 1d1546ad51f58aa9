# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Token-budgeted conversation window.

The window is what the model sees on each request:

    [instruction] [context] [tail ...]

The instruction (tutor persona) and the context (book information) are
fixed for the lifetime of the window and may each use at most a quarter
of the token budget. The tail holds the conversation history and is
trimmed after every append so the estimated total never exceeds the
budget.

Two eviction policies are available:
- newest (default): drop the most recently appended tail message
- oldest: drop from the front of the tail, together with tool results
  that would be left without their assistant call

Every message is persisted before it enters the window, so trimming only
affects what is sent to the model, never what is stored.
"""

import logging
from typing import TYPE_CHECKING, Any, Literal

from booktutor.core.memory.tokens import estimate_message_tokens
from booktutor.models.messages import AssistantMessage, Message, SystemMessage, ToolMessage

if TYPE_CHECKING:
    from booktutor.domains.conversation.store import ConversationStore

logger = logging.getLogger(__name__)

EvictionPolicy = Literal["newest", "oldest"]


class TokenBudgetError(Exception):
    """Raised when a fixed block of the window does not fit its budget share.

    Attributes:
        message: Error description.
        tokens: Estimated tokens of the offending block.
        limit: Tokens the block may use.
    """

    def __init__(self, message: str, tokens: int, limit: int) -> None:
        super().__init__(message)
        self.message = message
        self.tokens = tokens
        self.limit = limit


class ConversationWindow:
    """Instruction, context and a trimmed conversation tail.

    Use ``load()`` to build a window from persisted history.

    Example:
        >>> window = await ConversationWindow.load(store, instruction, context, 100_000)
        >>> await window.append(UserMessage(content="Let's start"))
        >>> window.token_count <= window.token_budget
        True
    """

    def __init__(
        self,
        store: "ConversationStore",
        instruction: SystemMessage,
        context: SystemMessage,
        token_budget: int,
        eviction_policy: EvictionPolicy = "newest",
    ) -> None:
        self._store = store
        self._instruction = instruction
        self._context = context
        self._token_budget = token_budget
        self._eviction_policy = eviction_policy

        self._fixed_tokens = estimate_message_tokens(instruction) + estimate_message_tokens(context)
        self._tail: list[Message] = []
        self._tail_tokens: list[int] = []
        self._tail_total = 0

    @classmethod
    async def load(
        cls,
        store: "ConversationStore",
        instruction: str,
        context: str,
        token_budget: int,
        eviction_policy: EvictionPolicy = "newest",
    ) -> "ConversationWindow":
        """Build a window and fill its tail from the store.

        Args:
            store: Conversation store providing and receiving messages.
            instruction: Instruction text, sent as the first system message.
            context: Context text, sent as the second system message.
            token_budget: Maximum estimated tokens of a request.
            eviction_policy: Which end of the tail to evict from.

        Returns:
            The window with its history loaded and trimmed.

        Raises:
            TokenBudgetError: If instruction or context exceeds a quarter
                of the budget.
        """
        limit = token_budget // 4
        instruction_message = SystemMessage(content=instruction)
        context_message = SystemMessage(content=context)

        instruction_tokens = estimate_message_tokens(instruction_message)
        if instruction_tokens > limit:
            raise TokenBudgetError(
                f"Instruction token: {instruction_tokens} is too much",
                instruction_tokens,
                limit,
            )
        context_tokens = estimate_message_tokens(context_message)
        if context_tokens > limit:
            raise TokenBudgetError(
                f"Context token: {context_tokens} is too much",
                context_tokens,
                limit,
            )

        window = cls(store, instruction_message, context_message, token_budget, eviction_policy)
        for message in await store.fetch_messages():
            window._push(message)
        window._trim()

        logger.debug(
            "Window loaded: messages=%d, tokens=%d, budget=%d",
            len(window._tail),
            window.token_count,
            token_budget,
        )
        return window

    @property
    def token_budget(self) -> int:
        """Maximum estimated tokens of a request."""
        return self._token_budget

    @property
    def token_count(self) -> int:
        """Estimated tokens of instruction, context and tail."""
        return self._fixed_tokens + self._tail_total

    @property
    def eviction_policy(self) -> EvictionPolicy:
        return self._eviction_policy

    async def append(self, message: Message) -> None:
        """Persist a message, add it to the tail and trim.

        Raises:
            DatabaseError: If persisting fails; the window is left unchanged.
        """
        await self._store.append_message(message)
        self._push(message)
        self._trim()

    async def extend(self, messages: list[Message]) -> None:
        """Append messages one by one."""
        for message in messages:
            await self.append(message)

    def conversation(self) -> list[Message]:
        """Get the tail without instruction and context."""
        return list(self._tail)

    def messages(self) -> list[Message]:
        """Get the full request view.

        Tool results whose assistant call is not directly before them are
        left out, and so are assistant tool calls that have no result.

        Returns:
            Instruction, context and the consistent part of the tail.
        """
        return [self._instruction, self._context, *self._consistent_tail()]

    def request_messages(self) -> list[dict[str, Any]]:
        """Get the request view in OpenAI wire format."""
        return [message.to_openai() for message in self.messages()]

    def _push(self, message: Message) -> None:
        tokens = estimate_message_tokens(message)
        self._tail.append(message)
        self._tail_tokens.append(tokens)
        self._tail_total += tokens

    def _pop(self, index: int) -> None:
        self._tail.pop(index)
        self._tail_total -= self._tail_tokens.pop(index)

    def _trim(self) -> None:
        evicted = 0
        while self.token_count > self._token_budget and self._tail:
            if self._eviction_policy == "newest":
                self._pop(-1)
                evicted += 1
            else:
                self._pop(0)
                evicted += 1
                while self._tail and isinstance(self._tail[0], ToolMessage):
                    self._pop(0)
                    evicted += 1

        if evicted:
            logger.debug(
                "Evicted %d message(s) (%s), tokens=%d, budget=%d",
                evicted,
                self._eviction_policy,
                self.token_count,
                self._token_budget,
            )

    def _consistent_tail(self) -> list[Message]:
        result: list[Message] = []
        tail = self._tail
        i = 0
        while i < len(tail):
            message = tail[i]

            if isinstance(message, ToolMessage):
                # Not preceded by its assistant call
                i += 1
                continue

            if not (isinstance(message, AssistantMessage) and message.tool_calls):
                result.append(message)
                i += 1
                continue

            j = i + 1
            call_ids = {call.id for call in message.tool_calls}
            answers: list[ToolMessage] = []
            answered: set[str] = set()
            while j < len(tail) and isinstance(tail[j], ToolMessage):
                answer = tail[j]
                if answer.tool_call_id in call_ids and answer.tool_call_id not in answered:
                    answers.append(answer)
                    answered.add(answer.tool_call_id)
                j += 1

            calls = [call for call in message.tool_calls if call.id in answered]
            if len(calls) == len(message.tool_calls):
                result.append(message)
            elif calls or message.content or message.refusal:
                result.append(message.model_copy(update={"tool_calls": calls or None}))
            result.extend(answers)
            i = j

        return result

    def __len__(self) -> int:
        return len(self._tail)
