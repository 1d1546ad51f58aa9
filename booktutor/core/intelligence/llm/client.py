# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client using LiteLLM for multi-provider support.

This module provides the chat-completion interface used by the tutor
agent. Any OpenAI-compatible endpoint works; API keys and endpoints are
passed directly to LiteLLM's acompletion() function from LLMSettings
rather than read from the process environment by LiteLLM itself.

Two request forms are supported:
- stream_chat(): streaming completion, yields ChatDelta objects
- complete_chat(): single completed assistant message

Example:
    >>> from booktutor.core.intelligence.llm import LLMClient
    >>> client = LLMClient(get_settings().llm)
    >>> async for delta in client.stream_chat(messages, tools):
    ...     print(delta.content or "", end="")
"""

import logging
from typing import Any, AsyncIterator

from litellm import acompletion

from booktutor.core.config.settings import LLMSettings
from booktutor.core.intelligence.llm.streaming import ChatDelta, ToolCallFragment
from booktutor.models.messages import AssistantMessage, ToolCall

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Exception raised when LLM operation fails.

    Attributes:
        message: Error description.
        model: Model that caused the error.
        error_code: Error code if available.
        original_error: Original exception if any.
    """

    def __init__(
        self,
        message: str,
        model: str | None = None,
        error_code: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.model = model
        self.error_code = error_code
        self.original_error = original_error
        super().__init__(self.message)


def _convert_delta(delta: Any) -> ChatDelta:
    """Convert a LiteLLM streaming delta to a ChatDelta."""
    fragments: list[ToolCallFragment] = []
    for tc in getattr(delta, "tool_calls", None) or []:
        function = getattr(tc, "function", None)
        fragments.append(
            ToolCallFragment(
                index=getattr(tc, "index", 0) or 0,
                id=getattr(tc, "id", None),
                name=getattr(function, "name", None),
                arguments=getattr(function, "arguments", None),
            )
        )

    return ChatDelta(
        content=getattr(delta, "content", None),
        refusal=getattr(delta, "refusal", None),
        tool_calls=fragments,
    )


class LLMClient:
    """Client for chat completions via LiteLLM.

    Attributes:
        model: Model used for completions.
        timeout: Request timeout in seconds.
        max_retries: Maximum retry attempts.

    Example:
        >>> client = LLMClient(settings.llm)
        >>> message = await client.complete_chat(messages, tools)
        >>> message.tool_calls
    """

    def __init__(self, llm_settings: LLMSettings, model: str | None = None):
        """Initialize the LLM client.

        Args:
            llm_settings: LLM provider configuration.
            model: Override the configured model.
        """
        self._settings = llm_settings
        self._model = model or llm_settings.model
        self._timeout = llm_settings.request_timeout
        self._max_retries = llm_settings.max_retries

        logger.info(
            "LLMClient initialized with model=%s, timeout=%.1fs, max_retries=%d",
            self._model,
            self._timeout,
            self._max_retries,
        )

    @property
    def model(self) -> str:
        """Get the model in use."""
        return self._model

    @property
    def timeout(self) -> float:
        """Get the request timeout in seconds."""
        return self._timeout

    @property
    def max_retries(self) -> int:
        """Get the maximum retry attempts."""
        return self._max_retries

    def _request_params(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._settings.temperature,
            "timeout": self._timeout,
            "num_retries": self._max_retries,
            **self._settings.provider_params(),
        }
        # Some providers reject an empty tools array
        if tools:
            params["tools"] = tools
        return params

    async def stream_chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> AsyncIterator[ChatDelta]:
        """Stream a chat completion.

        Args:
            messages: Conversation messages in OpenAI format.
            tools: Tool definitions in OpenAI format.

        Yields:
            One ChatDelta per streamed chunk that carries a delta.

        Raises:
            LLMError: If the request or the stream fails.
        """
        if not messages:
            raise ValueError("Messages list cannot be empty")

        try:
            response = await acompletion(stream=True, **self._request_params(messages, tools))

            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is None:
                    continue
                yield _convert_delta(delta)

        except Exception as e:
            logger.error(
                "Streaming failed: model=%s, error=%s",
                self._model,
                str(e),
            )
            raise LLMError(
                message=f"Streaming failed: {str(e)}",
                model=self._model,
                original_error=e,
            ) from e

    async def complete_chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> AssistantMessage:
        """Request a single completed assistant message.

        Args:
            messages: Conversation messages in OpenAI format.
            tools: Tool definitions in OpenAI format.

        Returns:
            The assistant message with content, refusal and tool calls.

        Raises:
            LLMError: If the completion fails or has no choices.
        """
        if not messages:
            raise ValueError("Messages list cannot be empty")

        try:
            response = await acompletion(stream=False, **self._request_params(messages, tools))
        except Exception as e:
            logger.error(
                "Completion failed: model=%s, error=%s",
                self._model,
                str(e),
            )
            raise LLMError(
                message=f"Completion failed: {str(e)}",
                model=self._model,
                original_error=e,
            ) from e

        if not response.choices:
            logger.error(
                "LLM returned empty choices: model=%s, response=%s",
                self._model,
                str(response)[:1000],
            )
            raise LLMError(
                message="LLM returned empty response with no choices",
                model=self._model,
            )

        message = response.choices[0].message
        tool_calls = [
            ToolCall.create(
                id=tc.id,
                name=tc.function.name,
                arguments=tc.function.arguments or "",
            )
            for tc in (getattr(message, "tool_calls", None) or [])
        ]

        logger.debug(
            "Completion generated: model=%s, tool_calls=%d",
            self._model,
            len(tool_calls),
        )

        return AssistantMessage(
            content=message.content or None,
            refusal=getattr(message, "refusal", None) or None,
            tool_calls=tool_calls or None,
        )

    def __repr__(self) -> str:
        return (
            f"LLMClient(model={self._model!r}, "
            f"timeout={self._timeout}, max_retries={self._max_retries})"
        )
