# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tool registry with concurrent dispatch.

This module provides the ToolRegistry class for managing tools. The
registry handles tool registration, definition aggregation for LLM tool
calling, and dispatching a batch of tool calls.

Dispatch never raises: an unknown tool name, arguments that fail
validation and errors raised by the tool all come back as tool messages
the model can read, so one broken call never aborts the conversation.

Example:
    from booktutor.core.tools import ToolRegistry

    registry = ToolRegistry(context)
    registry.register(GetChapterContentTool())

    # Get definitions for LLM
    tools = registry.get_definitions()

    # Answer the calls of an assistant message
    results = await registry.dispatch(message.tool_calls)
"""

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from booktutor.core.tools.base import BaseTool, ToolContext, ToolResult
from booktutor.models.messages import ToolCall, ToolMessage

logger = logging.getLogger(__name__)

TOOL_NOT_FOUND = "tool not found"


class ToolHandle:
    """Type-erased tool bound to its execution context.

    Turns a typed tool into a uniform ``call(arguments) -> ToolResult``:
    the argument string is validated into the tool's args model, the tool
    runs, and its output is wrapped into a ToolResult.
    """

    def __init__(self, tool: BaseTool[Any], context: ToolContext | None) -> None:
        self.tool = tool
        self.context = context

    @property
    def name(self) -> str:
        return self.tool.name

    async def call(self, arguments: str) -> ToolResult:
        """Run the tool with a raw JSON argument string.

        Args:
            arguments: Serialized JSON arguments from the model. An empty
                string is treated as an empty object.

        Returns:
            ToolResult; failures are captured, never raised.
        """
        try:
            args = self.tool.args_model.model_validate_json(arguments or "{}")
        except ValidationError as e:
            logger.warning("Invalid arguments for tool %s: %s", self.name, e)
            return ToolResult.fail(str(e))
        except Exception as e:
            # Validators that raise something other than ValueError
            logger.warning("Unreadable arguments for tool %s: %r", self.name, e)
            return ToolResult.fail(f"Invalid arguments: {e}")

        try:
            output = await self.tool.run(args, self.context)  # type: ignore[arg-type]
        except Exception as e:
            logger.error("Tool %s failed: %s", self.name, e, exc_info=True)
            return ToolResult.fail(str(e))

        if isinstance(output, ToolResult):
            return output
        return ToolResult.ok(output)


class ToolRegistry:
    """Registry for managing tool instances.

    Registration is last-write-wins: registering a tool under a name that
    is already taken replaces the previous tool.

    Example:
        registry = ToolRegistry(context)
        registry.register(GetChapterContentTool())
        registry.register(BookJumpTool())

        # Get all definitions for LLM
        tools = registry.get_definitions()
    """

    def __init__(self, context: ToolContext | None = None) -> None:
        """Initialize an empty tool registry.

        Args:
            context: Context handed to every tool this registry runs.
        """
        self._context = context
        self._tools: dict[str, ToolHandle] = {}

    def register(self, tool: BaseTool[Any]) -> None:
        """Register or replace a tool.

        Args:
            tool: Tool instance to register.
        """
        if tool.name in self._tools:
            logger.debug("Replacing tool: %s", tool.name)
        self._tools[tool.name] = ToolHandle(tool, self._context)
        logger.debug("Registered tool: %s", tool.name)

    def get_optional(self, name: str) -> ToolHandle | None:
        """Get a tool handle by name, returning None if not found."""
        return self._tools.get(name)

    def list_names(self) -> list[str]:
        """Get names of all registered tools."""
        return list(self._tools.keys())

    def declarations(self) -> list[dict[str, Any]]:
        """Get name, description and parameters schema of every tool.

        Returns:
            One declaration dictionary per registered tool.
        """
        return [
            {
                "name": handle.tool.name,
                "description": handle.tool.description,
                "parameters": handle.tool.parameters,
            }
            for handle in self._tools.values()
        ]

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get OpenAI-compatible definitions for all tools.

        Returns:
            List of tool definitions ready for the LLM's tools parameter.
        """
        return [handle.tool.definition for handle in self._tools.values()]

    async def dispatch(self, calls: list[ToolCall]) -> list[ToolMessage]:
        """Execute a batch of tool calls concurrently.

        Unknown tools are answered with "tool not found" without invoking
        anything. Known tools run as one task each and are joined. A task
        that dies without producing a result (for example because it was
        cancelled) is logged and its result is dropped.

        Args:
            calls: Tool calls of one assistant message.

        Returns:
            Tool messages in call order, one per call that produced a result.
        """
        results: list[ToolMessage | None] = [None] * len(calls)
        pending: list[tuple[int, ToolCall, asyncio.Task[ToolResult]]] = []

        for index, call in enumerate(calls):
            handle = self._tools.get(call.name)
            if handle is None:
                logger.warning("Tool not found: %s", call.name)
                results[index] = ToolMessage(content=TOOL_NOT_FOUND, tool_call_id=call.id)
                continue
            task = asyncio.create_task(handle.call(call.arguments), name=f"tool:{call.name}")
            pending.append((index, call, task))

        outcomes = await asyncio.gather(
            *(task for _, _, task in pending),
            return_exceptions=True,
        )

        for (index, call, _), outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Tool task %s (%s) aborted: %r", call.name, call.id, outcome
                )
                continue
            results[index] = ToolMessage(
                content=outcome.to_llm_message(),
                tool_call_id=call.id,
            )

        return [message for message in results if message is not None]

    def __len__(self) -> int:
        """Get number of registered tools."""
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def __repr__(self) -> str:
        """Return string representation of the registry."""
        return f"ToolRegistry(tools={list(self._tools.keys())})"
