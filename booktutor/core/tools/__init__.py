# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core tool infrastructure for LLM tool calling.

Base Classes:
    BaseTool: Abstract base class for typed tools
    ToolContext: Conversation the tools act on
    ToolResult: Standardized result from tool execution

Registry:
    ToolRegistry: Registry with concurrent, failure-absorbing dispatch
    ToolHandle: Type-erased tool bound to its context

Usage:
    from booktutor.core.tools import BaseTool, ToolContext, ToolRegistry

    class MyTool(BaseTool[MyArgs]):
        name = "MyTool"
        description = "..."
        args_model = MyArgs

        async def run(self, args: MyArgs, context: ToolContext) -> str:
            return "done"
"""

from booktutor.core.tools.base import BaseTool, ToolContext, ToolResult
from booktutor.core.tools.registry import TOOL_NOT_FOUND, ToolHandle, ToolRegistry

__all__ = [
    # Base classes
    "BaseTool",
    "ToolContext",
    "ToolResult",
    # Registry
    "ToolRegistry",
    "ToolHandle",
    "TOOL_NOT_FOUND",
]
