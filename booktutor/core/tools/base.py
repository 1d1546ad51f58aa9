# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for the tool system.

This module defines the foundational classes for the tool system:
- ToolContext: Conversation the tools act on during execution
- ToolResult: Standardized result from tool execution
- BaseTool: Abstract base class for typed tools

Tools are executed by the tutor agent when the model requests specific
actions through tool calling. Each tool declares a pydantic model for its
arguments; the JSON schema of that model is what the model sees, and the
raw argument string of a tool call is validated against it before the
tool runs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from pydantic_core import to_json

if TYPE_CHECKING:
    from booktutor.domains.books.book import Book
    from booktutor.domains.conversation.store import ConversationStore


@dataclass
class ToolContext:
    """Context available to tools during execution.

    Identifies the conversation (student and book) and gives tools access
    to the persistence layer and the loaded book, so tools do not need to
    look these up themselves.

    Attributes:
        student_id: Student the tutor is talking to.
        book_id: Book being studied.
        store: Conversation store for progress and memory updates.
        book: Loaded book content.
        extra: Additional context that tools might need.
    """

    student_id: int
    book_id: int
    store: "ConversationStore | None" = None
    book: "Book | None" = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Result from tool execution.

    Attributes:
        success: Whether the tool executed successfully.
        output: Tool output. Strings are sent to the model as they are,
            anything else is serialized to JSON.
        error: Error message if success is False.
    """

    success: bool
    output: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, output: Any) -> "ToolResult":
        """Create a successful result."""
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        """Create a failed result."""
        return cls(success=False, error=error)

    def to_llm_message(self) -> str:
        """Convert result to message for LLM.

        Returns:
            Tool output as text, or "Error: <text>" for failures.
        """
        if not self.success:
            return f"Error: {self.error}"

        if self.output is None:
            return "Operation completed successfully."
        if isinstance(self.output, str):
            return self.output
        return to_json(self.output).decode("utf-8")


ArgsT = TypeVar("ArgsT", bound=BaseModel)


class BaseTool(ABC, Generic[ArgsT]):
    """Abstract base class for all tools.

    Subclasses set three class attributes and implement ``run``:

    - name: Unique tool name the model calls
    - description: What the tool does, written for the model
    - args_model: Pydantic model describing the arguments

    The tool lifecycle:
    1. The model receives tool definitions via the `definition` property
    2. The model calls the tool with a JSON argument string
    3. The registry validates the arguments into `args_model`
    4. The registry awaits `run()` and sends the result back to the model

    Example:
        class AddMemoryArgs(BaseModel):
            memory: str

        class AddMemoryTool(BaseTool[AddMemoryArgs]):
            name = "AddMemory"
            description = "Remember a fact about the student"
            args_model = AddMemoryArgs

            async def run(self, args: AddMemoryArgs, context: ToolContext) -> str:
                await context.store.add_memory(...)
                return "Memory added"
    """

    name: ClassVar[str]
    description: ClassVar[str]
    args_model: ClassVar[type[BaseModel]]

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the arguments."""
        return self.args_model.model_json_schema()

    @property
    def definition(self) -> dict[str, Any]:
        """OpenAI-compatible tool definition.

        Returns:
            Dictionary with tool definition in OpenAI format.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    @abstractmethod
    async def run(self, args: ArgsT, context: ToolContext) -> Any:
        """Execute the tool with validated arguments.

        Args:
            args: Arguments validated against `args_model`.
            context: Conversation the tool acts on.

        Returns:
            Tool output, a string, a ToolResult, or any JSON-serializable value.

        Raises:
            Exception: Any failure; the registry turns it into an error result.
        """
        pass
