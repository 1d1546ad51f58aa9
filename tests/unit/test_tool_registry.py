# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the tool registry.

Covers registration, definition aggregation and concurrent dispatch:
- unknown tools answered with "tool not found"
- invalid arguments and tool exceptions turned into error results
- results returned in call order
"""

import asyncio

import pytest
from pydantic import BaseModel, field_validator

from booktutor.core.tools.base import BaseTool, ToolContext, ToolResult
from booktutor.core.tools.registry import TOOL_NOT_FOUND, ToolRegistry
from booktutor.models.messages import ToolCall


class EchoArgs(BaseModel):
    text: str
    delay: float = 0.0


class EchoTool(BaseTool[EchoArgs]):
    name = "Echo"
    description = "Echo the text back"
    args_model = EchoArgs

    async def run(self, args: EchoArgs, context: ToolContext) -> str:
        await asyncio.sleep(args.delay)
        return f"{args.text} from {context.student_id}"


class ShoutTool(BaseTool[EchoArgs]):
    name = "Echo"
    description = "Echo the text back loudly"
    args_model = EchoArgs

    async def run(self, args: EchoArgs, context: ToolContext) -> str:
        return args.text.upper()


class EmptyArgs(BaseModel):
    pass


class BrokenTool(BaseTool[EmptyArgs]):
    name = "Broken"
    description = "Always fails"
    args_model = EmptyArgs

    async def run(self, args: EmptyArgs, context: ToolContext) -> str:
        raise RuntimeError("disk on fire")


class CountTool(BaseTool[EmptyArgs]):
    name = "Count"
    description = "Return a structured result"
    args_model = EmptyArgs

    async def run(self, args: EmptyArgs, context: ToolContext) -> dict[str, int]:
        return {"count": 3}


class RejectTool(BaseTool[EmptyArgs]):
    name = "Reject"
    description = "Return an explicit failure"
    args_model = EmptyArgs

    async def run(self, args: EmptyArgs, context: ToolContext) -> ToolResult:
        return ToolResult.fail("not allowed")


class PickyArgs(BaseModel):
    level: int

    @field_validator("level", mode="before")
    @classmethod
    def reject_strings(cls, value: object) -> object:
        if isinstance(value, str):
            raise TypeError("level must not be a string")
        return value


class PickyTool(BaseTool[PickyArgs]):
    name = "Picky"
    description = "Validator raising TypeError"
    args_model = PickyArgs

    async def run(self, args: PickyArgs, context: ToolContext) -> str:
        return str(args.level)


class CancelledTool(BaseTool[EmptyArgs]):
    name = "Cancelled"
    description = "Dies without a result"
    args_model = EmptyArgs

    async def run(self, args: EmptyArgs, context: ToolContext) -> str:
        raise asyncio.CancelledError()


@pytest.fixture
def registry() -> ToolRegistry:
    """Create a registry with a few test tools."""
    registry = ToolRegistry(ToolContext(student_id=1, book_id=2))
    registry.register(EchoTool())
    registry.register(BrokenTool())
    registry.register(CountTool())
    registry.register(RejectTool())
    return registry


@pytest.mark.unit
class TestToolResult:
    """Tests for ToolResult rendering."""

    def test_string_output_passes_through(self) -> None:
        """Test that strings are sent unchanged."""
        assert ToolResult.ok("hello").to_llm_message() == "hello"

    def test_structured_output_is_json(self) -> None:
        """Test that non-string output is serialized to JSON."""
        assert ToolResult.ok({"a": [1, 2]}).to_llm_message() == '{"a":[1,2]}'

    def test_failure_is_prefixed(self) -> None:
        """Test the error prefix."""
        assert ToolResult.fail("boom").to_llm_message() == "Error: boom"


@pytest.mark.unit
class TestToolRegistration:
    """Tests for registration and definitions."""

    def test_register_and_lookup(self, registry: ToolRegistry) -> None:
        """Test basic registration."""
        assert len(registry) == 4
        assert "Echo" in registry
        assert registry.get_optional("Echo") is not None
        assert registry.get_optional("Missing") is None
        assert registry.list_names() == ["Echo", "Broken", "Count", "Reject"]

    def test_last_registration_wins(self, registry: ToolRegistry) -> None:
        """Test that a duplicate name replaces the earlier tool."""
        registry.register(ShoutTool())

        handle = registry.get_optional("Echo")
        assert handle is not None
        assert isinstance(handle.tool, ShoutTool)
        assert len(registry) == 4

    def test_definitions_use_args_schema(self, registry: ToolRegistry) -> None:
        """Test the OpenAI definition shape."""
        definition = registry.get_definitions()[0]

        assert definition["type"] == "function"
        assert definition["function"]["name"] == "Echo"
        assert definition["function"]["description"] == "Echo the text back"
        assert definition["function"]["parameters"]["required"] == ["text"]

    def test_declarations(self, registry: ToolRegistry) -> None:
        """Test the plain declarations."""
        declarations = registry.declarations()

        assert [d["name"] for d in declarations] == ["Echo", "Broken", "Count", "Reject"]
        assert "properties" in declarations[0]["parameters"]


@pytest.mark.unit
class TestToolDispatch:
    """Tests for ToolRegistry.dispatch."""

    @pytest.mark.asyncio
    async def test_known_and_unknown_calls(self, registry: ToolRegistry) -> None:
        """Test that a known call runs and an unknown one is answered."""
        results = await registry.dispatch(
            [
                ToolCall.create("c1", "Echo", '{"text": "hi"}'),
                ToolCall.create("c2", "Teleport", "{}"),
            ]
        )

        assert [(r.tool_call_id, r.content) for r in results] == [
            ("c1", "hi from 1"),
            ("c2", TOOL_NOT_FOUND),
        ]

    @pytest.mark.asyncio
    async def test_results_keep_call_order(self, registry: ToolRegistry) -> None:
        """Test ordering when later calls finish first."""
        results = await registry.dispatch(
            [
                ToolCall.create("slow", "Echo", '{"text": "a", "delay": 0.05}'),
                ToolCall.create("fast", "Echo", '{"text": "b"}'),
            ]
        )

        assert [r.tool_call_id for r in results] == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, registry: ToolRegistry) -> None:
        """Test that validation errors become error results."""
        results = await registry.dispatch([ToolCall.create("c1", "Echo", '{"txt": 1}')])

        assert results[0].content.startswith("Error: ")
        assert "text" in results[0].content

    @pytest.mark.asyncio
    async def test_malformed_json(self, registry: ToolRegistry) -> None:
        """Test that unparseable arguments become error results."""
        results = await registry.dispatch([ToolCall.create("c1", "Echo", "{not json")])

        assert results[0].content.startswith("Error: ")

    @pytest.mark.asyncio
    async def test_validator_type_error(self, registry: ToolRegistry) -> None:
        """Test that a TypeError raised during validation is still answered."""
        registry.register(PickyTool())

        results = await registry.dispatch([ToolCall.create("c1", "Picky", '{"level": "high"}')])

        assert len(results) == 1
        assert results[0].tool_call_id == "c1"
        assert results[0].content.startswith("Error: Invalid arguments")
        assert "must not be a string" in results[0].content

    @pytest.mark.asyncio
    async def test_empty_arguments_mean_empty_object(self, registry: ToolRegistry) -> None:
        """Test that an empty argument string is accepted."""
        results = await registry.dispatch([ToolCall.create("c1", "Count", "")])

        assert results[0].content == '{"count":3}'

    @pytest.mark.asyncio
    async def test_tool_exception(self, registry: ToolRegistry) -> None:
        """Test that tool exceptions become error results."""
        results = await registry.dispatch([ToolCall.create("c1", "Broken", "{}")])

        assert results[0].content == "Error: disk on fire"

    @pytest.mark.asyncio
    async def test_explicit_failure_result(self, registry: ToolRegistry) -> None:
        """Test that a returned ToolResult is used as is."""
        results = await registry.dispatch([ToolCall.create("c1", "Reject", "{}")])

        assert results[0].content == "Error: not allowed"

    @pytest.mark.asyncio
    async def test_aborted_task_is_dropped(self, registry: ToolRegistry) -> None:
        """Test that a task dying without a result is skipped."""
        registry.register(CancelledTool())

        results = await registry.dispatch(
            [
                ToolCall.create("c1", "Cancelled", "{}"),
                ToolCall.create("c2", "Count", "{}"),
            ]
        )

        assert [r.tool_call_id for r in results] == ["c2"]

    @pytest.mark.asyncio
    async def test_empty_batch(self, registry: ToolRegistry) -> None:
        """Test dispatching no calls."""
        assert await registry.dispatch([]) == []
