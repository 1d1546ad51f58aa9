# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the tutor instruction prompt."""

from pathlib import Path

import pytest

from booktutor.domains.conversation.prompts import (
    PromptLoadError,
    get_prompts_directory,
    load_prompt,
    render_instruction,
)


@pytest.mark.unit
class TestLoadPrompt:
    """Tests for load_prompt."""

    def test_bundled_tutor_prompt(self) -> None:
        """Test that the bundled template loads."""
        prompt = load_prompt("tutor")

        assert prompt.id == "vera"
        assert "{student_name}" in prompt.template
        assert (get_prompts_directory() / "tutor.yaml").is_file()

    def test_missing_prompt(self, tmp_path: Path) -> None:
        """Test that a missing file raises PromptLoadError."""
        with pytest.raises(PromptLoadError, match="Failed to load YAML"):
            load_prompt("absent", tmp_path)

    def test_invalid_prompt(self, tmp_path: Path) -> None:
        """Test that a template without required fields is rejected."""
        (tmp_path / "broken.yaml").write_text("prompt:\n  id: broken\n")

        with pytest.raises(PromptLoadError, match="Validation failed"):
            load_prompt("broken", tmp_path)

    def test_custom_directory(self, tmp_path: Path) -> None:
        """Test loading and rendering from another directory."""
        (tmp_path / "short.yaml").write_text(
            "prompt:\n  id: short\n  name: Short\n  template: 'Hi {student_name}, {{ok}}'\n"
        )

        prompt = load_prompt("short", tmp_path)

        assert prompt.render(student_name="Ada") == "Hi Ada, {ok}"


@pytest.mark.unit
class TestRenderInstruction:
    """Tests for render_instruction."""

    def test_names_are_filled(self) -> None:
        """Test that student and book names appear in the instruction."""
        instruction = render_instruction("Ada", "English Grammar Basics")

        assert "Ada" in instruction
        assert "English Grammar Basics" in instruction
        assert "{student_name}" not in instruction
        assert "[GetChapterContent" in instruction
