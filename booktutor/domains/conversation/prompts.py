# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tutor instruction prompt loader.

The instruction template ships as YAML in booktutor/config/prompts and is
rendered with the student's and the book's names.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from booktutor.core.config.yaml_loader import load_yaml
from booktutor.utils.logging import get_logger

logger = get_logger(__name__)


class PromptLoadError(Exception):
    """Raised when a prompt template fails to load or validate."""

    pass


class PromptTemplate(BaseModel):
    """A named prompt template with ``str.format`` placeholders."""

    id: str
    name: str
    description: str = ""
    template: str

    def render(self, **values: str) -> str:
        """Fill the template placeholders.

        Raises:
            KeyError: If a placeholder has no value.
        """
        return self.template.format(**values)


def get_prompts_directory() -> Path:
    """Get the bundled prompts directory."""
    return Path(__file__).parent.parent.parent / "config" / "prompts"


@lru_cache(maxsize=8)
def load_prompt(prompt_id: str = "tutor", prompts_dir: Optional[Path] = None) -> PromptTemplate:
    """Load a prompt template from its YAML file.

    Args:
        prompt_id: File name without the .yaml extension.
        prompts_dir: Directory to load from, defaults to the bundled prompts.

    Returns:
        Validated PromptTemplate.

    Raises:
        PromptLoadError: If the file is missing or invalid.
    """
    if prompts_dir is None:
        prompts_dir = get_prompts_directory()

    prompt_file = prompts_dir / f"{prompt_id}.yaml"

    try:
        data = load_yaml(prompt_file)
    except Exception as e:
        raise PromptLoadError(f"Failed to load YAML for prompt '{prompt_id}': {e}") from e

    try:
        prompt = PromptTemplate.model_validate(data.get("prompt", data))
    except ValidationError as e:
        raise PromptLoadError(f"Validation failed for prompt '{prompt_id}': {e}") from e

    logger.debug("loaded_prompt", prompt_id=prompt_id, name=prompt.name)
    return prompt


def render_instruction(student_name: str, book_name: str) -> str:
    """Render the tutor instruction for a student and a book."""
    return load_prompt("tutor").render(student_name=student_name, book_name=book_name)
