# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning progress models.

ChapterProgress records a student's status and learning objectives for one
chapter; BookProgress aggregates progress for a whole book together with
the tutor's memory notes and the current reading position.

The same ChapterProgress model is the argument schema of the
``UpdateProgress`` tool, so field descriptions are written for the model.
"""

from datetime import datetime
from enum import Enum
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic.json_schema import SkipJsonSchema

from booktutor.models.chapter import ChapterNumber
from booktutor.utils.datetime import utc_now


class ChapterStatus(str, Enum):
    """Learning status of a chapter.

    Stored as an integer column; unknown stored values read back as
    NOT_STARTED.
    """

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"

    @property
    def db_value(self) -> int:
        """Integer representation used by the chapter_progress table."""
        return _STATUS_TO_DB[self]

    @classmethod
    def from_db(cls, value: int | None) -> "ChapterStatus":
        """Decode the integer column value."""
        return _DB_TO_STATUS.get(value, cls.NOT_STARTED)


_STATUS_TO_DB = {
    ChapterStatus.NOT_STARTED: 0,
    ChapterStatus.IN_PROGRESS: 1,
    ChapterStatus.COMPLETED: 2,
}
_DB_TO_STATUS = {value: status for status, value in _STATUS_TO_DB.items()}


class ChapterObjective(BaseModel):
    """A single learning objective within a chapter."""

    description: str = Field(
        description="Learning objective description, used as the objective's identity",
    )
    completed: bool = Field(
        default=False,
        description="Whether the objective has been achieved",
    )
    progress: str | None = Field(
        default=None,
        description="What the student has done so far for this objective",
    )
    next_step: str | None = Field(
        default=None,
        description="What the student should do next to reach this objective",
    )
    update_time: SkipJsonSchema[datetime] = Field(default_factory=utc_now)

    def settle(self) -> "ChapterObjective":
        """Return the objective with progress notes cleared once completed."""
        if self.completed and (self.progress is not None or self.next_step is not None):
            return self.model_copy(update={"progress": None, "next_step": None})
        return self


class ChapterProgress(BaseModel):
    """Status and objectives of one chapter for one student.

    Objectives are unique by description and kept sorted by description.
    """

    chapter_number: ChapterNumber = Field(
        description="Chapter number such as '1.2.'",
    )
    status: ChapterStatus = Field(
        default=ChapterStatus.NOT_STARTED,
        description="Learning status of the chapter",
    )
    objectives: list[ChapterObjective] = Field(
        default_factory=list,
        description=(
            "Learning objectives of the chapter. Only objectives listed here are "
            "updated; others are kept as they are"
        ),
    )
    update_time: SkipJsonSchema[datetime] = Field(default_factory=utc_now)

    @field_validator("objectives")
    @classmethod
    def normalize_objectives(cls, value: list[ChapterObjective]) -> list[ChapterObjective]:
        """Deduplicate by description (last one wins) and sort."""
        by_description = {objective.description: objective.settle() for objective in value}
        return [by_description[key] for key in sorted(by_description)]

    def merge(self, update: "ChapterProgress") -> "ChapterProgress":
        """Merge a newer progress report into this one.

        Status and update_time take the new values. Objectives are upserted
        by description; objectives absent from the update are untouched.

        Args:
            update: Newer progress for the same chapter.

        Returns:
            A new ChapterProgress with the merged state.
        """
        by_description = {objective.description: objective for objective in self.objectives}
        for objective in update.objectives:
            by_description[objective.description] = objective.settle()

        return ChapterProgress(
            chapter_number=self.chapter_number,
            status=update.status,
            objectives=list(by_description.values()),
            update_time=update.update_time,
        )


class BookProgress(BaseModel):
    """Progress of a student through a whole book."""

    current_learning_chapter: ChapterNumber | None = None
    chapter_progress: dict[str, ChapterProgress] = Field(default_factory=dict)
    memories: list[str] = Field(default_factory=list)
    update_time: datetime | None = None

    @classmethod
    def build(
        cls,
        current_chapter: ChapterNumber | None,
        chapters: list[ChapterProgress],
        memories: list[str],
    ) -> "BookProgress":
        """Assemble book progress from its parts.

        Args:
            current_chapter: Watermark chapter, None if nothing started.
            chapters: Per-chapter progress records, any order.
            memories: Memory notes, any order.

        Returns:
            BookProgress with chapters in reading order and sorted memories.
        """
        ordered = sorted(chapters, key=lambda p: p.chapter_number)
        update_time = max((p.update_time for p in ordered), default=None)
        return cls(
            current_learning_chapter=current_chapter or None,
            chapter_progress={str(p.chapter_number): p for p in ordered},
            memories=sorted(set(memories)),
            update_time=update_time,
        )

    def to_prompt_text(self) -> str:
        """Render progress as a block the model can read."""
        data: dict[str, Any] = self.model_dump(mode="json", exclude={"update_time"})
        return "## Book Progress\n```yaml\n" + yaml.safe_dump(
            data, allow_unicode=True, sort_keys=False
        ) + "```"
