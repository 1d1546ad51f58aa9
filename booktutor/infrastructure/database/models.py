# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for tutoring conversations.

Tables:
- student: Students known to the tutor (identity lives elsewhere)
- tutor_conversation: One row per (student, book) conversation, holding
  the reading watermark and the tutor's memory notes
- history_message: Append-only conversation history, one JSON message per row
- chapter_progress: Per-chapter learning status and objectives
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from booktutor.utils.datetime import utc_now


class Base(DeclarativeBase):
    """Declarative base for all BookTutor tables."""


class Student(Base):
    """A student the tutor talks to."""

    __tablename__ = "student"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.name!r})>"


class TutorConversation(Base):
    """Conversation state of a student working through a book."""

    __tablename__ = "tutor_conversation"

    student_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    book_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Empty string means no chapter started yet
    current_chapter_number: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    memories: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    update_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self) -> str:
        return (
            f"<TutorConversation(student_id={self.student_id}, book_id={self.book_id}, "
            f"chapter={self.current_chapter_number!r})>"
        )


class HistoryMessage(Base):
    """One persisted chat message of a conversation."""

    __tablename__ = "history_message"

    __table_args__ = (
        Index("ix_history_message_conversation", "student_id", "book_id", "update_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, nullable=False)
    book_id: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    update_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class ChapterProgressRecord(Base):
    """Learning progress of one chapter."""

    __tablename__ = "chapter_progress"

    student_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    book_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chapter_number: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    objectives: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    update_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
