# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conversation memory: token estimation and the bounded window."""

from booktutor.core.memory.tokens import (
    IMAGE_TOKENS,
    estimate_message_tokens,
    estimate_text_tokens,
)
from booktutor.core.memory.window import ConversationWindow, TokenBudgetError

__all__ = [
    "ConversationWindow",
    "TokenBudgetError",
    "estimate_message_tokens",
    "estimate_text_tokens",
    "IMAGE_TOKENS",
]
