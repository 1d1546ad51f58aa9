# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Orchestration: the tutor agent loop, its event channel and agent cache.

Components:
- TutorAgent: Drives one conversation through model requests and tool calls
- EventChannel: Bounded channel delivering events to a listener
- TutorAgentCache: LRU cache of live agents with per-conversation locks
"""

from booktutor.core.orchestration.cache import CachedAgent, TutorAgentCache
from booktutor.core.orchestration.channel import ChannelClosedError, EventChannel
from booktutor.core.orchestration.tutor import TurnState, TutorAgent, TutorError

__all__ = [
    "TutorAgent",
    "TutorError",
    "TurnState",
    "EventChannel",
    "ChannelClosedError",
    "TutorAgentCache",
    "CachedAgent",
]
