# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process-wide cache of live tutor agents.

Building an agent reloads the conversation from storage, so agents are
kept per (student_id, book_id) in a bounded LRU cache. Each entry carries
a lock that serializes turns of the same conversation.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from booktutor.core.orchestration.tutor import TutorAgent

logger = logging.getLogger(__name__)

AgentKey = tuple[int, int]
AgentFactory = Callable[[int, int], Awaitable[TutorAgent]]


@dataclass
class CachedAgent:
    """A live agent and the lock guarding its turns."""

    agent: TutorAgent
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class TutorAgentCache:
    """LRU cache of tutor agents keyed by (student_id, book_id).

    Concurrent first requests for the same key build the agent once. A
    failed build is not cached; the next request tries again.

    Example:
        >>> cache = TutorAgentCache(factory, max_size=1024)
        >>> entry = await cache.get(student_id=1, book_id=7)
        >>> async for event in entry.agent.stream("Hi", lock=entry.lock):
        ...     ...
    """

    def __init__(self, factory: AgentFactory, max_size: int = 1024) -> None:
        self._factory = factory
        self._max_size = max_size
        self._entries: OrderedDict[AgentKey, CachedAgent] = OrderedDict()
        self._building: dict[AgentKey, asyncio.Task[CachedAgent]] = {}

    async def get(self, student_id: int, book_id: int) -> CachedAgent:
        """Get the cached agent, building it on first use.

        Raises:
            Exception: Whatever the factory raises; nothing is cached then.
        """
        key = (student_id, book_id)
        entry = self._lookup(key)
        if entry is not None:
            return entry

        build = self._building.get(key)
        if build is None:
            build = asyncio.ensure_future(self._build(key))
            self._building[key] = build
            build.add_done_callback(lambda done: self._forget_build(key, done))
        # A caller leaving early must not cancel the build others wait on
        return await asyncio.shield(build)

    def peek(self, student_id: int, book_id: int) -> CachedAgent | None:
        """Get the cached entry without building it or touching LRU order."""
        return self._entries.get((student_id, book_id))

    def invalidate(self, student_id: int, book_id: int) -> bool:
        """Drop the agent of a conversation.

        Callers that must not race a running turn hold the entry lock
        (see ``peek``) while invalidating.

        Returns:
            True if an agent was cached.
        """
        removed = self._entries.pop((student_id, book_id), None) is not None
        if removed:
            logger.debug("Invalidated tutor agent: student_id=%s, book_id=%s", student_id, book_id)
        return removed

    def clear(self) -> None:
        self._entries.clear()

    async def _build(self, key: AgentKey) -> CachedAgent:
        agent = await self._factory(*key)
        entry = CachedAgent(agent=agent)
        self._entries[key] = entry
        self._evict(keep=key)
        return entry

    def _forget_build(self, key: AgentKey, build: "asyncio.Task[CachedAgent]") -> None:
        if self._building.get(key) is build:
            del self._building[key]

    def _lookup(self, key: AgentKey) -> CachedAgent | None:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def _evict(self, keep: AgentKey) -> None:
        excess = len(self._entries) - self._max_size
        if excess <= 0:
            return
        # Agents in the middle of a turn stay; the cache may run over size
        idle = [
            key
            for key, entry in self._entries.items()
            if key != keep and not entry.lock.locked()
        ]
        for key in idle[:excess]:
            del self._entries[key]
            logger.debug("Evicted tutor agent: student_id=%s, book_id=%s", *key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: AgentKey) -> bool:
        return key in self._entries
