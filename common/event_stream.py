# common/event_stream.py

from __future__ import annotations

import asyncio
import copy
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List


@dataclass(frozen=True)
class StreamRecord:
    topic: str
    offset: int
    key: str
    value: Dict[str, Any]
    published_at: float


class EventStream:
    """Source of chain events with per-group committed offsets."""

    async def publish(self, topic: str, key: str, value: Dict[str, Any]) -> int:
        raise NotImplementedError

    async def subscribe(self, topic: str, group_id: str) -> AsyncIterator[StreamRecord]:
        raise NotImplementedError

    async def commit(self, topic: str, group_id: str, offset: int) -> None:
        raise NotImplementedError

    async def get_offset(self, topic: str, group_id: str) -> int:
        raise NotImplementedError


class MemoryEventStream(EventStream):
    """
    One in-memory partition per topic.

    rules
    records are never yielded while the topic lock is held
    a subscriber starts right after the group's committed offset
    commits only move a group's offset forward
    """

    def __init__(self, poll_interval: float = 0.01) -> None:
        self.poll_interval = poll_interval
        self._records: Dict[str, List[StreamRecord]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._committed: Dict[str, Dict[str, int]] = {}  # topic -> group -> offset

    def _lock(self, topic: str) -> asyncio.Lock:
        return self._locks.setdefault(topic, asyncio.Lock())

    async def publish(self, topic: str, key: str, value: Dict[str, Any]) -> int:
        async with self._lock(topic):
            records = self._records.setdefault(topic, [])
            offset = len(records)
            records.append(StreamRecord(
                topic=topic,
                offset=offset,
                key=str(key),
                value=copy.deepcopy(value),
                published_at=time.time(),
            ))
            return offset

    async def subscribe(self, topic: str, group_id: str) -> AsyncIterator[StreamRecord]:
        next_offset = await self.get_offset(topic, group_id) + 1
        while True:
            async with self._lock(topic):
                records = self._records.setdefault(topic, [])
                rec = records[next_offset] if next_offset < len(records) else None

            if rec is None:
                await asyncio.sleep(self.poll_interval)
                continue
            next_offset += 1
            yield rec

    async def commit(self, topic: str, group_id: str, offset: int) -> None:
        async with self._lock(topic):
            groups = self._committed.setdefault(topic, {})
            if offset > groups.get(group_id, -1):
                groups[group_id] = offset

    async def get_offset(self, topic: str, group_id: str) -> int:
        async with self._lock(topic):
            return self._committed.setdefault(topic, {}).get(group_id, -1)
