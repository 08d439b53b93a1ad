# chat relay — in-process change feed for group messages plus per-connection timelines
# the feed fans out insert/update/delete events to subscribers of a group id.
# a timeline is one subscriber's ordered view of the group, merged by message id.

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Set

logger = logging.getLogger(__name__)

EventType = Literal["insert", "update", "delete"]


@dataclass
class ChangeEvent:
    """a row-level change on the group_messages collection"""
    event_type: EventType
    group_id: str
    record: Dict[str, Any] = field(default_factory=dict)

    @property
    def message_id(self) -> Optional[str]:
        return self.record.get("id")


class ChatTimeline:
    """locally ordered message list for one user's view of one group.

    messages are appended in arrival order; nothing is re-sorted after the
    initial load, so an out-of-order network arrival stays where it landed.
    """

    def __init__(self, group_id: str, user_id: str):
        self.group_id = group_id
        self.user_id = user_id
        self._messages: List[Dict[str, Any]] = []

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def _index_of(self, message_id: Optional[str]) -> int:
        for idx, msg in enumerate(self._messages):
            if msg.get("id") == message_id:
                return idx
        return -1

    def contains(self, message_id: Optional[str]) -> bool:
        return self._index_of(message_id) != -1

    def get(self, message_id: Optional[str]) -> Optional[Dict[str, Any]]:
        idx = self._index_of(message_id)
        return dict(self._messages[idx]) if idx != -1 else None

    def load(self, messages: List[Dict[str, Any]]):
        """replace local state with the initial bulk fetch (created_at ascending)"""
        self._messages = sorted(messages, key=lambda m: m.get("created_at") or "")

    def append_local(self, message: Dict[str, Any]) -> bool:
        """optimistic append after our own write succeeded"""
        if self.contains(message.get("id")):
            return False
        self._messages.append(message)
        return True

    def apply(self, event: ChangeEvent) -> bool:
        """merge a remote change event. returns true if local state changed."""
        if event.group_id != self.group_id:
            return False

        record = event.record
        idx = self._index_of(event.message_id)

        if event.event_type == "insert":
            # own inserts were already appended locally
            if record.get("user_id") == self.user_id or idx != -1:
                return False
            self._messages.append(dict(record))
            return True

        if event.event_type == "update":
            if idx == -1:
                return False
            self._messages[idx] = {**self._messages[idx], **record}
            return True

        if event.event_type == "delete":
            if idx == -1:
                return False
            del self._messages[idx]
            return True

        logger.warning(f"Unknown chat event type: {event.event_type}")
        return False


class ChangeFeed:
    """pub/sub of chat change events keyed by group id.
    subscriber queues are unbounded; a slow reader just accumulates events."""

    def __init__(self):
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, group_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[group_id].add(queue)
        logger.info(f"Chat subscriber added for group {group_id} (total {len(self._subscribers[group_id])})")
        return queue

    def unsubscribe(self, group_id: str, queue: asyncio.Queue):
        subscribers = self._subscribers.get(group_id)
        if not subscribers:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[group_id]
        logger.info(f"Chat subscriber removed for group {group_id}")

    def subscriber_count(self, group_id: str) -> int:
        return len(self._subscribers.get(group_id, ()))

    async def publish(self, event: ChangeEvent):
        for queue in list(self._subscribers.get(event.group_id, ())):
            queue.put_nowait(event)


# singleton instance
feed = ChangeFeed()


async def get_feed() -> ChangeFeed:
    """dependency injection for the chat change feed"""
    return feed
