# tests for the chat relay — timeline merge rules and the change feed
# unit tests for calmcampus/services/chat_relay.py

import pytest

from calmcampus.services.chat_relay import ChangeEvent, ChangeFeed, ChatTimeline


def record(message_id: str, user_id: str = "other", text: str = "hi", created_at: str = "2025-06-11T10:00:00+00:00") -> dict:
    return {
        "id": message_id,
        "group_id": "g1",
        "user_id": user_id,
        "message": text,
        "created_at": created_at,
    }


@pytest.fixture
def timeline():
    tl = ChatTimeline("g1", "me")
    tl.load([
        record("m2", created_at="2025-06-11T10:05:00+00:00"),
        record("m1", created_at="2025-06-11T10:00:00+00:00"),
    ])
    return tl


class TestTimeline:
    """merge rules keyed by message id"""

    def test_load_sorts_by_created_at(self, timeline):
        assert [m["id"] for m in timeline.messages] == ["m1", "m2"]

    def test_remote_insert_appended(self, timeline):
        changed = timeline.apply(ChangeEvent("insert", "g1", record("m3")))
        assert changed is True
        assert [m["id"] for m in timeline.messages] == ["m1", "m2", "m3"]

    def test_same_insert_twice_not_duplicated(self, timeline):
        event = ChangeEvent("insert", "g1", record("m3"))
        assert timeline.apply(event) is True
        assert timeline.apply(event) is False
        assert len(timeline) == 3

    def test_own_insert_ignored(self, timeline):
        assert timeline.apply(ChangeEvent("insert", "g1", record("m3", user_id="me"))) is False
        assert not timeline.contains("m3")

    def test_local_append_then_echo(self, timeline):
        mine = record("m3", user_id="me")
        assert timeline.append_local(mine) is True
        assert timeline.append_local(mine) is False
        assert timeline.apply(ChangeEvent("insert", "g1", mine)) is False
        assert len(timeline) == 3

    def test_other_group_ignored(self, timeline):
        event = ChangeEvent("insert", "g2", {**record("x1"), "group_id": "g2"})
        assert timeline.apply(event) is False

    def test_update_patches_message(self, timeline):
        edited = {**record("m1", text="edited"), "edited_at": "2025-06-11T11:00:00+00:00"}
        assert timeline.apply(ChangeEvent("update", "g1", edited)) is True
        assert timeline.get("m1")["message"] == "edited"
        assert timeline.get("m1")["edited_at"] == "2025-06-11T11:00:00+00:00"

    def test_update_unknown_ignored(self, timeline):
        assert timeline.apply(ChangeEvent("update", "g1", record("zz"))) is False

    def test_delete_removes_message(self, timeline):
        assert timeline.apply(ChangeEvent("delete", "g1", {"id": "m1"})) is True
        assert [m["id"] for m in timeline.messages] == ["m2"]
        assert timeline.apply(ChangeEvent("delete", "g1", {"id": "m1"})) is False

    def test_late_arrival_not_reordered(self, timeline):
        early = record("m0", created_at="2025-06-11T09:00:00+00:00")
        timeline.apply(ChangeEvent("insert", "g1", early))
        assert [m["id"] for m in timeline.messages] == ["m1", "m2", "m0"]

    def test_messages_is_a_copy(self, timeline):
        timeline.messages.clear()
        assert len(timeline) == 2


class TestChangeFeed:
    """fan-out by group id"""

    async def test_publish_reaches_group_subscribers_only(self):
        feed = ChangeFeed()
        q1 = feed.subscribe("g1")
        q2 = feed.subscribe("g2")

        event = ChangeEvent("insert", "g1", record("m1"))
        await feed.publish(event)

        assert q1.get_nowait() is event
        assert q2.empty()

    async def test_unsubscribe(self):
        feed = ChangeFeed()
        q1 = feed.subscribe("g1")
        assert feed.subscriber_count("g1") == 1
        feed.unsubscribe("g1", q1)
        assert feed.subscriber_count("g1") == 0

        await feed.publish(ChangeEvent("insert", "g1", record("m1")))
        assert q1.empty()

    def test_unsubscribe_unknown_is_noop(self):
        feed = ChangeFeed()
        feed.unsubscribe("nope", None)
        assert feed.subscriber_count("nope") == 0
