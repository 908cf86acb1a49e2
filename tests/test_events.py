"""Tests for classifying DDP frames into domain events."""

from rocketchat_realtime.events import MessageEvent, NotificationEvent, User, classify


def _room_message(args):
    return {
        "msg": "changed",
        "collection": "stream-room-messages",
        "id": "id",
        "fields": {"eventName": "__my_messages__", "args": args},
    }


MESSAGE = {
    "_id": "m1",
    "rid": "GENERAL",
    "msg": "hello bot",
    "ts": {"$date": 1_700_000_000_000},
    "u": {"_id": "u2", "username": "bob", "name": "Bob"},
}


class TestClassify:
    def test_room_message(self):
        event = classify(_room_message([MESSAGE, {"roomParticipant": True, "roomType": "c"}]))
        assert isinstance(event, MessageEvent)
        assert event.message_id == "m1"
        assert event.room_id == "GENERAL"
        assert event.text == "hello bot"
        assert event.user == User(id="u2", username="bob", name="Bob")
        assert event.room_participant is True
        assert event.room_type == "c"
        assert event.timestamp is not None

    def test_not_participant(self):
        event = classify(_room_message([MESSAGE, {"roomParticipant": False}]))
        assert isinstance(event, MessageEvent)
        assert event.room_participant is False

    def test_participant_defaults_true(self):
        event = classify(_room_message([MESSAGE]))
        assert event.room_participant is True

    def test_room_message_without_payload(self):
        assert classify(_room_message([])) is None

    def test_notification(self):
        event = classify(
            {
                "msg": "changed",
                "collection": "stream-notify-user",
                "fields": {"eventName": "u1/notification", "args": [{"title": "hi"}]},
            }
        )
        assert isinstance(event, NotificationEvent)
        assert event.collection == "stream-notify-user"
        assert event.event_name == "u1/notification"
        assert event.args == [{"title": "hi"}]
        assert event.user is None

    def test_non_event_frames(self):
        assert classify({"msg": "result", "id": "1", "result": {}}) is None
        assert classify({"msg": "changed", "collection": "users", "fields": {}}) is None
        assert classify({"msg": "changed", "collection": "stream-room-messages"}) is None
        assert classify({"msg": "ready", "subs": ["1"]}) is None
