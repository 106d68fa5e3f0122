"""
Tests for hotelpms.engine.event_bus
"""
import pytest

from hotelpms.engine.event_bus import Event, EventBus, discard_event
from hotelpms.engine.events import EventType, RoomChangedData


@pytest.fixture
def bus():
    return EventBus(history_size=5)


def test_event_defaults():
    """Events carry an id, a UTC timestamp and an empty source"""
    event = Event(event_type="test", data={"key": "value"})
    assert event.event_id
    assert event.source == ""
    assert event.timestamp.tzinfo is not None


def test_buses_are_independent():
    """The composition root owns its bus; there is no shared instance"""
    assert EventBus() is not EventBus()


def test_subscribe_and_publish(bus):
    """A subscriber receives the published event"""
    received = []
    bus.subscribe("test", received.append)
    event = Event(event_type="test", data={"msg": "hello"})
    bus.publish(event)
    assert received == [event]


def test_subscribe_same_handler_once(bus):
    """Subscribing twice delivers once"""
    received = []
    bus.subscribe("test", received.append)
    bus.subscribe("test", received.append)
    bus.publish(Event(event_type="test", data={}))
    assert len(received) == 1


def test_wildcard_subscriber(bus):
    """"*" receives every event type"""
    received = []
    bus.subscribe("*", received.append)
    bus.publish(Event(event_type="a", data={}))
    bus.publish(Event(event_type="b", data={}))
    assert [e.event_type for e in received] == ["a", "b"]


def test_unsubscribe(bus):
    received = []
    bus.subscribe("test", received.append)
    bus.unsubscribe("test", received.append)
    bus.publish(Event(event_type="test", data={}))
    assert received == []


def test_failing_handler_is_isolated(bus):
    """A handler error reaches neither the publisher nor other handlers"""
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe("test", broken)
    bus.subscribe("test", received.append)
    bus.publish(Event(event_type="test", data={}))
    assert len(received) == 1


def test_history_is_bounded_and_newest_first(bus):
    for i in range(7):
        bus.publish(Event(event_type="even" if i % 2 == 0 else "odd", data={"i": i}))

    history = bus.get_history()
    assert [e.data["i"] for e in history] == [6, 5, 4, 3, 2]
    assert [e.data["i"] for e in bus.get_history(event_type="odd")] == [5, 3]
    assert len(bus.get_history(limit=2)) == 2


def test_clear(bus):
    bus.subscribe("test", lambda e: None)
    bus.publish(Event(event_type="test", data={}))
    bus.clear()
    assert bus.get_history() == []


def test_discard_event_accepts_anything():
    discard_event(Event(event_type="test", data={}))


def test_payload_serialises_timestamps():
    """Event payload datetimes are ISO strings"""
    data = RoomChangedData(room_id="r1", field="cleaning_status", old_value="dirty", new_value="ready")
    payload = data.to_dict()
    assert isinstance(payload["timestamp"], str)
    assert payload["new_value"] == "ready"
    assert EventType.ROOM_CLEANING_CHANGED.value == "room.cleaning_changed"
