"""EventBus tests."""

from stepsos.bus import EventBus


def test_publish_without_listeners_is_not_retained():
    bus = EventBus()
    event = bus.publish("step:start", {"executionId": "e1"})
    assert event.event == "step:start"

    received = []
    bus.subscribe(received.append)
    assert received == []


def test_listeners_receive_events_in_registration_order():
    bus = EventBus()
    calls = []
    bus.subscribe(lambda e: calls.append(("first", e.event)))
    bus.subscribe(lambda e: calls.append(("second", e.event)))

    bus.publish("execution:complete", {"executionId": "e1"})
    assert calls == [("first", "execution:complete"), ("second", "execution:complete")]


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(received.append)
    bus.publish("a")
    unsubscribe()
    unsubscribe()
    bus.publish("b")
    assert [e.event for e in received] == ["a"]
    assert bus.listener_count == 0


def test_failing_listener_is_dropped_and_others_still_receive():
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("socket gone")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    bus.publish("first")
    bus.publish("second")

    assert [e.event for e in received] == ["first", "second"]
    assert bus.listener_count == 1


def test_subscribe_during_delivery_takes_effect_next_publish():
    bus = EventBus()
    late = []

    def joiner(event):
        if event.event == "first":
            bus.subscribe(late.append)

    bus.subscribe(joiner)
    bus.publish("first")
    bus.publish("second")
    assert [e.event for e in late] == ["second"]


def test_event_carries_timestamp_and_round_trips_json():
    bus = EventBus()
    event = bus.publish("step:failed", {"stepId": "validate", "error": "boom"})
    assert event.timestamp
    assert '"event":"step:failed"' in event.to_json()
