"""Tests for the typed event bus."""

from targetconfig.rules.labels import BuildLabel
from targetconfig.runtime.eventbus import BusyChanged, EventBus, SelectionChanged


def test_events_are_routed_by_class() -> None:
    bus = EventBus()
    selections, busy = [], []
    bus.subscribe(SelectionChanged, selections.append)
    bus.subscribe(BusyChanged, busy.append)

    bus.publish(SelectionChanged(BuildLabel("//a:a"), True))
    bus.publish(BusyChanged(False))

    assert selections == [SelectionChanged(BuildLabel("//a:a"), True)]
    assert busy == [BusyChanged(False)]


def test_unsubscribe() -> None:
    bus = EventBus()
    seen = []
    sid = bus.subscribe(BusyChanged, seen.append)

    assert bus.unsubscribe(sid)
    assert not bus.unsubscribe(sid)
    bus.publish(BusyChanged(True))
    assert seen == []


def test_failing_handler_does_not_block_others() -> None:
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe(BusyChanged, broken)
    bus.subscribe(BusyChanged, seen.append)
    bus.publish(BusyChanged(True))

    assert seen == [BusyChanged(True)]


def test_subscriber_count_and_clear() -> None:
    bus = EventBus()
    bus.subscribe(BusyChanged, lambda e: None)
    bus.subscribe(SelectionChanged, lambda e: None)

    assert bus.subscriber_count() == 2
    bus.clear_subscribers(BusyChanged)
    assert bus.subscriber_count(BusyChanged) == 0
    bus.clear_subscribers()
    assert bus.subscriber_count() == 0


def test_events_are_shared_with_the_rule_model() -> None:
    from targetconfig.rules import events

    assert SelectionChanged is events.SelectionChanged
    assert BusyChanged is events.BusyChanged
