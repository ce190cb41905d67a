"""Tests for the change bus."""

import logging

from tokensmith.core.change_bus import ChangeBus
from tokensmith.core.ir import ChangeEvent


class Recorder:
    """Handler that records every event it sees."""

    def __init__(self, label: str = "", log: list | None = None) -> None:
        self.label = label
        self.log = log if log is not None else []
        self.events: list[ChangeEvent] = []

    def __call__(self, event: ChangeEvent) -> None:
        self.events.append(event)
        self.log.append(self.label)


# =============================================================================
# Events
# =============================================================================


class TestChangeEvent:
    def test_for_names_deduplicates_in_order(self):
        event = ChangeEvent.for_names("b", "a", "b")
        assert event.names == ("b", "a")
        assert not event.all

    def test_merge_unions_names(self):
        merged = ChangeEvent.for_names("a").merge(ChangeEvent.for_names("b", "a"))
        assert merged.names == ("a", "b")

    def test_full_reset_absorbs_names(self):
        merged = ChangeEvent.for_names("a").merge(ChangeEvent.full_reset())
        assert merged.all
        assert merged.names == ()

    def test_full_reset_drops_names(self):
        assert ChangeEvent(names=("a",), all=True).names == ()

    def test_affects(self):
        assert ChangeEvent.for_names("a").affects("a")
        assert not ChangeEvent.for_names("a").affects("b")
        assert ChangeEvent.full_reset().affects("anything")

    def test_payload(self):
        assert ChangeEvent.full_reset().as_payload() == {"all": True}
        assert ChangeEvent.for_names("a").as_payload() == {"names": ["a"]}


# =============================================================================
# Bus
# =============================================================================


class TestChangeBus:
    def test_handlers_run_in_registration_order(self):
        bus = ChangeBus()
        order: list[str] = []
        bus.subscribe(Recorder("first", order))
        bus.subscribe(Recorder("second", order))

        bus.publish(ChangeEvent.for_names("a"))

        assert order == ["first", "second"]

    def test_duplicate_subscription_is_ignored(self):
        bus = ChangeBus()
        handler = Recorder()
        bus.subscribe(handler)
        bus.subscribe(handler)

        bus.publish(ChangeEvent.full_reset())

        assert bus.subscriber_count == 1
        assert len(handler.events) == 1

    def test_unsubscribe(self):
        bus = ChangeBus()
        handler = Recorder()
        subscription = bus.subscribe(handler)
        subscription.unsubscribe()

        bus.publish(ChangeEvent.full_reset())

        assert handler.events == []
        assert bus.subscriber_count == 0

    def test_subscribing_during_dispatch_takes_effect_next_time(self):
        bus = ChangeBus()
        late = Recorder()

        def adds_late(event: ChangeEvent) -> None:
            bus.subscribe(late)

        bus.subscribe(adds_late)
        bus.publish(ChangeEvent.for_names("a"))
        assert late.events == []

        bus.publish(ChangeEvent.for_names("b"))
        assert late.events == [ChangeEvent.for_names("b")]

    def test_reentrant_publishes_are_coalesced(self):
        bus = ChangeBus()
        seen = Recorder()

        def republishes(event: ChangeEvent) -> None:
            if event.names == ("a",):
                bus.publish(ChangeEvent.for_names("b"))
                bus.publish(ChangeEvent.for_names("c", "b"))

        bus.subscribe(republishes)
        bus.subscribe(seen)
        bus.publish(ChangeEvent.for_names("a"))

        assert seen.events == [ChangeEvent.for_names("a"), ChangeEvent.for_names("b", "c")]

    def test_endless_republishing_is_capped(self, caplog):
        bus = ChangeBus(max_rounds=3)
        seen = Recorder()

        def always_republishes(event: ChangeEvent) -> None:
            bus.publish(ChangeEvent.full_reset())

        bus.subscribe(always_republishes)
        bus.subscribe(seen)
        with caplog.at_level(logging.WARNING, logger="tokensmith.core.change_bus"):
            bus.publish(ChangeEvent.for_names("a"))

        assert len(seen.events) == 3
        assert "exceeded 3 dispatch rounds" in caplog.text

    def test_failing_handler_does_not_stop_others(self, caplog):
        bus = ChangeBus()
        seen = Recorder()

        def broken(event: ChangeEvent) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(seen)
        with caplog.at_level(logging.ERROR, logger="tokensmith.core.change_bus"):
            bus.publish(ChangeEvent.for_names("a"))

        assert len(seen.events) == 1
        assert "boom" in caplog.text

    def test_bus_is_usable_after_handler_failure(self):
        bus = ChangeBus()
        seen = Recorder()

        def broken(event: ChangeEvent) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(seen)
        bus.publish(ChangeEvent.for_names("a"))
        bus.publish(ChangeEvent.for_names("b"))

        assert [event.names for event in seen.events] == [("a",), ("b",)]
