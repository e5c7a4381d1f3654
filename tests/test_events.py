# tests/test_events.py

from __future__ import annotations

import logging

import pytest

from project_tms.core.events import EventBus
from project_tms.errors import PersistenceError


def test_publish_reaches_subscribers_in_order() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe("x", lambda p: seen.append(f"a{p['n']}"))
    bus.subscribe("x", lambda p: seen.append(f"b{p['n']}"))
    bus.subscribe("y", lambda p: seen.append("y"))

    bus.publish("x", {"n": 1})

    assert seen == ["a1", "b1"]


def test_unsubscribe() -> None:
    bus = EventBus()
    seen: list[dict] = []
    unsubscribe = bus.subscribe("x", seen.append)
    assert bus.subscriber_count("x") == 1

    unsubscribe()
    unsubscribe()
    bus.publish("x", {})

    assert seen == []
    assert bus.subscriber_count("x") == 0


def test_events_published_during_delivery_are_queued() -> None:
    bus = EventBus()
    order: list[str] = []

    def first(_p) -> None:
        order.append("first:start")
        bus.publish("second", {})
        order.append("first:end")

    bus.subscribe("first", first)
    bus.subscribe("second", lambda _p: order.append("second"))

    bus.publish("first", {})

    assert order == ["first:start", "first:end", "second"]


def test_failing_handler_is_logged_and_others_still_run(caplog) -> None:
    bus = EventBus()
    seen: list[str] = []

    def boom(_p) -> None:
        raise RuntimeError("handler bug")

    bus.subscribe("x", boom)
    bus.subscribe("x", lambda _p: seen.append("ok"))

    with caplog.at_level(logging.ERROR, logger="project_tms.core.events"):
        bus.publish("x", {})
        bus.publish("x", {})

    assert seen == ["ok", "ok"]
    assert "Event handler failed" in caplog.text


def test_domain_error_from_handler_reaches_publisher_after_fan_out() -> None:
    bus = EventBus()
    seen: list[str] = []

    def reject(_p) -> None:
        raise PersistenceError("Failed to save tasks")

    bus.subscribe("x", reject)
    bus.subscribe("x", lambda _p: seen.append("ok"))

    with pytest.raises(PersistenceError):
        bus.publish("x", {})
    assert seen == ["ok"]

    # The bus is usable again afterwards.
    bus.publish("y", {})
