import threading
from dataclasses import dataclass

import pytest

from himo.events import Broker, Bus, Publisher


@dataclass
class UserCreated:
    name: str


@dataclass
class UserDeleted:
    name: str


def test_handlers_run_in_subscription_order():
    bus = Bus(UserCreated)
    seen = []
    bus.subscribe(lambda e: seen.append(("first", e.name)))
    bus.subscribe(lambda e: seen.append(("second", e.name)))
    bus.publish(UserCreated("ann"))
    assert seen == [("first", "ann"), ("second", "ann")]


def test_publish_wrong_type_raises_only_with_handlers():
    bus = Bus(UserCreated)
    assert bus.publish(42) is None
    seen = []
    bus.subscribe(seen.append)
    with pytest.raises(TypeError, match="invalid event type"):
        bus.publish(42)
    assert seen == []


def test_handler_failures_are_joined():
    bus = Bus(UserCreated)
    seen = []

    def fail_one(event):
        raise RuntimeError("one")

    def fail_two(event):
        raise ValueError("two")

    bus.subscribe(fail_one)
    bus.subscribe(seen.append)
    bus.subscribe(fail_two)
    event = UserCreated("bob")
    with pytest.raises(ExceptionGroup) as info:
        bus.publish(event)
    assert [str(e) for e in info.value.exceptions] == ["one", "two"]
    assert seen == [event]


def test_subscribe_async_runs_in_background():
    bus = Bus(UserCreated)
    done = threading.Event()
    received = []

    def handler(event):
        received.append(event)
        done.set()

    bus.subscribe_async(handler)
    event = UserCreated("cat")
    bus.publish(event)
    assert done.wait(timeout=5)
    assert received == [event]


def test_async_handler_errors_do_not_propagate():
    bus = Bus(UserCreated)
    done = threading.Event()

    def handler(event):
        done.set()
        raise RuntimeError("boom")

    bus.subscribe_async(handler)
    assert bus.publish(UserCreated("dan")) is None
    assert done.wait(timeout=5)


def test_set_async_handler_wraps_subscriptions():
    bus = Bus(UserCreated)
    wrapped = []

    def wrapper(handler):
        def run(event):
            wrapped.append(event.name)
            handler(event)

        return run

    bus.set_async_handler(wrapper)
    seen = []
    bus.subscribe_async(seen.append)
    event = UserCreated("eve")
    bus.publish(event)
    assert wrapped == ["eve"]
    assert seen == [event]


def test_set_async_handler_rejects_none():
    with pytest.raises(ValueError, match="nil async handler"):
        Bus(UserCreated).set_async_handler(None)


def test_key_names_builtin_type():
    assert Bus(str).key() == "builtins.str"


def test_keys_differ_between_types():
    assert Bus(UserCreated).key() != Bus(UserDeleted).key()
    assert Bus(UserCreated).key() == Bus(UserCreated).key()
    assert Bus(UserCreated).key().endswith("UserCreated")


def test_bus_used_as_publisher_delivers_events():
    bus = Bus(str)
    seen = []
    bus.subscribe(seen.append)
    publisher = bus
    assert isinstance(publisher, Publisher)
    assert publisher.key() == "builtins.str"
    assert publisher.publish("hello") is None
    assert seen == ["hello"]


def test_broker_routes_by_type():
    broker = Broker()
    created, deleted = Bus(UserCreated), Bus(UserDeleted)
    created_seen, deleted_seen = [], []
    created.subscribe(created_seen.append)
    deleted.subscribe(deleted_seen.append)
    broker.register_bus(created)
    broker.register_bus(deleted)
    broker.publish(UserCreated("fay"))
    broker.publish(UserDeleted("gus"))
    assert created_seen == [UserCreated("fay")]
    assert deleted_seen == [UserDeleted("gus")]


def test_broker_rejects_none():
    with pytest.raises(ValueError, match="event is nil"):
        Broker().publish(None)


def test_broker_unknown_type():
    broker = Broker()
    broker.register_bus(Bus(UserCreated))
    with pytest.raises(LookupError, match="not found"):
        broker.publish(UserDeleted("hal"))


def test_broker_register_replaces_same_key():
    broker = Broker()
    first, second = Bus(UserCreated), Bus(UserCreated)
    first_seen, second_seen = [], []
    first.subscribe(first_seen.append)
    second.subscribe(second_seen.append)
    broker.register_bus(first)
    broker.register_bus(second)
    broker.publish(UserCreated("ivy"))
    assert first_seen == []
    assert second_seen == [UserCreated("ivy")]


def test_broker_propagates_handler_errors():
    broker = Broker()
    bus = Bus(UserCreated)

    def fail(event):
        raise RuntimeError(event.name)

    bus.subscribe(fail)
    broker.register_bus(bus)
    with pytest.raises(ExceptionGroup) as info:
        broker.publish(UserCreated("jay"))
    assert [str(e) for e in info.value.exceptions] == ["jay"]