from easy_amm.core.events import Event


def test_single_subscriber_receives_value_once():
    event = Event("price")
    received = []
    event.subscribe(received.append)
    event.publish(42)
    assert received == [42]


def test_handlers_called_in_subscription_order():
    event = Event("price")
    calls = []
    for name in ("a", "b", "c"):
        event.subscribe(lambda value, name=name: calls.append((name, value)))
    event.publish(7)
    assert calls == [("a", 7), ("b", 7), ("c", 7)]


def test_unsubscribed_handler_gets_nothing_more():
    event = Event("price")
    first, second = [], []
    event.subscribe(first.append)
    event.subscribe(second.append)
    event.publish(1)
    event.unsubscribe(first.append)
    event.publish(2)
    assert first == [1]
    assert second == [1, 2]


def test_unsubscribe_unknown_handler_is_noop():
    event = Event("price")
    event.unsubscribe(print)
    assert len(event) == 0


def test_failing_handler_does_not_stop_the_rest():
    event = Event("price")
    received = []

    def boom(value):
        raise RuntimeError("handler exploded")

    event.subscribe(boom)
    event.subscribe(received.append)
    event.publish("x")
    assert received == ["x"]


def test_handler_added_during_publish_waits_for_next_publish():
    event = Event("price")
    late = []

    def adder(value):
        event.subscribe(late.append)

    event.subscribe(adder)
    event.publish(1)
    assert late == []
    event.unsubscribe(adder)
    event.publish(2)
    assert late == [2]
