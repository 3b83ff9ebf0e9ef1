"""
Tests for observable values and the search debouncer.
"""
import threading
import time

from pokedex.observable import Debouncer, ObservableValue
from pokedex.network.testing import wait_until


# =============================================================================
# ObservableValue
# =============================================================================

def test_subscribers_receive_every_value_in_order():
    value = ObservableValue(0)
    first, second = [], []
    value.subscribe(first.append)
    value.subscribe(second.append)

    for n in (1, 2, 3):
        value.set(n)

    assert first == [1, 2, 3]
    assert second == [1, 2, 3]
    assert value.value == 3


def test_unsubscribe_stops_delivery():
    value = ObservableValue("a")
    seen = []
    unsubscribe = value.subscribe(seen.append)

    value.set("b")
    unsubscribe()
    unsubscribe()
    value.set("c")

    assert seen == ["b"]


def test_failing_subscriber_does_not_block_others():
    value = ObservableValue(0)
    seen = []

    def broken(_):
        raise RuntimeError("boom")

    value.subscribe(broken)
    value.subscribe(seen.append)
    value.set(1)

    assert seen == [1]


# =============================================================================
# Debouncer
# =============================================================================

def test_debouncer_delivers_last_value_once():
    delivered = []
    debouncer = Debouncer(0.05, delivered.append)

    for query in ("p", "pi", "pik"):
        debouncer.submit(query)

    assert wait_until(lambda: delivered == ["pik"])
    time.sleep(0.1)
    assert delivered == ["pik"]


def test_debouncer_waits_for_quiet_window():
    delivered = threading.Event()
    debouncer = Debouncer(0.3, lambda _: delivered.set())

    debouncer.submit("bulb")

    assert not delivered.wait(0.1)
    assert delivered.wait(1.0)


def test_flush_delivers_immediately():
    delivered = []
    debouncer = Debouncer(10.0, delivered.append)

    debouncer.submit("char")
    debouncer.flush()
    debouncer.flush()

    assert delivered == ["char"]


def test_cancel_drops_pending_value():
    delivered = []
    debouncer = Debouncer(0.05, delivered.append)

    debouncer.submit("mew")
    debouncer.cancel()
    time.sleep(0.15)

    assert delivered == []
