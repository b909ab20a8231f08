import gc
import json
import logging
import os
import subprocess
import sys
import textwrap
import threading
import weakref

import pytest

from signalpost.broadcast.center import BroadcastCenter, SubscriptionToken
from signalpost.broadcast.handlers import BoundMethodHandler
from signalpost.broadcast.queues import MainQueue
from signalpost.errors import InvalidChannelError
from signalpost.observers.dispatcher import EventBus
from signalpost.observers.events import Posted, ReceiverReleased


class Source:
    pass


class Recorder:
    def __init__(self): self.calls = []
    def on_event(self, n): self.calls.append(n.payload)


class Capture:
    def __init__(self): self.events = []
    def notify(self, event): self.events.append(event)


def test_dispatch_runs_handlers_in_registration_order():
    center = BroadcastCenter()
    src = Source()
    order = []
    for i in range(5):
        center.register("opened", src, lambda n, i=i: order.append((i, n.payload)))

    count = center.dispatch("opened", src, 42)

    assert count == 5
    assert order == [(0, 42), (1, 42), (2, 42), (3, 42), (4, 42)]


def test_dispatch_is_scoped_to_source_identity():
    center = BroadcastCenter()
    a, b = Source(), Source()
    seen = []
    center.register("opened", a, lambda n: seen.append("a"))
    center.register("opened", b, lambda n: seen.append("b"))

    center.dispatch("opened", a)

    assert seen == ["a"]


def test_dispatch_without_subscribers_is_a_noop():
    center = BroadcastCenter()
    assert center.dispatch("nobody", Source(), 1) == 0
    assert center.dispatch("", Source()) == 0


@pytest.mark.parametrize("name", ["", "   ", None, 7])
def test_register_rejects_invalid_channel(name):
    center = BroadcastCenter()
    with pytest.raises(InvalidChannelError):
        center.register(name, Source(), lambda n: None)


def test_unregister_stops_delivery_and_is_idempotent():
    center = BroadcastCenter()
    src = Source()
    seen = []
    token = center.register("opened", src, lambda n: seen.append(n.payload))

    center.dispatch("opened", src, 1)
    center.unregister(token)
    center.unregister(token)
    center.unregister(None)
    center.unregister(SubscriptionToken(id=999, name="opened"))
    center.dispatch("opened", src, 2)

    assert seen == [1]
    assert not center.is_registered(token)
    assert center.subscriber_count("opened", src) == 0


def test_raising_handler_does_not_block_later_handlers(caplog):
    center = BroadcastCenter()
    src = Source()
    seen = []

    def boom(n):
        raise ValueError("boom")

    center.register("opened", src, lambda n: seen.append("first"))
    center.register("opened", src, boom)
    center.register("opened", src, lambda n: seen.append("third"))

    with caplog.at_level(logging.WARNING, logger="signalpost"):
        center.dispatch("opened", src)

    assert seen == ["first", "third"]
    assert "boom" in caplog.text


def test_handler_failures_can_be_silenced(caplog):
    center = BroadcastCenter(log_handler_failures=False)
    src = Source()
    center.register("opened", src, lambda n: 1 / 0)

    with caplog.at_level(logging.WARNING, logger="signalpost"):
        center.dispatch("opened", src)

    assert caplog.records == []


def test_unregister_during_dispatch_skips_pending_handler():
    center = BroadcastCenter()
    src = Source()
    seen = []
    tokens = {}

    def first(n):
        seen.append("first")
        center.unregister(tokens["second"])

    center.register("opened", src, first)
    tokens["second"] = center.register("opened", src, lambda n: seen.append("second"))

    center.dispatch("opened", src)

    assert seen == ["first"]


def test_register_during_dispatch_applies_to_next_dispatch():
    center = BroadcastCenter()
    src = Source()
    seen = []

    def first(n):
        seen.append(("first", n.payload))
        center.register("opened", src, lambda m: seen.append(("late", m.payload)))

    token = center.register("opened", src, first)
    center.dispatch("opened", src, 1)
    center.unregister(token)
    center.dispatch("opened", src, 2)

    assert seen == [("first", 1), ("late", 2)]


def test_handler_receives_notification_with_name_and_source():
    center = BroadcastCenter()
    src = Source()
    got = []
    center.register("opened", src, got.append)

    center.dispatch("opened", src, {"k": "v"})

    n = got[0]
    assert n.name == "opened"
    assert n.source is src
    assert n.payload == {"k": "v"}


def test_bound_method_subscription_dies_with_receiver():
    center = BroadcastCenter()
    src = Source()
    rec = Recorder()
    token = center.register("opened", src, BoundMethodHandler(rec, Recorder.on_event))

    center.dispatch("opened", src, 1)
    assert rec.calls == [1]

    del rec
    gc.collect()

    assert not center.is_registered(token)
    assert center.dispatch("opened", src, 2) == 0


def test_subscriptions_are_purged_when_source_is_collected():
    center = BroadcastCenter()
    src = Source()
    token = center.register("opened", src, lambda n: None)

    del src
    gc.collect()

    assert not center.is_registered(token)


def test_deferred_handler_runs_on_owner_queue():
    center = BroadcastCenter()
    src = Source()
    queue = MainQueue()
    seen = []

    center.register("opened", src, lambda n: seen.append(("inline", threading.get_ident())))
    center.register("opened", src, lambda n: seen.append(("main", threading.get_ident())), context=queue)

    worker = threading.Thread(target=center.dispatch, args=("opened", src, 1))
    worker.start()
    worker.join()

    assert [kind for kind, _ in seen] == ["inline"]
    assert seen[0][1] != threading.get_ident()

    assert queue.run_pending() == 1
    assert seen[1] == ("main", threading.get_ident())


def test_handler_with_current_context_runs_inline():
    center = BroadcastCenter()
    src = Source()
    queue = MainQueue()
    seen = []
    center.register("opened", src, lambda n: seen.append(n.payload), context=queue)

    center.dispatch("opened", src, 5)

    assert seen == [5]
    assert queue.pending() == 0


def test_deferred_delivery_skipped_after_unregister():
    center = BroadcastCenter()
    src = Source()
    queue = MainQueue()
    seen = []
    token = center.register("opened", src, lambda n: seen.append(n.payload), context=queue)

    worker = threading.Thread(target=center.dispatch, args=("opened", src, 1))
    worker.start()
    worker.join()
    center.unregister(token)
    queue.run_pending()

    assert seen == []


def test_concurrent_registration_and_dispatch():
    center = BroadcastCenter()
    src = Source()
    hits = []
    lock = threading.Lock()

    def handler(n):
        with lock:
            hits.append(n.payload)

    def subscribe_many():
        for _ in range(200):
            center.register("tick", src, handler)

    def post_many():
        for i in range(200):
            center.dispatch("tick", src, i)

    threads = [threading.Thread(target=subscribe_many), threading.Thread(target=post_many)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert center.subscriber_count("tick", src) == 200
    before = len(hits)
    center.dispatch("tick", src, "final")
    assert len(hits) - before == 200


def test_failed_handlers_are_not_counted_as_delivered():
    cap = Capture()
    center = BroadcastCenter(diagnostics=EventBus([cap]), log_handler_failures=False)
    src = Source()
    center.register("opened", src, lambda n: None)
    center.register("opened", src, lambda n: 1 / 0)
    center.register("opened", src, lambda n: None)

    assert center.dispatch("opened", src) == 2

    posted = [e for e in cap.events if isinstance(e, Posted)]
    assert [(p.delivered, p.deferred, p.failed) for p in posted] == [(2, 0, 1)]


def test_unsubscribing_bound_methods_leaves_no_finalizers_behind():
    center = BroadcastCenter()
    src = Source()
    rec = Recorder()
    center.register("opened", src, lambda n: None)  # source finalizer is set up once
    before = len(weakref.finalize._registry)

    for _ in range(1000):
        token = center.register("opened", src, BoundMethodHandler(rec, Recorder.on_event))
        center.unregister(token)

    assert len(weakref.finalize._registry) - before < 10


def test_receiver_released_only_after_collection():
    cap = Capture()
    center = BroadcastCenter(diagnostics=EventBus([cap]))
    src = Source()
    rec = Recorder()
    center.register("opened", src, BoundMethodHandler(rec, Recorder.on_event))

    gc.collect()
    assert not [e for e in cap.events if isinstance(e, ReceiverReleased)]

    del rec
    gc.collect()

    released = [e for e in cap.events if isinstance(e, ReceiverReleased)]
    assert len(released) == 1 and released[0].channel == "opened"


def test_no_receiver_released_at_interpreter_exit(tmp_path):
    events = tmp_path / "events.jsonl"
    script = textwrap.dedent("""
        import sys
        from signalpost.broadcast.center import BroadcastCenter
        from signalpost.broadcast.handlers import BoundMethodHandler
        from signalpost.observers.dispatcher import EventBus
        from signalpost.observers.jsonfile import JsonFileObserver

        class Source:
            pass

        class Recorder:
            def on_event(self, n):
                pass

        center = BroadcastCenter(diagnostics=EventBus([JsonFileObserver(sys.argv[1])]))
        src, rec = Source(), Recorder()
        center.register("opened", src, BoundMethodHandler(rec, Recorder.on_event))
    """)
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(p for p in sys.path if p)}

    result = subprocess.run([sys.executable, "-c", script, str(events)],
                            env=env, capture_output=True, text=True)

    assert result.returncode == 0, result.stderr
    kinds = [json.loads(l)["type"] for l in events.read_text().splitlines()]
    assert kinds == ["Subscribed"]
