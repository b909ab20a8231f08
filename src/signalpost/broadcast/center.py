# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import itertools
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..errors import InvalidChannelError
from .handlers import BoundMethodHandler, ClosureHandler, Handler, Notification
from .queues import ExecutionContext

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    BaseEvent,
    Subscribed,
    Unsubscribed,
    ReceiverReleased,
    SourceReleased,
    Posted,
    HandlerFailed,
    EventUnresolved,
)

log = logging.getLogger("signalpost")

_Key = Tuple[str, int]

# outcome of one delivery
_DELIVERED = "delivered"
_FAILED = "failed"
_GONE = "gone"


@dataclass(frozen=True)
class SubscriptionToken:
    """Opaque handle returned by register(); pass it back to unregister()."""

    id: int
    name: str


class _Subscription:
    __slots__ = ("token", "key", "handler", "context", "active", "release")

    def __init__(self, token: SubscriptionToken, key: _Key, handler: Handler,
                 context: Optional[ExecutionContext]):
        self.token = token
        self.key = key
        self.handler = handler
        self.context = context
        self.active = True
        self.release: Optional[weakref.finalize] = None

    def retire(self) -> None:
        self.active = False
        if self.release is not None:
            self.release.detach()
            self.release = None


def _valid_name(name: Any) -> bool:
    return isinstance(name, str) and bool(name.strip())


def _release_receiver(center_ref: "weakref.ref[BroadcastCenter]", token: SubscriptionToken) -> None:
    center = center_ref()
    if center is not None:
        center._receiver_released(token)


def _release_source(center_ref: "weakref.ref[BroadcastCenter]", source_id: int, source_type: str) -> None:
    center = center_ref()
    if center is not None:
        center._purge_source(source_id, source_type)


class BroadcastCenter:
    """
    String-keyed publish/subscribe registry.

    Subscriptions are keyed by (channel name, source identity); dispatch runs
    the handlers of exactly one key in registration order. Handler failures
    are logged and reported to the diagnostics bus, never raised to the poster.

    Usage:
        center = BroadcastCenter()
        token = center.register("opened", door, on_opened)
        center.dispatch("opened", door, payload=42)
        center.unregister(token)
    """

    def __init__(
        self,
        name: str = "default",
        diagnostics: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        log_handler_failures: bool = True,
    ):
        self.name = name
        self.diagnostics = diagnostics
        self.log_handler_failures = log_handler_failures
        self._ctx = new_ctx(center=name, run_id=run_id)
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._subs: Dict[_Key, List[_Subscription]] = {}
        self._by_token: Dict[int, _Subscription] = {}
        self._watched_sources: Dict[int, weakref.finalize] = {}

    @property
    def run_id(self) -> str:
        return self._ctx["run_id"]

    # ==================== REGISTRATION ====================

    def register(
        self,
        name: str,
        source: Any,
        handler: Union[Handler, Callable[[Notification], Any]],
        context: Optional[ExecutionContext] = None,
    ) -> SubscriptionToken:
        if not _valid_name(name):
            raise InvalidChannelError(f"invalid channel name: {name!r}")
        if not isinstance(handler, Handler):
            handler = ClosureHandler(handler)

        key = (name, id(source))
        with self._lock:
            token = SubscriptionToken(id=next(self._ids), name=name)
            sub = _Subscription(token, key, handler, context)
            self._subs.setdefault(key, []).append(sub)
            self._by_token[token.id] = sub
            self._watch_source(source)
            if isinstance(handler, BoundMethodHandler):
                sub.release = handler.on_release(
                    lambda ref=weakref.ref(self), t=token: _release_receiver(ref, t)
                )

        log.debug("subscribed %s on %s/%s (token=%s)", handler.label, name, type(source).__name__, token.id)
        self._emit(Subscribed, channel=name, source=type(source).__name__,
                   token_id=token.id, handler=handler.label)
        return token

    def unregister(self, token: Optional[SubscriptionToken]) -> None:
        if token is None:
            return
        sub = self._remove(token)
        if sub is None:
            log.debug("unregister of unknown token %s ignored", token)
            return
        self._emit(Unsubscribed, channel=token.name, token_id=token.id)

    def is_registered(self, token: Optional[SubscriptionToken]) -> bool:
        if token is None:
            return False
        with self._lock:
            return token.id in self._by_token

    def subscriber_count(self, name: str, source: Any) -> int:
        with self._lock:
            return len(self._subs.get((name, id(source)), []))

    # ==================== DISPATCH ====================

    def dispatch(self, name: str, source: Any, payload: Any = None) -> int:
        """
        Deliver payload to every handler registered for (name, source).

        Returns the number of handlers that completed or were scheduled.
        Handlers that raised are reported as failed and not counted.
        """
        if not _valid_name(name):
            return 0
        with self._lock:
            snapshot = list(self._subs.get((name, id(source)), ()))
        if not snapshot:
            return 0

        notification = Notification(name=name, source=source, payload=payload)
        delivered = 0
        deferred = 0
        failed = 0
        for sub in snapshot:
            if not sub.active:
                continue
            if sub.context is not None and not sub.context.is_current():
                try:
                    sub.context.submit(lambda s=sub: self._deliver(s, notification))
                except Exception as exc:
                    log.warning("could not defer %s on %s", sub.handler.label, name, exc_info=True)
                    self._emit(HandlerFailed, channel=name, handler=sub.handler.label,
                               error=f"{type(exc).__name__}: {exc}")
                    failed += 1
                    continue
                deferred += 1
                continue
            outcome = self._deliver(sub, notification)
            if outcome == _DELIVERED:
                delivered += 1
            elif outcome == _FAILED:
                failed += 1

        self._emit(Posted, channel=name, source=type(source).__name__,
                   delivered=delivered, deferred=deferred, failed=failed)
        return delivered + deferred

    def _deliver(self, sub: _Subscription, notification: Notification) -> str:
        if not sub.active:
            return _GONE
        try:
            invoked = sub.handler.invoke(notification)
        except Exception as exc:
            if self.log_handler_failures:
                log.warning("handler %s failed on %s", sub.handler.label, notification.name, exc_info=True)
            self._emit(HandlerFailed, channel=notification.name, handler=sub.handler.label,
                       error=f"{type(exc).__name__}: {exc}")
            return _FAILED
        if not invoked:
            self._receiver_released(sub.token)
            return _GONE
        return _DELIVERED

    # ==================== DIAGNOSTICS ====================

    def report_unresolved(self, entity: Any, event: Any, reason: str) -> None:
        """Hook for events that could not be turned into a channel name."""
        log.debug("dropping unresolved event %r on %s: %s", event, type(entity).__name__, reason)
        self._emit(EventUnresolved, entity=type(entity).__name__, event=repr(event), reason=reason)

    def _emit(self, event_cls: type, **fields: Any) -> None:
        if self.diagnostics is None:
            return
        event: BaseEvent = event_cls(**fields, **new_ctx(center=self.name, run_id=self.run_id))
        self.diagnostics.emit(event)

    # ==================== INTERNALS ====================

    def _remove(self, token: SubscriptionToken) -> Optional[_Subscription]:
        with self._lock:
            sub = self._by_token.pop(token.id, None)
            if sub is None:
                return None
            sub.retire()
            subs = self._subs.get(sub.key)
            if subs is not None:
                subs.remove(sub)
                if not subs:
                    del self._subs[sub.key]
            return sub

    def _receiver_released(self, token: SubscriptionToken) -> None:
        if self._remove(token) is not None:
            log.debug("receiver gone, dropped token %s on %s", token.id, token.name)
            self._emit(ReceiverReleased, channel=token.name, token_id=token.id)

    def _watch_source(self, source: Any) -> None:
        source_id = id(source)
        if source_id in self._watched_sources:
            return
        try:
            fin = weakref.finalize(source, _release_source, weakref.ref(self),
                                   source_id, type(source).__name__)
        except TypeError:
            return  # not weakly referenceable; keyed by id() for as long as it lives
        fin.atexit = False
        self._watched_sources[source_id] = fin

    def _purge_source(self, source_id: int, source_type: str) -> None:
        with self._lock:
            self._watched_sources.pop(source_id, None)
            dropped = 0
            for key in [k for k in self._subs if k[1] == source_id]:
                for sub in self._subs.pop(key):
                    sub.retire()
                    self._by_token.pop(sub.token.id, None)
                    dropped += 1
        if dropped:
            log.debug("source %s gone, dropped %d subscription(s)", source_type, dropped)
            self._emit(SourceReleased, source=source_type, dropped=dropped)
