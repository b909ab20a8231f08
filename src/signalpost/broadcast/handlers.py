# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/signalpost/broadcast/handlers.py

from __future__ import annotations

import inspect
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union


@dataclass(frozen=True)
class Notification:
    name: str         # channel name the post was made on
    source: Any       # entity instance that posted
    payload: Any = None


class Handler:
    """
    Delivery target stored in the broadcast registry.

    invoke() returns False when the target is gone and nothing was called.
    """

    label: str = "handler"

    def invoke(self, notification: Notification) -> bool:
        raise NotImplementedError

    @property
    def alive(self) -> bool:
        return True


class ClosureHandler(Handler):
    def __init__(self, fn: Callable[[Notification], Any]):
        if not callable(fn):
            raise TypeError(f"handler must be callable, got {type(fn).__name__}")
        self.fn = fn
        self.label = getattr(fn, "__qualname__", repr(fn))

    def invoke(self, notification: Notification) -> bool:
        self.fn(notification)
        return True


class BoundMethodHandler(Handler):
    """
    Receiver held weakly, function resolved once at registration.

    Receivers that cannot be weakly referenced are held strongly.
    """

    def __init__(self, receiver: Any, func: Callable[[Any, Notification], Any]):
        self.func = func
        self.label = f"{type(receiver).__name__}.{getattr(func, '__name__', 'method')}"
        try:
            self._ref = weakref.ref(receiver)
        except TypeError:
            self._ref = lambda: receiver

    @property
    def receiver(self) -> Optional[Any]:
        return self._ref()

    @property
    def alive(self) -> bool:
        return self._ref() is not None

    def invoke(self, notification: Notification) -> bool:
        receiver = self._ref()
        if receiver is None:
            return False
        self.func(receiver, notification)
        return True

    def on_release(self, callback: Callable[[], None]) -> Optional[weakref.finalize]:
        """
        Run callback once the receiver is garbage collected, never at exit.

        Returns the finalizer so the caller can detach it, or None when the
        receiver is gone or held strongly.
        """
        receiver = self._ref()
        if receiver is None:
            return None
        try:
            fin = weakref.finalize(receiver, callback)
        except TypeError:
            return None  # strongly held receiver never goes away under us
        fin.atexit = False
        return fin


def resolve_method(
    receiver: Any, method: Union[str, Callable[..., Any]]
) -> Optional[Callable[[Any, Notification], Any]]:
    """
    Turn a method name, plain function or bound method into a plain function
    to be called as func(receiver, notification). None when it does not resolve.
    """
    if isinstance(method, str):
        func = getattr(type(receiver), method, None)
        if not inspect.isfunction(func):
            return None
        if isinstance(inspect.getattr_static(receiver, method, None), (staticmethod, classmethod)):
            return None
        return func
    if inspect.ismethod(method):
        if method.__self__ is not receiver:
            return None
        return method.__func__
    if callable(method):
        return method
    return None


def make_bound_handler(
    receiver: Any, method: Union[str, Callable[..., Any]]
) -> Optional[BoundMethodHandler]:
    func = resolve_method(receiver, method)
    if func is None:
        return None
    return BoundMethodHandler(receiver, func)
