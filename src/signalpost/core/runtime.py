# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/signalpost/core/runtime.py

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from ..broadcast.center import BroadcastCenter
from ..config.models import SignalpostConfig
from ..observers.console import ConsoleObserver
from ..observers.dispatcher import EventBus
from ..observers.interface import Observer
from ..observers.jsonfile import JsonFileObserver
from ..observers.logger import LoggerObserver

log = logging.getLogger("signalpost")

_default: Optional[BroadcastCenter] = None
_default_lock = threading.Lock()


def build_center(
    cfg: Optional[SignalpostConfig] = None,
    logger: Optional[logging.Logger] = None,
    run_id: Optional[str] = None,
) -> BroadcastCenter:
    """
    Build a BroadcastCenter and its diagnostics observers from config.
    """
    cfg = cfg or SignalpostConfig()
    diagnostics: Optional[EventBus] = None

    if cfg.diagnostics.enabled:
        observers: List[Observer] = []
        if cfg.diagnostics.log_events:
            observers.append(LoggerObserver(logger or log))
        if cfg.diagnostics.console:
            observers.append(ConsoleObserver())
        if cfg.diagnostics.jsonfile is not None:
            observers.append(JsonFileObserver(cfg.diagnostics.jsonfile))
        diagnostics = EventBus(observers=observers)

    center = BroadcastCenter(
        name=cfg.center.name,
        diagnostics=diagnostics,
        run_id=run_id,
        log_handler_failures=cfg.center.log_handler_failures,
    )
    log.debug("built center %s (diagnostics=%s)", center.name, diagnostics is not None)
    return center


def default_center() -> BroadcastCenter:
    """Process default center, created on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = BroadcastCenter()
        return _default


def install_default_center(center: Optional[BroadcastCenter]) -> Optional[BroadcastCenter]:
    """
    Replace the process default (at startup, or between tests).
    Passing None resets it so the next default_center() builds a fresh one.
    Returns the previous default.
    """
    global _default
    with _default_lock:
        previous, _default = _default, center
    return previous
