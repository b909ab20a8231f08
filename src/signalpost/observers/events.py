# src/signalpost/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one process run
    center: str       # name of the BroadcastCenter that emitted it

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(center: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "center": center,
    }


# ---------------------------------------------------------------------
# Subscription lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class Subscribed(BaseEvent):
    channel: str
    source: str       # type name of the source entity
    token_id: int
    handler: str

@dataclass(frozen=True)
class Unsubscribed(BaseEvent):
    channel: str
    token_id: int

@dataclass(frozen=True)
class ReceiverReleased(BaseEvent):
    channel: str
    token_id: int

@dataclass(frozen=True)
class SourceReleased(BaseEvent):
    source: str
    dropped: int


# ---------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class Posted(BaseEvent):
    channel: str
    source: str
    delivered: int
    deferred: int
    failed: int = 0  # handlers that raised, not counted as delivered

@dataclass(frozen=True)
class HandlerFailed(BaseEvent):
    channel: str
    handler: str
    error: str

@dataclass(frozen=True)
class EventUnresolved(BaseEvent):
    entity: str
    event: str
    reason: str
