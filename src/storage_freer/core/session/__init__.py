"""Scan session orchestration, observer notifications and phase tracking."""

from __future__ import annotations

from .event_bus import (
    Event,
    EventBus,
    EventBusError,
    EventHandler,
    EventSubscriptionError,
    EventTopic,
)
from .scan_session import (
    BATCH_COMPLETED,
    ENTRY_UPDATED,
    EXPAND_COMPLETED,
    SCAN_COMPLETED,
    SCAN_LISTED,
    SCAN_STARTED,
    STATE_CHANGED,
    ScanSession,
)
from .state_machine import ScanStateMachine, StateTransitionError

__all__ = [
    # Session
    "ScanSession",
    "ScanStateMachine",
    "StateTransitionError",
    # Event Bus Components
    "Event",
    "EventBus",
    "EventBusError",
    "EventHandler",
    "EventSubscriptionError",
    "EventTopic",
    # Topics
    "BATCH_COMPLETED",
    "ENTRY_UPDATED",
    "EXPAND_COMPLETED",
    "SCAN_COMPLETED",
    "SCAN_LISTED",
    "SCAN_STARTED",
    "STATE_CHANGED",
]
