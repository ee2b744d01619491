"""
Kiosk screen states and the events that move between them.

Every allowed move is listed in ``TRANSITIONS``; anything else raises
``InvalidTransition`` and leaves the machine where it was.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from kiosk.engine.decision import DecisionKind

logger = logging.getLogger(__name__)


class KioskState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    CAPTURING = "capturing"
    VERIFYING = "verifying"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"
    HOLIDAY = "holiday"
    REST_DAY = "rest-day"


class KioskEvent(str, Enum):
    CONNECT = "connect"
    CONNECT_ERROR = "connect_error"
    DISCONNECT = "disconnect"
    BIOMETRIC_CONNECTED = "biometric_connected"
    BIOMETRIC_DISCONNECTED = "biometric_disconnected"
    CAPTURE = "capture"
    FINGERPRINT_CAPTURE = "fingerprint_capture"
    VERIFY_FAILED = "verify_failed"
    IDENTIFIED = "identified"
    RECORDED = "recorded"
    NON_WORKING_HOLIDAY = "holiday"
    NON_WORKING_REST_DAY = "rest_day"
    SCAN_FAILED = "scan_failed"
    RESET = "reset"
    RETRY = "retry"


class InvalidTransition(Exception):
    def __init__(self, state: KioskState, event: KioskEvent) -> None:
        self.state = state
        self.event = event
        super().__init__(f"No transition from {state.value!r} on {event.value!r}")


S, E = KioskState, KioskEvent

_OUTCOME_STATES = (S.SUCCESS, S.ERROR, S.HOLIDAY, S.REST_DAY)
_CONNECTED_STATES = (S.READY, S.CAPTURING, S.VERIFYING, S.PROCESSING) + _OUTCOME_STATES

TRANSITIONS: dict[tuple[KioskState, KioskEvent], KioskState] = {
    (S.IDLE, E.CONNECT): S.CONNECTING,
    (S.ERROR, E.CONNECT): S.CONNECTING,
    (S.IDLE, E.CONNECT_ERROR): S.ERROR,
    (S.CONNECTING, E.CONNECT_ERROR): S.ERROR,
    (S.ERROR, E.CONNECT_ERROR): S.ERROR,
    (S.CONNECTING, E.BIOMETRIC_CONNECTED): S.READY,
    (S.ERROR, E.BIOMETRIC_CONNECTED): S.READY,
    (S.READY, E.CAPTURE): S.CAPTURING,
    (S.READY, E.FINGERPRINT_CAPTURE): S.VERIFYING,
    (S.CAPTURING, E.FINGERPRINT_CAPTURE): S.VERIFYING,
    (S.VERIFYING, E.VERIFY_FAILED): S.ERROR,
    (S.VERIFYING, E.IDENTIFIED): S.PROCESSING,
    (S.PROCESSING, E.RECORDED): S.SUCCESS,
    (S.PROCESSING, E.NON_WORKING_HOLIDAY): S.HOLIDAY,
    (S.PROCESSING, E.NON_WORKING_REST_DAY): S.REST_DAY,
    (S.PROCESSING, E.SCAN_FAILED): S.ERROR,
    (S.ERROR, E.RETRY): S.IDLE,
}
for _state in _OUTCOME_STATES:
    TRANSITIONS[(_state, E.RESET)] = S.READY
for _state in (S.CONNECTING,) + _CONNECTED_STATES:
    TRANSITIONS[(_state, E.DISCONNECT)] = S.ERROR
    TRANSITIONS[(_state, E.BIOMETRIC_DISCONNECTED)] = S.ERROR

# Scan outcome -> event that reports it.
OUTCOME_EVENTS: dict[DecisionKind, KioskEvent] = {
    DecisionKind.HOLIDAY: E.NON_WORKING_HOLIDAY,
    DecisionKind.REST_DAY: E.NON_WORKING_REST_DAY,
    DecisionKind.CHECK_IN: E.RECORDED,
    DecisionKind.CHECK_OUT: E.RECORDED,
    DecisionKind.ALREADY_COMPLETED: E.RECORDED,
}

Listener = Callable[[KioskState, KioskEvent, KioskState], None]


class KioskStateMachine:
    def __init__(self, initial: KioskState = KioskState.IDLE) -> None:
        self.state = initial
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def can(self, event: KioskEvent) -> bool:
        return (self.state, event) in TRANSITIONS

    def fire(self, event: KioskEvent) -> KioskState:
        try:
            target = TRANSITIONS[(self.state, event)]
        except KeyError:
            raise InvalidTransition(self.state, event) from None

        previous, self.state = self.state, target
        logger.debug("Kiosk %s --%s--> %s", previous.value, event.value, target.value)
        for listener in self._listeners:
            listener(previous, event, target)
        return target
