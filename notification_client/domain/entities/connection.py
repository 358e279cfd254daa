"""Connection lifecycle values for the notification websocket.

The state machine is kept free of side effects: :func:`transition` maps a
status and an event to the next status, while the manager in the
infrastructure layer performs the actual transport work.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from notification_client.domain.exceptions import InvalidTransitionError

NORMAL_CLOSURE = 1000
NO_STATUS_RECEIVED = 1005
ABNORMAL_CLOSURE = 1006
POLICY_VIOLATION = 1008

UNAUTHORIZED_CLOSE_CODES = frozenset({POLICY_VIOLATION, 4001, 4401, 4010, 401, 4403})
UNSPECIFIED_CLOSE_CODES = frozenset({NO_STATUS_RECEIVED, ABNORMAL_CLOSURE})
UNAUTHORIZED_REASON_MARKERS = ("unauthorized", "401")

JITTER_MIN = 0.8
JITTER_MAX = 1.2


class ConnectionStatus(str, Enum):
    """Observable status of the notification connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"

    def __str__(self) -> str:
        return self.value


class ConnectionEvent(str, Enum):
    """Events that drive :class:`ConnectionStatus` transitions."""

    CONNECT_REQUESTED = "connect_requested"
    OPENED = "opened"
    CLOSED = "closed"
    DISCONNECT_REQUESTED = "disconnect_requested"

    def __str__(self) -> str:
        return self.value


_TRANSITIONS: dict[tuple[ConnectionStatus, ConnectionEvent], ConnectionStatus] = {
    (ConnectionStatus.DISCONNECTED, ConnectionEvent.CONNECT_REQUESTED): ConnectionStatus.CONNECTING,
    (ConnectionStatus.DISCONNECTED, ConnectionEvent.CLOSED): ConnectionStatus.DISCONNECTED,
    (ConnectionStatus.CONNECTING, ConnectionEvent.OPENED): ConnectionStatus.CONNECTED,
    (ConnectionStatus.CONNECTING, ConnectionEvent.CLOSED): ConnectionStatus.DISCONNECTED,
    (ConnectionStatus.CONNECTED, ConnectionEvent.CLOSED): ConnectionStatus.DISCONNECTED,
}


def transition(status: ConnectionStatus, event: ConnectionEvent) -> ConnectionStatus:
    """Return the status reached by applying ``event`` to ``status``."""

    if event is ConnectionEvent.DISCONNECT_REQUESTED:
        return ConnectionStatus.DISCONNECTED
    try:
        return _TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(status, event) from None


@dataclass(frozen=True)
class CloseEvent:
    """Close information reported by the transport."""

    code: int
    reason: str = ""

    @property
    def is_clean(self) -> bool:
        return self.code == NORMAL_CLOSURE


def is_unauthorized_close(event: CloseEvent, *, token_expired: bool) -> bool:
    """Decide whether a close means the server rejected our credentials.

    Unspecified closures (1005/1006) only count when the held token is
    already known to be expired; the code alone is also produced by plain
    network failures.
    """

    if event.code in UNAUTHORIZED_CLOSE_CODES:
        return True
    if event.code in UNSPECIFIED_CLOSE_CODES and token_expired:
        return True
    reason = (event.reason or "").lower()
    return any(marker in reason for marker in UNAUTHORIZED_REASON_MARKERS)


def draw_jitter() -> float:
    return random.uniform(JITTER_MIN, JITTER_MAX)


def compute_backoff_delay(
    attempt: int,
    *,
    base_delay: float,
    max_delay: float,
    jitter: float | None = None,
) -> float:
    """Return ``min(max_delay, base_delay * 2 ** attempt) * jitter`` in seconds."""

    if attempt < 0:
        raise ValueError("attempt must be non-negative")
    factor = draw_jitter() if jitter is None else jitter
    # 2 ** attempt grows without bound; cap the exponent before multiplying.
    exponent = min(attempt, 64)
    return min(max_delay, base_delay * (2**exponent)) * factor


@dataclass(frozen=True)
class ReconnectPlan:
    """Ephemeral bookkeeping for the next reconnect attempt."""

    attempt: int = 0
    delay: float = 0.0
    candidate_index: int = 0

    def schedule(
        self,
        *,
        base_delay: float,
        max_delay: float,
        jitter: Callable[[], float] = draw_jitter,
    ) -> "ReconnectPlan":
        """Return the plan for the next attempt with its computed delay."""

        delay = compute_backoff_delay(
            self.attempt, base_delay=base_delay, max_delay=max_delay, jitter=jitter()
        )
        return replace(self, attempt=self.attempt + 1, delay=delay)

    def with_candidate(self, index: int) -> "ReconnectPlan":
        return replace(self, candidate_index=index)

    @classmethod
    def initial(cls, candidate_index: int = 0) -> "ReconnectPlan":
        return cls(candidate_index=candidate_index)


__all__ = [
    "ABNORMAL_CLOSURE",
    "NORMAL_CLOSURE",
    "NO_STATUS_RECEIVED",
    "POLICY_VIOLATION",
    "UNAUTHORIZED_CLOSE_CODES",
    "CloseEvent",
    "ConnectionEvent",
    "ConnectionStatus",
    "ReconnectPlan",
    "compute_backoff_delay",
    "draw_jitter",
    "is_unauthorized_close",
    "transition",
]
