"""Rate-limited user-facing signals ("toasts") for connectivity issues."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 5.0

SESSION_EXPIRED_MESSAGE = "Tu sesion expiro para notificaciones. Inicia sesion nuevamente."
RECONNECTING_MESSAGE = "Reconectando notificaciones..."
TRANSPORT_ERROR_MESSAGE = "Detectamos un problema con las notificaciones. Reintentaremos."
MARK_READ_FAILED_MESSAGE = "No pudimos actualizar la notificacion. Intenta nuevamente."


class SignalKind(str, Enum):
    INFO = "info"
    ERROR = "error"


SignalSink = Callable[[SignalKind, str], None]


def log_signal(kind: SignalKind, message: str) -> None:
    """Default sink used when no UI is attached."""

    if kind is SignalKind.ERROR:
        logger.error("[toast] %s", message)
    else:
        logger.info("[toast] %s", message)


class SignalChannel:
    """Deliver signals to ``sink`` at most once per cooldown window.

    Informational signals inside the window are dropped. Errors always go
    through, because they ask the user to act, and restart the window.
    """

    def __init__(
        self,
        sink: SignalSink = log_signal,
        *,
        cooldown: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if cooldown < 0:
            raise ValueError("cooldown must be non-negative")
        self._sink = sink
        self._cooldown = cooldown
        self._clock = clock
        self._last_emitted_at: float | None = None

    def info(self, message: str) -> bool:
        return self.emit(SignalKind.INFO, message)

    def error(self, message: str) -> bool:
        return self.emit(SignalKind.ERROR, message)

    def emit(self, kind: SignalKind, message: str) -> bool:
        """Forward ``message`` to the sink; return ``False`` if suppressed."""

        now = self._clock()
        if (
            kind is SignalKind.INFO
            and self._last_emitted_at is not None
            and now - self._last_emitted_at < self._cooldown
        ):
            logger.debug("Suppressed %s signal inside cooldown: %s", kind.value, message)
            return False

        self._last_emitted_at = now
        try:
            self._sink(kind, message)
        except Exception:
            logger.exception("Signal sink failed")
        return True


__all__ = [
    "DEFAULT_COOLDOWN_SECONDS",
    "MARK_READ_FAILED_MESSAGE",
    "RECONNECTING_MESSAGE",
    "SESSION_EXPIRED_MESSAGE",
    "TRANSPORT_ERROR_MESSAGE",
    "SignalChannel",
    "SignalKind",
    "SignalSink",
    "log_signal",
]
