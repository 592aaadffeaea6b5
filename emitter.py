# emitter.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import QObject, QTimer

from models import EmissionState, MicSink, ReconcileState


log = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 500


@dataclass(frozen=True)
class PendingState:
    is_active: bool
    app_name: Optional[str]


def snapshot(state: ReconcileState) -> PendingState:
    return PendingState(is_active=state.is_active, app_name=state.representative_name())


class ChangeEmitter:
    """Calls the sink only when the aggregate active flag flips."""

    def __init__(self, sink: MicSink, emission: EmissionState, logger: Optional[logging.Logger] = None) -> None:
        self._sink = sink
        self._emission = emission
        self._log = logger or log

    def emit_if_changed(self, pending: PendingState) -> bool:
        if pending.is_active == self._emission.last_emitted_active:
            return False

        self._emission.last_emitted_active = pending.is_active
        app_name = pending.app_name if pending.is_active else None
        self._log.info("Microphone %s%s", "activated" if pending.is_active else "deactivated",
                       f" ({app_name})" if app_name else "")
        try:
            self._sink.mic_changed(pending.is_active, app_name)
        except Exception:
            self._log.exception("Sink failed to handle microphone change")
        return True


class DebouncedEmitter(QObject):
    """
    Holds the latest pending state and runs the ChangeEmitter once the
    quiet period has passed without a new submit(). One timer per instance.
    """

    def __init__(self, emitter: ChangeEmitter, interval_ms: int = DEFAULT_DEBOUNCE_MS, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._emitter = emitter
        self._pending: Optional[PendingState] = None

        self.timer = QTimer(self)
        self.timer.setSingleShot(True)
        self.timer.setInterval(max(0, int(interval_ms)))
        self.timer.timeout.connect(self.flush)

    @property
    def pending(self) -> Optional[PendingState]:
        return self._pending

    def submit(self, pending: PendingState) -> None:
        self._pending = pending
        # start() on an active single-shot timer restarts it
        self.timer.start()

    def flush(self) -> bool:
        self.timer.stop()
        pending, self._pending = self._pending, None
        if pending is None:
            return False
        return self._emitter.emit_if_changed(pending)

    def cancel(self) -> None:
        self.timer.stop()
        self._pending = None
