# monitor.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence, Set

from PySide6.QtCore import QObject, Signal

from emitter import DEFAULT_DEBOUNCE_MS, ChangeEmitter, DebouncedEmitter, snapshot
from models import MicSink, ReconcileState
from pw_cli import PwDumpProcess
from pw_dump import classify_message
from pw_filter import IgnoreFilter
from reconciler import apply_message


log = logging.getLogger(__name__)


class PipeWireMicMonitor(QObject):
    """
    Watches pw-dump --monitor and tells the sink when microphone capture
    starts or stops.

    Each instance owns its reconcile state, its debounce timer and its
    subprocess. handle_message() can be driven directly without a process.
    """

    finished = Signal(int)

    def __init__(
        self,
        sink: MicSink,
        ignore_apps: Iterable[str] = (),
        debounce: bool = True,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        log_ignored_apps: bool = False,
        command: Optional[Sequence[str]] = None,
        logger: Optional[logging.Logger] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._log = logger or log
        self._ignore = IgnoreFilter(ignore_apps)
        self._log_ignored = log_ignored_apps
        self._command = command

        self.state = ReconcileState()
        self._emitter = ChangeEmitter(sink, self.state.emission, self._log)
        self._debouncer: Optional[DebouncedEmitter] = None
        if debounce and debounce_ms > 0:
            self._debouncer = DebouncedEmitter(self._emitter, debounce_ms, self)

        self._transport: Optional[PwDumpProcess] = None

    @property
    def debouncer(self) -> Optional[DebouncedEmitter]:
        return self._debouncer

    def is_running(self) -> bool:
        return self._transport is not None

    def start(self) -> None:
        if self._transport is not None:
            return
        t = PwDumpProcess(self._command, logger=self._log, parent=self)
        t.frame_received.connect(self.handle_message)
        t.finished.connect(self._on_transport_finished)
        self._transport = t
        self._log.info("Watching for microphone usage via PipeWire")
        t.start()

    def handle_message(self, value: Any) -> Set[int]:
        message = classify_message(value, self._log)
        if message is None:
            return set()

        changed = apply_message(self.state, message, self._ignore, self._log, self._log_ignored)

        pending = snapshot(self.state)
        if self._debouncer is not None:
            self._debouncer.submit(pending)
        else:
            self._emitter.emit_if_changed(pending)
        return changed

    def flush(self) -> bool:
        """Runs a pending debounced emission now. No-op without debounce."""
        if self._debouncer is None:
            return False
        return self._debouncer.flush()

    def stop(self) -> None:
        if self._debouncer is not None:
            self._debouncer.cancel()
        self.state.clear()

        t, self._transport = self._transport, None
        if t is None:
            return
        t.frame_received.disconnect(self.handle_message)
        t.finished.disconnect(self._on_transport_finished)
        t.stop()
        t.deleteLater()
        self._log.info("Monitor stopped")

    def _on_transport_finished(self, exit_code: int) -> None:
        t, self._transport = self._transport, None
        if t is not None:
            t.deleteLater()
        self._log.warning("pw-dump pipeline ended (exit code %s)", exit_code)
        self.finished.emit(exit_code)
