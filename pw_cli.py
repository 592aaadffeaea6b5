# pw_cli.py
from __future__ import annotations

import codecs
import json
import logging
import os
import shutil
import signal
import time
from typing import Any, List, Optional, Sequence

from PySide6.QtCore import QObject, QProcess, Signal


log = logging.getLogger(__name__)

# pw-dump --monitor pretty-prints; jq -c turns every update into one line
PW_DUMP_MONITOR_CMD = "pw-dump --monitor | jq --unbuffered -c '.'"

_STOP_GRACE_MS = 1000


def _own_group(pid: int) -> Optional[int]:
    """Returns pid if it leads its own process group, else None."""
    if pid <= 0:
        return None
    try:
        return pid if os.getpgid(pid) == pid else None
    except ProcessLookupError:
        return None


def _signal_group(pgid: int, sig: int) -> None:
    try:
        os.killpg(pgid, sig)
    except ProcessLookupError:
        pass


def _wait_group_gone(pgid: int, timeout_ms: int) -> bool:
    deadline = time.monotonic() + timeout_ms / 1000.0
    while True:
        try:
            os.killpg(pgid, 0)
        except ProcessLookupError:
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(0.01)


class LineFramer:
    """Assembles newline-terminated frames from arbitrary byte chunks."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [ln for ln in lines if ln.strip()]

    def flush(self) -> List[str]:
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return [tail] if tail.strip() else []

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""


def decode_frame(line: str, logger: Optional[logging.Logger] = None) -> Optional[Any]:
    """
    Returns the parsed JSON value, or None when the line is not valid JSON.
    JSON null also comes back as None; both are dropped upstream.
    """
    try:
        return json.loads(line)
    except ValueError as e:
        (logger or log).warning("Failed to parse JSON line: %s", e)
        return None


class PwDumpProcess(QObject):
    """
    Runs the pw-dump monitor pipeline under QProcess and emits one decoded
    JSON value per output line, in order.
    """

    frame_received = Signal(object)
    finished = Signal(int)

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        logger: Optional[logging.Logger] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._command = list(command) if command else ["sh", "-c", PW_DUMP_MONITOR_CMD]
        self._log = logger or log
        self._framer = LineFramer()
        self._proc: Optional[QProcess] = None

    @property
    def command(self) -> List[str]:
        return list(self._command)

    def is_running(self) -> bool:
        return self._proc is not None and self._proc.state() != QProcess.ProcessState.NotRunning

    def start(self) -> None:
        if self._proc is not None:
            return

        if shutil.which(self._command[0]) is None:
            self._log.error("Failed to start %s: program not found", self._command[0])
            self.finished.emit(-1)
            return

        self._framer.reset()
        p = QProcess(self)
        p.readyReadStandardOutput.connect(self._on_stdout)
        p.readyReadStandardError.connect(self._on_stderr)
        p.finished.connect(self._on_finished)
        p.errorOccurred.connect(self._on_error)
        self._proc = p

        # own session, so stop() can signal every process of the pipeline
        argv = self._command
        setsid = shutil.which("setsid")
        if setsid:
            argv = [setsid] + argv

        self._log.debug("Starting %s", " ".join(argv))
        p.start(argv[0], argv[1:])

    def stop(self) -> None:
        p = self._proc
        if p is None:
            return
        self._proc = None

        p.readyReadStandardOutput.disconnect(self._on_stdout)
        p.readyReadStandardError.disconnect(self._on_stderr)
        p.finished.disconnect(self._on_finished)
        p.errorOccurred.disconnect(self._on_error)

        if p.state() != QProcess.ProcessState.NotRunning:
            pgid = _own_group(int(p.processId()))
            if pgid:
                _signal_group(pgid, signal.SIGTERM)
            else:
                p.terminate()
            if not p.waitForFinished(_STOP_GRACE_MS):
                p.kill()
                p.waitForFinished(_STOP_GRACE_MS)
            if pgid and not _wait_group_gone(pgid, _STOP_GRACE_MS):
                self._log.warning("pw-dump pipeline ignored SIGTERM, killing it")
                _signal_group(pgid, signal.SIGKILL)
        p.deleteLater()
        self._framer.reset()

    def _emit_lines(self, lines: List[str]) -> None:
        for line in lines:
            value = decode_frame(line, self._log)
            if value is not None:
                self.frame_received.emit(value)

    def _on_stdout(self) -> None:
        p = self._proc
        if p is None:
            return
        chunk = bytes(p.readAllStandardOutput().data())
        self._emit_lines(self._framer.feed(chunk))

    def _on_stderr(self) -> None:
        p = self._proc
        if p is None:
            return
        text = bytes(p.readAllStandardError().data()).decode("utf-8", errors="replace")
        for line in text.splitlines():
            if line.strip():
                self._log.warning("pw-dump: %s", line.strip())

    def _on_finished(self, exit_code: int, exit_status) -> None:
        p = self._proc
        if p is not None:
            tail = bytes(p.readAllStandardOutput().data())
            self._emit_lines(self._framer.feed(tail))
        self._emit_lines(self._framer.flush())

        self._log.debug("pw-dump pipeline exited with %s", exit_code)
        self._proc = None
        if p is not None:
            p.deleteLater()
        self.finished.emit(int(exit_code))

    def _on_error(self, error) -> None:
        if error != QProcess.ProcessError.FailedToStart:
            self._log.debug("QProcess error: %s", error)
            return
        p = self._proc
        self._log.error("Failed to start %s: %s", self._command[0], p.errorString() if p else error)
        self._proc = None
        if p is not None:
            p.deleteLater()
        self.finished.emit(-1)
