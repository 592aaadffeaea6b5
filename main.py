#!/usr/bin/env python3
# main.py
from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

import requests
from PySide6.QtCore import QCoreApplication, QTimer

from awtrix_client import AwtrixClient, AwtrixError, AwtrixSink
from monitor import PipeWireMicMonitor
from store_config import ConfigStore, Settings, split_list


log = logging.getLogger("onair")

LOG_FORMAT = "%(asctime)s %(levelname).1s %(name)s: %(message)s"
LOG_DATEFMT = "%m-%d %H:%M:%S"


def configure_logging(verbose: bool = False) -> None:
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.INFO
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        root.addHandler(handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watches for microphone usage via PipeWire and controls an Awtrix display."
    )
    parser.add_argument('--awtrix-host', type=str, default=None,
                        help='Awtrix display host (IP:port). Falls back to $AWTRIX_HOST, then the config file')
    parser.add_argument('--ignore-apps', type=str, default='',
                        help='Comma-separated application names to ignore (added to the config list)')
    parser.add_argument('--log-ignored-apps', action='store_true', help='Log ignored capture streams at INFO level')
    parser.add_argument('--no-debounce', action='store_true', help='Emit state changes immediately')
    parser.add_argument('--debounce-ms', type=int, default=None, help='Quiet period before a change is emitted')
    parser.add_argument('--config', type=Path, default=None, help='Path to the config file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace, settings: Settings) -> Settings:
    host = args.awtrix_host or os.environ.get("AWTRIX_HOST") or settings.awtrix_host

    ignore = list(settings.ignore_apps)
    for name in split_list(args.ignore_apps):
        if name not in ignore:
            ignore.append(name)

    debounce_ms = settings.debounce_ms
    if args.debounce_ms is not None and args.debounce_ms >= 0:
        debounce_ms = args.debounce_ms
    if args.no_debounce:
        debounce_ms = 0

    return Settings(
        awtrix_host=host,
        awtrix_text=settings.awtrix_text,
        awtrix_color=settings.awtrix_color,
        awtrix_icon=settings.awtrix_icon,
        ignore_apps=tuple(ignore),
        log_ignored_apps=settings.log_ignored_apps or args.log_ignored_apps,
        debounce_ms=debounce_ms,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    store = ConfigStore(path_override=args.config)
    settings = resolve_settings(args, store.load_settings())

    if not settings.awtrix_host:
        print("Error: AWTRIX_HOST environment variable or --awtrix-host argument is required", file=sys.stderr)
        return 1

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    client = AwtrixClient(
        settings.awtrix_host,
        text=settings.awtrix_text,
        color=settings.awtrix_color,
        icon=settings.awtrix_icon,
    )
    monitor = PipeWireMicMonitor(
        AwtrixSink(client),
        ignore_apps=settings.ignore_apps,
        debounce=settings.debounce_ms > 0,
        debounce_ms=settings.debounce_ms,
        log_ignored_apps=settings.log_ignored_apps,
    )

    log.info("Awtrix display: %s", settings.awtrix_host)
    if settings.ignore_apps:
        log.info("Ignoring apps: %s", ", ".join(settings.ignore_apps))

    try:
        client.ensure_clean_state()
    except (requests.RequestException, AwtrixError) as e:
        log.error("Could not reach Awtrix display: %s", e)
        return 1

    def _on_signal(signum, _frame) -> None:
        log.info("Stopping monitor (signal %d)", signum)
        monitor.stop()
        app.exit(0)

    def _on_finished(exit_code: int) -> None:
        monitor.stop()
        app.exit(1)

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    # Python signal handlers only run when the interpreter gets control back
    wake = QTimer()
    wake.timeout.connect(lambda: None)
    wake.start(250)

    monitor.finished.connect(_on_finished)
    QTimer.singleShot(0, monitor.start)

    try:
        return app.exec()
    finally:
        monitor.stop()
        client.close()


if __name__ == "__main__":
    sys.exit(main())
