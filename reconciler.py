# reconciler.py
from __future__ import annotations

import logging
from typing import Optional, Set

from models import Batch, Event, ObjectDescriptor, ReconcileState, Single, UpdateMessage
from pw_filter import IgnoreFilter


log = logging.getLogger(__name__)


def remove_stream(state: ReconcileState, stream_id: int, logger: logging.Logger, reason: str) -> bool:
    name = state.active.pop(stream_id, None)
    if name is None:
        return False
    logger.debug("Capture stream %d (%s) removed: %s", stream_id, name, reason)
    return True


def reconcile_descriptor(
    state: ReconcileState,
    d: ObjectDescriptor,
    ignore: IgnoreFilter,
    logger: logging.Logger,
    log_ignored: bool = False,
) -> bool:
    """
    Authoritative update for one id. Returns True if the tracked entry for
    d.id was inserted, renamed or removed.
    """
    if not d.is_capture:
        # a missing media.class counts as a class change too
        return remove_stream(state, d.id, logger, f"media.class is {d.media_class!r}")

    name = d.display_name
    if ignore.is_ignored(name):
        first = d.id not in state.ignored
        state.ignored.add(d.id)
        level = logging.INFO if log_ignored and first else logging.DEBUG
        logger.log(level, "Ignoring capture stream %d from %s", d.id, name)
        return remove_stream(state, d.id, logger, "application is ignored")

    prev = state.active.get(d.id)
    if prev == name:
        return False
    state.active[d.id] = name
    if prev is None:
        logger.debug("Capture stream %d (%s) added", d.id, name)
    else:
        logger.debug("Capture stream %d renamed %s -> %s", d.id, prev, name)
    return True


def apply_message(
    state: ReconcileState,
    message: UpdateMessage,
    ignore: IgnoreFilter,
    logger: Optional[logging.Logger] = None,
    log_ignored: bool = False,
) -> Set[int]:
    """
    I fold one classified message into state.active and return the ids
    whose entry changed.

    Ids that a batch does not mention are left alone: pw-dump --monitor sends
    partial batches, so absence is not evidence of removal. Only a "removed"
    event drops an id regardless of its class.
    """
    logger = logger or log
    changed: Set[int] = set()

    if isinstance(message, Batch):
        for d in message.descriptors:
            if reconcile_descriptor(state, d, ignore, logger, log_ignored):
                changed.add(d.id)
        return changed

    if isinstance(message, Single):
        if reconcile_descriptor(state, message.descriptor, ignore, logger, log_ignored):
            changed.add(message.descriptor.id)
        return changed

    if isinstance(message, Event):
        if message.kind == "removed":
            sid = message.target_id
            if sid is None:
                return changed
            state.ignored.discard(sid)
            if remove_stream(state, sid, logger, "removed event"):
                changed.add(sid)
            return changed

        if message.object is None:
            logger.debug("%s event for %s carries no object", message.kind, message.id)
            return changed
        if reconcile_descriptor(state, message.object, ignore, logger, log_ignored):
            changed.add(message.object.id)
        return changed

    raise TypeError(f"Unsupported message type: {type(message).__name__}")
