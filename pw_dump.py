# pw_dump.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models import EVENT_KINDS, Batch, Event, ObjectDescriptor, Single, UpdateMessage


log = logging.getLogger(__name__)


def props_from_obj(obj: Dict[str, Any]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for src in (obj.get("props") or {}, (obj.get("info") or {}).get("props") or {}):
        if not isinstance(src, dict):
            continue
        for k, v in src.items():
            if v is None:
                continue
            out[str(k)] = str(v)
    return out


def _prop(pr: Dict[str, str], key: str) -> Optional[str]:
    v = pr.get(key, "").strip()
    return v or None


def object_id(obj: Any) -> Optional[int]:
    if not isinstance(obj, dict):
        return None
    oid = obj.get("id")
    # bool is an int subclass; true/false are never PipeWire ids
    if isinstance(oid, bool) or not isinstance(oid, int):
        return None
    return oid


def descriptor_from_obj(obj: Any) -> Optional[ObjectDescriptor]:
    oid = object_id(obj)
    if oid is None:
        return None
    info = obj.get("info")
    if info is not None and not isinstance(info, dict):
        info = None
    pr = props_from_obj({"props": obj.get("props"), "info": info})
    return ObjectDescriptor(
        id=oid,
        media_class=_prop(pr, "media.class"),
        application_name=_prop(pr, "application.name"),
        node_name=_prop(pr, "node.name"),
    )


def _event_kind(obj: Dict[str, Any]) -> Optional[str]:
    for key in ("type", "kind"):
        k = obj.get(key)
        if isinstance(k, str) and k in EVENT_KINDS:
            return k
    return None


def classify_message(value: Any, logger: Optional[logging.Logger] = None) -> Optional[UpdateMessage]:
    """
    I turn one decoded pw-dump frame into a Batch, Event or Single.

    Returns None for anything else; malformed input is logged and dropped,
    never raised.
    """
    logger = logger or log

    if isinstance(value, list):
        descriptors: List[ObjectDescriptor] = []
        for item in value:
            d = descriptor_from_obj(item)
            if d is None:
                logger.debug("Skipping batch entry without id: %r", item)
                continue
            descriptors.append(d)
        return Batch(descriptors=tuple(descriptors))

    if not isinstance(value, dict):
        logger.debug("Dropping unrecognized message: %r", value)
        return None

    kind = _event_kind(value)
    if kind is not None:
        embedded = descriptor_from_obj(value.get("object"))
        own_id = object_id(value)
        if own_id is None and embedded is None:
            logger.debug("Dropping %s event without id: %r", kind, value)
            return None
        return Event(kind=kind, id=own_id, object=embedded)

    d = descriptor_from_obj(value)
    if d is None:
        logger.debug("Dropping object without id: %r", value)
        return None
    return Single(descriptor=d)
