# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Set, Tuple, Union


MEDIA_CLASS_MIC_INPUT = "Stream/Input/Audio"
UNKNOWN_APP = "Unknown"

EVENT_KINDS = ("added", "changed", "removed")


@dataclass(frozen=True)
class ObjectDescriptor:
    id: int
    media_class: Optional[str] = None
    application_name: Optional[str] = None
    node_name: Optional[str] = None

    @property
    def is_capture(self) -> bool:
        return self.media_class == MEDIA_CLASS_MIC_INPUT

    @property
    def display_name(self) -> str:
        return self.application_name or self.node_name or UNKNOWN_APP


@dataclass(frozen=True)
class Batch:
    descriptors: Tuple[ObjectDescriptor, ...]


@dataclass(frozen=True)
class Event:
    kind: str   # "added" | "changed" | "removed"
    id: Optional[int] = None
    object: Optional[ObjectDescriptor] = None

    @property
    def target_id(self) -> Optional[int]:
        if self.id is not None:
            return self.id
        return self.object.id if self.object is not None else None


@dataclass(frozen=True)
class Single:
    descriptor: ObjectDescriptor


UpdateMessage = Union[Batch, Event, Single]


@dataclass
class EmissionState:
    last_emitted_active: bool = False


@dataclass
class ReconcileState:
    # stream id -> display name, resolved when the stream was inserted/refreshed
    active: Dict[int, str] = field(default_factory=dict)
    emission: EmissionState = field(default_factory=EmissionState)
    # ids already logged as ignored
    ignored: Set[int] = field(default_factory=set)

    @property
    def is_active(self) -> bool:
        return len(self.active) > 0

    def representative_name(self) -> Optional[str]:
        """
        I pick the name of the lowest tracked id so the choice does not
        depend on dict insertion order.
        """
        if not self.active:
            return None
        return self.active[min(self.active)]

    def clear(self) -> None:
        self.active.clear()
        self.ignored.clear()
        self.emission.last_emitted_active = False


class MicSink(Protocol):
    def mic_changed(self, is_active: bool, app_name: Optional[str]) -> None:
        ...


class CallbackSink:
    """Adapts a plain ``callback(is_active, app_name)`` to the sink interface."""

    def __init__(self, callback) -> None:
        self._callback = callback

    def mic_changed(self, is_active: bool, app_name: Optional[str]) -> None:
        self._callback(is_active, app_name)
