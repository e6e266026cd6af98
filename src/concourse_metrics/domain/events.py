"""
Build event records and their classification by lifecycle phase.

The phase of an event is decided by the prefix of its kind name alone;
PHASE_PREFIXES is the one place that mapping lives.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from concourse_metrics.domain.exceptions import EventPayloadError


class Phase(str, Enum):
    """Lifecycle milestones of a leaf step."""

    INITIALIZE = "initialize"
    START = "start"
    FINISH = "finish"


PHASE_PREFIXES: tuple[tuple[str, Phase], ...] = (
    ("initialize-", Phase.INITIALIZE),
    ("start-", Phase.START),
    ("finish-", Phase.FINISH),
)


@dataclass(frozen=True)
class BuildEvent:
    """One record of a build's event stream (kind, schema version, payload)."""

    event: str
    version: str = ""
    data: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, envelope: Mapping[str, Any]) -> "BuildEvent":
        data = envelope.get("data")
        return cls(
            event=str(envelope.get("event", "")),
            version=str(envelope.get("version", "")),
            data=data if isinstance(data, Mapping) else {},
        )


@dataclass(frozen=True)
class ClassifiedEvent:
    """Timing information carried by a lifecycle event."""

    phase: Phase
    origin_id: str
    time: int


def phase_of(event_kind: str) -> Phase | None:
    """Phase for an event kind name, or None when it carries no timing."""
    for prefix, phase in PHASE_PREFIXES:
        if event_kind.startswith(prefix):
            return phase
    return None


def classify_event(event: BuildEvent) -> ClassifiedEvent | None:
    """
    Extract phase, origin step id and timestamp from a build event.

    Args:
        event: The build event

    Returns:
        ClassifiedEvent, or None for kinds outside the three timing phases
        (log, error, status, ...)

    Raises:
        EventPayloadError: If a timing event has no usable origin id or time
    """
    phase = phase_of(event.event)
    if phase is None:
        return None

    origin = event.data.get("origin")
    origin_id = origin.get("id") if isinstance(origin, Mapping) else None
    if not isinstance(origin_id, str) or not origin_id:
        raise EventPayloadError(
            f"Event '{event.event}' has no origin id", event_kind=event.event
        )

    time = event.data.get("time")
    if isinstance(time, bool) or not isinstance(time, int):
        raise EventPayloadError(
            f"Event '{event.event}' has no integer time (got {time!r})",
            event_kind=event.event,
        )

    return ClassifiedEvent(phase=phase, origin_id=origin_id, time=time)
