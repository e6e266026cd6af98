"""
Domain layer for the metrics collector.

Contains core business logic with no external dependencies.
"""

from concourse_metrics.domain.correlation import correlate
from concourse_metrics.domain.events import (
    PHASE_PREFIXES,
    BuildEvent,
    ClassifiedEvent,
    Phase,
    classify_event,
)
from concourse_metrics.domain.exceptions import (
    CacheError,
    CollectorError,
    ConcourseAPIError,
    ConfigurationError,
    EventPayloadError,
    PlanDecodeError,
    SinkError,
)
from concourse_metrics.domain.flattener import flatten_plan
from concourse_metrics.domain.interfaces import (
    BuildCacheInterface,
    BuildSourceInterface,
    MetricSinkInterface,
)
from concourse_metrics.domain.models import (
    Build,
    BuildMetric,
    BuildStatus,
    CollectionResult,
    StepKind,
    StepMetric,
)
from concourse_metrics.domain.plan import (
    HookPlan,
    OpaquePlan,
    PlanNode,
    RetryPlan,
    SequencePlan,
    StepPlan,
    WrapperPlan,
    decode_plan,
)

__all__ = [
    # Models
    "Build",
    "BuildMetric",
    "BuildStatus",
    "CollectionResult",
    "StepKind",
    "StepMetric",
    # Plan tree
    "PlanNode",
    "StepPlan",
    "SequencePlan",
    "HookPlan",
    "WrapperPlan",
    "RetryPlan",
    "OpaquePlan",
    "decode_plan",
    "flatten_plan",
    # Events
    "BuildEvent",
    "ClassifiedEvent",
    "Phase",
    "PHASE_PREFIXES",
    "classify_event",
    "correlate",
    # Interfaces
    "BuildSourceInterface",
    "MetricSinkInterface",
    "BuildCacheInterface",
    # Exceptions
    "CollectorError",
    "PlanDecodeError",
    "EventPayloadError",
    "ConcourseAPIError",
    "SinkError",
    "CacheError",
    "ConfigurationError",
]
