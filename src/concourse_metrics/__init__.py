"""
concourse-metrics: per-step timing metrics for Concourse builds.

Rebuilds each finished build's plan, correlates it with the build's event
stream and emits one metric per task/get/put step.

Example:
    from datetime import UTC, datetime, timedelta

    from concourse_metrics import MetricsCollector
    from concourse_metrics.infrastructure import (
        ConcourseClient,
        ConsoleSink,
        FilesystemBuildCache,
    )

    client = ConcourseClient(url="https://ci.example.com", team="main",
                             username="admin", password="secret")
    client.authenticate()
    collector = MetricsCollector(
        source=client,
        sink=ConsoleSink(),
        cache=FilesystemBuildCache(".concourse-metrics-cache.json"),
    )
    result = collector.run(since=datetime.now(UTC) - timedelta(hours=1))
"""

# Application layer (orchestration)
from concourse_metrics.application.collector import MetricsCollector

# Core operations
from concourse_metrics.domain.correlation import correlate
from concourse_metrics.domain.events import BuildEvent, Phase, classify_event

# Domain exceptions
from concourse_metrics.domain.exceptions import (
    CollectorError,
    EventPayloadError,
    PlanDecodeError,
)
from concourse_metrics.domain.flattener import flatten_plan

# Domain interfaces (for type hints and custom implementations)
from concourse_metrics.domain.interfaces import (
    BuildCacheInterface,
    BuildSourceInterface,
    MetricSinkInterface,
)

# Domain models (most commonly used)
from concourse_metrics.domain.models import (
    Build,
    BuildMetric,
    CollectionResult,
    StepKind,
    StepMetric,
)
from concourse_metrics.domain.plan import PlanNode, decode_plan

__version__ = "0.3.0"

__all__ = [
    # Version
    "__version__",
    # Domain models
    "Build",
    "BuildMetric",
    "CollectionResult",
    "StepKind",
    "StepMetric",
    "BuildEvent",
    "Phase",
    "PlanNode",
    # Core operations
    "decode_plan",
    "flatten_plan",
    "classify_event",
    "correlate",
    # Domain interfaces
    "BuildSourceInterface",
    "MetricSinkInterface",
    "BuildCacheInterface",
    # Domain exceptions
    "CollectorError",
    "PlanDecodeError",
    "EventPayloadError",
    # Application layer
    "MetricsCollector",
]
