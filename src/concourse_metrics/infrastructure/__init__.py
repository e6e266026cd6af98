"""
Infrastructure layer for the metrics collector.

Contains adapters for external concerns (CI server, persistence, sinks, registry).
"""

from concourse_metrics.infrastructure.concourse import (
    ConcourseClient,
    InMemoryBuildSource,
)
from concourse_metrics.infrastructure.persistence import (
    FilesystemBuildCache,
    InMemoryBuildCache,
)
from concourse_metrics.infrastructure.registry import SinkRegistry
from concourse_metrics.infrastructure.sinks import (
    ConsoleSink,
    DatadogSink,
    RecordingSink,
)

__all__ = [
    # Build sources
    "ConcourseClient",
    "InMemoryBuildSource",
    # Persistence
    "InMemoryBuildCache",
    "FilesystemBuildCache",
    # Sinks
    "ConsoleSink",
    "DatadogSink",
    "RecordingSink",
    # Registry
    "SinkRegistry",
]
