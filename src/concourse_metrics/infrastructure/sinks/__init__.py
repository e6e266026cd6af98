"""
Output sinks for build metrics.
"""

from concourse_metrics.infrastructure.sinks.console import (
    ConsoleSink,
    build_metric_to_dict,
)
from concourse_metrics.infrastructure.sinks.datadog import (
    DatadogSink,
    DatadogSinkConfig,
)
from concourse_metrics.infrastructure.sinks.memory import RecordingSink

__all__ = [
    "ConsoleSink",
    "DatadogSink",
    "DatadogSinkConfig",
    "RecordingSink",
    "build_metric_to_dict",
]
