"""
In-memory sink.

Keeps every emitted build metric; useful for testing and dry runs.
"""

from concourse_metrics.domain.interfaces import MetricSinkInterface
from concourse_metrics.domain.models import BuildMetric


class RecordingSink(MetricSinkInterface):
    """Records emitted metrics instead of publishing them."""

    def __init__(self) -> None:
        self.metrics: list[BuildMetric] = []

    def emit(self, metric: BuildMetric) -> None:
        self.metrics.append(metric)
