"""
Console sink: writes each build metric as a JSON document.
"""

import json
from typing import Any

from rich.console import Console

from concourse_metrics.domain.interfaces import MetricSinkInterface
from concourse_metrics.domain.models import BuildMetric, StepMetric


def step_metric_to_dict(step: StepMetric) -> dict[str, Any]:
    """Serialize a step metric to a JSON-compatible dict."""
    return {
        "build_id": step.build_id,
        "id": step.id,
        "name": step.name,
        "type": step.kind.value,
        "initialize_time": step.initialize_time,
        "start_time": step.start_time,
        "finish_time": step.finish_time,
    }


def build_metric_to_dict(metric: BuildMetric) -> dict[str, Any]:
    """Serialize a build metric to a JSON-compatible dict."""
    return {
        "id": metric.id,
        "name": metric.name,
        "status": metric.status,
        "start_time": metric.start_time,
        "end_time": metric.end_time,
        "team_name": metric.team_name,
        "pipeline_name": metric.pipeline_name,
        "job_name": metric.job_name,
        "tasks": [step_metric_to_dict(step) for step in metric.tasks],
    }


class ConsoleSink(MetricSinkInterface):
    """Prints build metrics as indented (pretty) or single-line JSON."""

    def __init__(self, pretty: bool = True, console: Console | None = None):
        self._pretty = pretty
        self._console = console or Console()

    def emit(self, metric: BuildMetric) -> None:
        data = build_metric_to_dict(metric)
        if self._pretty:
            self._console.print_json(data=data)
        else:
            self._console.out(json.dumps(data), highlight=False)
