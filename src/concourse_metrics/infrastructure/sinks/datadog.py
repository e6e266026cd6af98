"""
Datadog sink.

Publishes one gauge series per step to the Datadog v1 series API. The point
value is the step duration in minutes, stamped at the step's finish time.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

import requests
from requests import Session

from concourse_metrics.domain.exceptions import SinkError
from concourse_metrics.domain.interfaces import MetricSinkInterface
from concourse_metrics.domain.models import BuildMetric, StepMetric

logger = logging.getLogger("concourse_metrics.datadog")


@dataclass
class DatadogSinkConfig:
    """Configuration for DatadogSink.

    This typed config ensures unknown fields are rejected at construction time.
    """

    api_key: str = ""
    app_key: str = ""
    metric_prefix: str = "concourse"
    site: str = "datadoghq.com"
    timeout: float = 30.0


class DatadogSink(MetricSinkInterface):
    """Sends step durations to Datadog."""

    config_class = DatadogSinkConfig

    def __init__(
        self,
        config: DatadogSinkConfig | None = None,
        session: Session | None = None,
        **kwargs: Any,
    ):
        """
        Args:
            config: Typed configuration object (preferred)
            session: Pre-configured requests session (tests, proxies)
            **kwargs: Config fields when no config object is given
        """
        if config is None:
            config = DatadogSinkConfig(**kwargs)
        if not config.api_key:
            raise ValueError("api_key is required")

        self._config = config
        self._session: Session = session or requests.Session()
        self._session.headers.update({"DD-API-KEY": config.api_key})
        if config.app_key:
            self._session.headers.update({"DD-APPLICATION-KEY": config.app_key})

    @property
    def metric_name(self) -> str:
        return f"{self._config.metric_prefix}.tasks"

    @property
    def url(self) -> str:
        return f"https://api.{self._config.site}/api/v1/series"

    def build_series(self, metric: BuildMetric) -> list[dict[str, Any]]:
        """Series payload for a build; steps that never started or finished are left out."""
        series = []
        for step in metric.tasks:
            point = self._point(step)
            if point is None:
                logger.debug("Step %s of build %d has no duration", step.id, metric.id)
                continue
            series.append(
                {
                    "metric": self.metric_name,
                    "type": "gauge",
                    "points": [point],
                    "tags": list(step.tags),
                }
            )
        return series

    def emit(self, metric: BuildMetric) -> None:
        series = self.build_series(metric)
        if not series:
            logger.info("Build %d has no step durations to send", metric.id)
            return

        try:
            response = self._session.post(
                self.url, json={"series": series}, timeout=self._config.timeout
            )
        except requests.RequestException as e:
            raise SinkError(f"Failed to send metrics to Datadog: {e}") from e
        if not 200 <= response.status_code < 300:
            raise SinkError(
                f"Datadog rejected metrics for build {metric.id}: "
                f"{response.status_code} {(response.text or '')[:200]}"
            )
        logger.info("Sent %d series for build %d", len(series), metric.id)

    def _point(self, step: StepMetric) -> list[float] | None:
        duration = step.duration
        if duration is None:
            return None
        timestamp = step.finish_time or int(time.time())
        return [float(timestamp), duration / 60.0]
