"""Tests for metric sinks."""

import io
import json
from typing import Any

import pytest
import requests
from conftest import make_build
from requests import Response
from rich.console import Console

from concourse_metrics.domain.exceptions import SinkError
from concourse_metrics.domain.models import BuildMetric, StepKind, StepMetric
from concourse_metrics.infrastructure.sinks import (
    ConsoleSink,
    DatadogSink,
    DatadogSinkConfig,
    RecordingSink,
)
from concourse_metrics.infrastructure.sinks.console import build_metric_to_dict


def sample_metric() -> BuildMetric:
    build = make_build(42)
    tasks = (
        StepMetric(id="g1", name="repo", kind=StepKind.GET)
        .with_timestamps(100, 101, 161)
        .with_context(build),
        StepMetric(id="t1", name="test", kind=StepKind.TASK)
        .with_timestamps(121, 125, None)
        .with_context(build),
    )
    return BuildMetric.for_build(build, tasks)


class FakeSession:
    """Records posts and answers with a fixed status."""

    def __init__(self, status: int = 202, error: Exception | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.status = status
        self.error = error
        self.posts: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any) -> Response:
        self.posts.append((url, kwargs))
        if self.error is not None:
            raise self.error
        response = Response()
        response.status_code = self.status
        response._content = b'{"errors": ["bad"]}' if self.status >= 400 else b"{}"
        return response


class TestConsoleSink:
    """Tests for ConsoleSink."""

    def test_pretty_output_is_json(self) -> None:
        """Pretty mode prints an indented JSON document."""
        buffer = io.StringIO()
        sink = ConsoleSink(console=Console(file=buffer, width=200))

        sink.emit(sample_metric())

        output = buffer.getvalue()
        assert "\n  " in output
        data = json.loads(output)
        assert data["id"] == 42
        assert [t["id"] for t in data["tasks"]] == ["g1", "t1"]

    def test_compact_output_is_one_line(self) -> None:
        """Compact mode prints one JSON object per line."""
        buffer = io.StringIO()
        sink = ConsoleSink(pretty=False, console=Console(file=buffer, width=80))

        sink.emit(sample_metric())
        sink.emit(sample_metric())

        lines = buffer.getvalue().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["job_name"] == "unit"

    def test_serialized_step_fields(self) -> None:
        """Steps serialize with build id, type and nullable times."""
        data = build_metric_to_dict(sample_metric())

        assert data["tasks"][1] == {
            "build_id": 42,
            "id": "t1",
            "name": "test",
            "type": "task",
            "initialize_time": 121,
            "start_time": 125,
            "finish_time": None,
        }


class TestDatadogSink:
    """Tests for DatadogSink."""

    def make_sink(self, session: FakeSession, **overrides: Any) -> DatadogSink:
        config = DatadogSinkConfig(api_key="api", app_key="app", **overrides)
        return DatadogSink(config, session=session)  # type: ignore[arg-type]

    def test_requires_api_key(self) -> None:
        """An empty api key is rejected."""
        with pytest.raises(ValueError, match="api_key is required"):
            DatadogSink(api_key="")

    def test_sets_auth_headers(self) -> None:
        """API and application keys are sent as headers."""
        session = FakeSession()

        self.make_sink(session)

        assert session.headers == {"DD-API-KEY": "api", "DD-APPLICATION-KEY": "app"}

    def test_series_payload(self) -> None:
        """One gauge per finished step, duration in minutes at finish time."""
        sink = self.make_sink(FakeSession(), metric_prefix="ci")

        series = sink.build_series(sample_metric())

        assert series == [
            {
                "metric": "ci.tasks",
                "type": "gauge",
                "points": [[161.0, 1.0]],
                "tags": list(sample_metric().tasks[0].tags),
            }
        ]

    def test_emit_posts_series(self) -> None:
        """emit() posts to the site's series endpoint."""
        session = FakeSession()
        sink = self.make_sink(session, site="datadoghq.eu")

        sink.emit(sample_metric())

        ((url, kwargs),) = session.posts
        assert url == "https://api.datadoghq.eu/api/v1/series"
        assert kwargs["json"]["series"][0]["metric"] == "concourse.tasks"

    def test_emit_without_durations_sends_nothing(self) -> None:
        """Builds with no finished steps make no request."""
        session = FakeSession()
        metric = BuildMetric.for_build(make_build(1))

        self.make_sink(session).emit(metric)

        assert session.posts == []

    def test_rejected_request(self) -> None:
        """Non-2xx responses raise SinkError."""
        with pytest.raises(SinkError, match="rejected"):
            self.make_sink(FakeSession(status=403)).emit(sample_metric())

    def test_transport_error(self) -> None:
        """Connection failures raise SinkError."""
        session = FakeSession(error=requests.ConnectionError("down"))

        with pytest.raises(SinkError, match="Failed to send"):
            self.make_sink(session).emit(sample_metric())


class TestRecordingSink:
    """Tests for RecordingSink."""

    def test_records_in_order(self) -> None:
        """Emitted metrics are kept in emission order."""
        sink = RecordingSink()
        first, second = BuildMetric.for_build(make_build(1)), BuildMetric.for_build(make_build(2))

        sink.emit(first)
        sink.emit(second)

        assert sink.metrics == [first, second]
