"""Tests for MetricsCollector orchestration."""

import json
from datetime import UTC, datetime
from typing import Any

import pytest
import requests
from conftest import make_build, make_event
from requests import Response

from concourse_metrics.application.collector import MetricsCollector
from concourse_metrics.domain.events import BuildEvent
from concourse_metrics.domain.exceptions import (
    ConcourseAPIError,
    EventPayloadError,
    PlanDecodeError,
    SinkError,
)
from concourse_metrics.domain.interfaces import MetricSinkInterface
from concourse_metrics.domain.models import Build, BuildMetric
from concourse_metrics.infrastructure.concourse import (
    ConcourseClient,
    InMemoryBuildSource,
)
from concourse_metrics.infrastructure.persistence.memory import InMemoryBuildCache
from concourse_metrics.infrastructure.sinks.memory import RecordingSink

SINCE = datetime.fromtimestamp(1_700_000_000, tz=UTC)
SIMPLE_PLAN = {"schema": "exec.v2", "plan": {"id": "t", "task": {"name": "unit"}}}


class FailingSink(MetricSinkInterface):
    """Sink that rejects one build id."""

    def __init__(self, bad_id: int) -> None:
        self.bad_id = bad_id
        self.metrics: list[BuildMetric] = []

    def emit(self, metric: BuildMetric) -> None:
        if metric.id == self.bad_id:
            raise SinkError("rejected")
        self.metrics.append(metric)


def finished(build_id: int, **overrides: Any) -> Build:
    overrides.setdefault("end_time", 1_700_000_100 + build_id)
    return make_build(build_id, **overrides)


class TestFindBuilds:
    """Tests for build discovery."""

    def test_keeps_finished_pipeline_builds_in_window(
        self, memory_source: InMemoryBuildSource, recording_sink: RecordingSink
    ) -> None:
        """Running, one-off and old builds are filtered out."""
        memory_source.add_build(finished(1))
        memory_source.add_build(finished(2, status="started"))
        memory_source.add_build(finished(3, status="pending"))
        memory_source.add_build(finished(4, job_name=""))
        memory_source.add_build(finished(5, end_time=1_699_999_000))
        memory_source.add_build(finished(6, pipeline_name="other", job_name="lint"))

        builds = MetricsCollector(memory_source, recording_sink).find_builds(SINCE)

        assert sorted(b.id for b in builds) == [1, 6]

    def test_no_pipelines(
        self, memory_source: InMemoryBuildSource, recording_sink: RecordingSink
    ) -> None:
        """An empty team yields no builds."""
        assert MetricsCollector(memory_source, recording_sink).find_builds(SINCE) == []


class TestCollectBuild:
    """Tests for single-build collection."""

    def test_full_pipeline(
        self,
        memory_source: InMemoryBuildSource,
        recording_sink: RecordingSink,
        sample_build: Build,
        sample_plan: dict[str, Any],
        sample_events: list[BuildEvent],
    ) -> None:
        """Plan and events are flattened and correlated."""
        memory_source.add_build(sample_build, plan=sample_plan, events=sample_events)

        metric = MetricsCollector(memory_source, recording_sink).collect_build(sample_build)

        by_id = {t.id: t for t in metric.tasks}
        assert set(by_id) == {"g1", "g2", "t1", "p1"}
        assert by_id["g1"].finish_time == 110
        assert by_id["t1"].team_name == "main"

    def test_missing_plan_gives_empty_metric(
        self,
        memory_source: InMemoryBuildSource,
        recording_sink: RecordingSink,
        sample_build: Build,
    ) -> None:
        """A build without a plan is not an error."""
        memory_source.add_build(sample_build, plan=None)

        metric = MetricsCollector(memory_source, recording_sink).collect_build(sample_build)

        assert metric.id == sample_build.id
        assert metric.tasks == ()

    def test_bad_plan_raises(
        self,
        memory_source: InMemoryBuildSource,
        recording_sink: RecordingSink,
        sample_build: Build,
    ) -> None:
        """Undecodable plans surface as PlanDecodeError."""
        memory_source.add_build(sample_build, plan={"id": "d", "do": "nope"})

        with pytest.raises(PlanDecodeError):
            MetricsCollector(memory_source, recording_sink).collect_build(sample_build)


class TestRun:
    """Tests for a full collection pass."""

    def test_emits_and_caches(
        self,
        memory_source: InMemoryBuildSource,
        recording_sink: RecordingSink,
        memory_cache: InMemoryBuildCache,
    ) -> None:
        """New builds are emitted once and then remembered."""
        memory_source.add_build(finished(1), plan=SIMPLE_PLAN)
        memory_source.add_build(finished(2), plan=SIMPLE_PLAN)
        collector = MetricsCollector(memory_source, recording_sink, memory_cache)

        first = collector.run(SINCE)
        second = collector.run(SINCE)

        assert sorted(first.emitted) == [1, 2]
        assert second.emitted == ()
        assert sorted(second.skipped) == [1, 2]
        assert len(recording_sink.metrics) == 2
        assert memory_cache.is_processed(1)

    def test_without_cache_emits_every_time(
        self, memory_source: InMemoryBuildSource, recording_sink: RecordingSink
    ) -> None:
        """Without a cache nothing is skipped."""
        memory_source.add_build(finished(1), plan=SIMPLE_PLAN)
        collector = MetricsCollector(memory_source, recording_sink)

        collector.run(SINCE)
        result = collector.run(SINCE)

        assert result.emitted == (1,)
        assert len(recording_sink.metrics) == 2

    def test_failed_build_is_skipped_and_not_cached(
        self,
        memory_source: InMemoryBuildSource,
        recording_sink: RecordingSink,
        memory_cache: InMemoryBuildCache,
    ) -> None:
        """A poison event fails only its own build."""
        memory_source.add_build(finished(1), plan=SIMPLE_PLAN)
        memory_source.add_build(
            finished(2),
            plan=SIMPLE_PLAN,
            events=[BuildEvent(event="start-task", data={"time": 1})],
        )

        result = MetricsCollector(memory_source, recording_sink, memory_cache).run(SINCE)

        assert result.emitted == (1,)
        assert result.failed == (2,)
        assert not memory_cache.is_processed(2)
        assert [m.id for m in recording_sink.metrics] == [1]

    def test_fail_fast_reraises(
        self, memory_source: InMemoryBuildSource, recording_sink: RecordingSink
    ) -> None:
        """fail_fast stops the pass at the first failing build."""
        memory_source.add_build(
            finished(2),
            plan=SIMPLE_PLAN,
            events=[BuildEvent(event="start-task", data={"origin": {"id": "t"}})],
        )

        collector = MetricsCollector(memory_source, recording_sink, fail_fast=True)

        with pytest.raises(EventPayloadError):
            collector.run(SINCE)

    def test_sink_error_marks_build_failed(
        self, memory_source: InMemoryBuildSource, memory_cache: InMemoryBuildCache
    ) -> None:
        """A rejected emit is a per-build failure and is retried next pass."""
        memory_source.add_build(finished(1), plan=SIMPLE_PLAN)
        memory_source.add_build(finished(2), plan=SIMPLE_PLAN)
        sink = FailingSink(bad_id=2)

        result = MetricsCollector(memory_source, sink, memory_cache).run(SINCE)

        assert result.failed == (2,)
        assert result.emitted == (1,)
        assert not memory_cache.is_processed(2)

    def test_emitted_metric_has_timings(
        self,
        memory_source: InMemoryBuildSource,
        recording_sink: RecordingSink,
    ) -> None:
        """Emitted metrics carry correlated timestamps."""
        memory_source.add_build(
            finished(1),
            plan=SIMPLE_PLAN,
            events=[make_event("start-task", "t", 5), make_event("finish-task", "t", 9)],
        )

        MetricsCollector(memory_source, recording_sink).run(SINCE)

        (metric,) = recording_sink.metrics
        assert metric.tasks[0].duration == 4


def build_json(build_id: int) -> dict[str, Any]:
    """Server JSON for a finished build of app/unit."""
    return {
        "id": build_id,
        "name": str(build_id),
        "status": "succeeded",
        "team_name": "main",
        "pipeline_name": "app",
        "job_name": "unit",
        "end_time": 1_700_000_100 + build_id,
    }


class FlakySession:
    """Serves a one-job pipeline over JSON; selected URLs raise instead."""

    BASE = "http://ci.example.com"

    def __init__(self, builds: list[dict[str, Any]], failing: set[str]) -> None:
        self.headers: dict[str, str] = {}
        self.failing = failing
        self.bodies: dict[str, str] = {
            "/api/v1/teams/main/pipelines": json.dumps([{"name": "app"}]),
            "/api/v1/teams/main/pipelines/app/jobs": json.dumps([{"name": "unit"}]),
            "/api/v1/teams/main/pipelines/app/jobs/unit/builds": json.dumps(builds),
        }
        for build in builds:
            self.bodies[f"/api/v1/builds/{build['id']}/plan"] = json.dumps(SIMPLE_PLAN)
            self.bodies[f"/api/v1/builds/{build['id']}/events"] = ""

    def request(self, method: str, url: str, **kwargs: Any) -> Response:
        path = url.removeprefix(self.BASE)
        if path in self.failing:
            raise requests.ConnectionError(f"connection refused: {path}")
        response = Response()
        response.status_code = 200
        response.url = url
        response.encoding = "utf-8"
        response._content = self.bodies[path].encode("utf-8")
        response._content_consumed = True
        return response


class TestRunOverHttp:
    """Collection pass against the HTTP client."""

    def test_network_error_fails_only_that_build(
        self, recording_sink: RecordingSink, memory_cache: InMemoryBuildCache
    ) -> None:
        """A dropped connection for one build's plan leaves the others emitted."""
        session = FlakySession(
            [build_json(2), build_json(1)], failing={"/api/v1/builds/1/plan"}
        )
        client = ConcourseClient(url=FlakySession.BASE, session=session)  # type: ignore[arg-type]

        result = MetricsCollector(client, recording_sink, memory_cache).run(SINCE)

        assert result.failed == (1,)
        assert result.emitted == (2,)
        assert [m.id for m in recording_sink.metrics] == [2]
        assert not memory_cache.is_processed(1)

    def test_network_error_with_fail_fast(self, recording_sink: RecordingSink) -> None:
        """fail_fast surfaces the wrapped network error as ConcourseAPIError."""
        session = FlakySession(
            [build_json(1)], failing={"/api/v1/builds/1/events"})
        client = ConcourseClient(url=FlakySession.BASE, session=session)  # type: ignore[arg-type]

        with pytest.raises(ConcourseAPIError):
            MetricsCollector(client, recording_sink, fail_fast=True).run(SINCE)
