"""Shared pytest fixtures for concourse_metrics tests."""

from typing import Any

import pytest

from concourse_metrics.domain.events import BuildEvent
from concourse_metrics.domain.models import Build
from concourse_metrics.infrastructure.concourse.memory import InMemoryBuildSource
from concourse_metrics.infrastructure.persistence.memory import InMemoryBuildCache
from concourse_metrics.infrastructure.sinks.memory import RecordingSink


def make_event(kind: str, origin_id: str, time: int) -> BuildEvent:
    """Create a lifecycle event as it appears in the event stream."""
    return BuildEvent(
        event=kind,
        version="5.0",
        data={"origin": {"id": origin_id}, "time": time},
    )


def make_build(build_id: int = 42, **overrides: Any) -> Build:
    """Create a finished pipeline build."""
    fields: dict[str, Any] = {
        "id": build_id,
        "name": str(build_id),
        "status": "succeeded",
        "team_name": "main",
        "pipeline_name": "app",
        "job_name": "unit",
        "start_time": 1_700_000_000,
        "end_time": 1_700_000_600,
    }
    fields.update(overrides)
    return Build(**fields)


@pytest.fixture
def sample_build() -> Build:
    """A succeeded build of app/unit."""
    return make_build()


@pytest.fixture
def sample_plan() -> dict[str, Any]:
    """Plan envelope: get + task inside a do, with an on_failure hook put."""
    return {
        "schema": "exec.v2",
        "plan": {
            "id": "root",
            "on_failure": {
                "step": {
                    "id": "seq",
                    "do": [
                        {
                            "id": "agg",
                            "in_parallel": {
                                "steps": [
                                    {"id": "g1", "get": {"name": "repo"}},
                                    {"id": "g2", "get": {"name": "image"}},
                                ]
                            },
                        },
                        {"id": "t1", "task": {"name": "test"}},
                    ],
                },
                "on_failure": {"id": "p1", "put": {"name": "notify"}},
            },
        },
    }


@pytest.fixture
def sample_events() -> list[BuildEvent]:
    """Events for the sample plan; the hook put never runs."""
    return [
        BuildEvent(event="status", version="1.0", data={"status": "started", "time": 1}),
        make_event("initialize-get", "g1", 100),
        make_event("start-get", "g1", 101),
        make_event("finish-get", "g1", 110),
        make_event("initialize-get", "g2", 100),
        make_event("start-get", "g2", 102),
        make_event("finish-get", "g2", 120),
        make_event("initialize-task", "t1", 121),
        make_event("start-task", "t1", 125),
        BuildEvent(
            event="log",
            version="5.1",
            data={"origin": {"id": "t1"}, "payload": "ok\n", "time": 130},
        ),
        make_event("finish-task", "t1", 190),
    ]


@pytest.fixture
def memory_source() -> InMemoryBuildSource:
    """Create an empty in-memory build source."""
    return InMemoryBuildSource()


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Create a sink that records emitted metrics."""
    return RecordingSink()


@pytest.fixture
def memory_cache() -> InMemoryBuildCache:
    """Create an empty in-memory processed-build cache."""
    return InMemoryBuildCache()
