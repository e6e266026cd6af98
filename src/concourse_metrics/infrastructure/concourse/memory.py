"""
In-memory build source.

Serves canned pipelines, builds, plans and events. Useful for testing and
for replaying builds captured from a server.
"""

from collections.abc import Iterator
from typing import Any

from concourse_metrics.domain.events import BuildEvent
from concourse_metrics.domain.exceptions import ConcourseAPIError
from concourse_metrics.domain.interfaces import BuildSourceInterface
from concourse_metrics.domain.models import Build


class InMemoryBuildSource(BuildSourceInterface):
    """Simple in-memory build source for testing."""

    def __init__(self) -> None:
        self._jobs: dict[str, list[str]] = {}
        self._builds: dict[int, Build] = {}
        self._plans: dict[int, dict[str, Any]] = {}
        self._events: dict[int, list[BuildEvent]] = {}

    def add_build(
        self,
        build: Build,
        plan: dict[str, Any] | None = None,
        events: list[BuildEvent] | None = None,
    ) -> Build:
        """Register a build (and its pipeline/job) with optional plan and events."""
        jobs = self._jobs.setdefault(build.pipeline_name, [])
        if build.job_name and build.job_name not in jobs:
            jobs.append(build.job_name)
        self._builds[build.id] = build
        if plan is not None:
            self._plans[build.id] = plan
        self._events[build.id] = list(events or [])
        return build

    def list_pipelines(self) -> list[str]:
        return [name for name in self._jobs if name]

    def list_jobs(self, pipeline_name: str) -> list[str]:
        return list(self._jobs.get(pipeline_name, []))

    def list_job_builds(self, pipeline_name: str, job_name: str) -> list[Build]:
        builds = [
            b
            for b in self._builds.values()
            if b.pipeline_name == pipeline_name and b.job_name == job_name
        ]
        return sorted(builds, key=lambda b: b.id, reverse=True)

    def get_build(self, build_id: int) -> Build:
        if build_id not in self._builds:
            raise ConcourseAPIError(f"Build not found: {build_id}", status_code=404)
        return self._builds[build_id]

    def get_build_plan(self, build_id: int) -> dict[str, Any] | None:
        return self._plans.get(build_id)

    def get_build_events(self, build_id: int) -> Iterator[BuildEvent]:
        return iter(self._events.get(build_id, []))
