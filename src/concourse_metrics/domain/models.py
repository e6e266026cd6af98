"""
Domain models for the metrics collector.

These are pure data structures describing builds and the per-step metrics
derived from them. All models are immutable (frozen dataclasses); each
collection stage produces new instances instead of mutating old ones.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

# =============================================================================
# BUILD
# =============================================================================


class StepKind(str, Enum):
    """Kinds of executable (leaf) plan steps."""

    TASK = "task"
    GET = "get"
    PUT = "put"


class BuildStatus(str, Enum):
    """Build status values reported by the CI server."""

    PENDING = "pending"
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERRORED = "errored"
    ABORTED = "aborted"


RUNNING_STATUSES = frozenset({BuildStatus.PENDING.value, BuildStatus.STARTED.value})


@dataclass(frozen=True)
class Build:
    """A single build execution as listed by the CI server."""

    id: int
    name: str
    status: str
    team_name: str
    pipeline_name: str = ""
    job_name: str = ""
    start_time: int = 0
    end_time: int = 0

    @property
    def is_running(self) -> bool:
        return self.status in RUNNING_STATUSES

    @property
    def is_one_off(self) -> bool:
        """One-off builds are not attached to any pipeline job."""
        return not self.job_name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Build":
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            status=str(data.get("status", "")),
            team_name=data.get("team_name") or "",
            pipeline_name=data.get("pipeline_name") or "",
            job_name=data.get("job_name") or "",
            start_time=int(data.get("start_time") or 0),
            end_time=int(data.get("end_time") or 0),
        )


# =============================================================================
# STEP METRIC (one per leaf step per build)
# =============================================================================


@dataclass(frozen=True)
class StepMetric:
    """
    Metric record for one executed step of a build.

    Created bare by the plan flattener, given timestamps by correlation and
    build context last. Timestamps are epoch seconds; None means no matching
    lifecycle event was observed.
    """

    id: str
    name: str
    kind: StepKind

    initialize_time: int | None = None
    start_time: int | None = None
    finish_time: int | None = None

    build_id: int | None = None
    build_name: str | None = None
    build_status: str | None = None
    team_name: str | None = None
    pipeline_name: str | None = None
    job_name: str | None = None

    def with_timestamps(
        self,
        initialize_time: int | None,
        start_time: int | None,
        finish_time: int | None,
    ) -> "StepMetric":
        return replace(
            self,
            initialize_time=initialize_time,
            start_time=start_time,
            finish_time=finish_time,
        )

    def with_context(self, build: Build) -> "StepMetric":
        return replace(
            self,
            build_id=build.id,
            build_name=build.name,
            build_status=build.status,
            team_name=build.team_name,
            pipeline_name=build.pipeline_name,
            job_name=build.job_name,
        )

    @property
    def duration(self) -> int | None:
        """Seconds between start and finish, if both were observed."""
        if self.start_time is None or self.finish_time is None:
            return None
        return self.finish_time - self.start_time

    @property
    def tags(self) -> tuple[str, ...]:
        return (
            f"job-name:{self.job_name}",
            f"build-name:{self.build_name}",
            f"build-id:{self.build_id}",
            f"build-status:{self.build_status}",
            f"pipeline-name:{self.pipeline_name}",
            f"team-name:{self.team_name}",
            f"task-type:{self.kind.value}",
            f"task-name:{self.name}",
            f"task-id:{self.id}",
        )


@dataclass(frozen=True)
class BuildMetric:
    """Per-build output unit: build context plus its step metrics."""

    id: int
    name: str
    status: str
    start_time: int
    end_time: int
    team_name: str
    pipeline_name: str
    job_name: str
    tasks: tuple[StepMetric, ...] = ()

    @classmethod
    def for_build(
        cls, build: Build, tasks: tuple[StepMetric, ...] = ()
    ) -> "BuildMetric":
        return cls(
            id=build.id,
            name=build.name,
            status=build.status,
            start_time=build.start_time,
            end_time=build.end_time,
            team_name=build.team_name,
            pipeline_name=build.pipeline_name,
            job_name=build.job_name,
            tasks=tasks,
        )


# =============================================================================
# COLLECTION RUN
# =============================================================================


@dataclass(frozen=True)
class CollectionResult:
    """Outcome of one collection pass, as build ids."""

    emitted: tuple[int, ...] = ()
    skipped: tuple[int, ...] = ()
    failed: tuple[int, ...] = ()
