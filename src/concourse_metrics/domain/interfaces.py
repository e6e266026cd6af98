"""
Domain interfaces (Ports) for the metrics collector.

These abstract base classes define the contracts that adapters must satisfy.
They have no external dependencies and represent the core domain boundaries.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

    from concourse_metrics.domain.events import BuildEvent
    from concourse_metrics.domain.models import Build, BuildMetric


class BuildSourceInterface(ABC):
    """
    Port for reading builds, plans and events from the CI server.

    Implementations handle authentication and transport; everything they
    return is already decoded from the wire.
    """

    @abstractmethod
    def list_pipelines(self) -> list[str]:
        """Names of the team's pipelines."""
        pass

    @abstractmethod
    def list_jobs(self, pipeline_name: str) -> list[str]:
        """Names of the jobs in a pipeline."""
        pass

    @abstractmethod
    def list_job_builds(self, pipeline_name: str, job_name: str) -> list["Build"]:
        """All builds of a job, newest first."""
        pass

    @abstractmethod
    def get_build(self, build_id: int) -> "Build":
        """
        Fetch a single build.

        Raises:
            ConcourseAPIError: If the build does not exist
        """
        pass

    @abstractmethod
    def get_build_plan(self, build_id: int) -> dict[str, Any] | None:
        """
        Fetch the raw JSON plan of a build.

        Returns:
            The plan, or None when the build has no plan

        Raises:
            PlanDecodeError: If the plan body is not valid JSON
        """
        pass

    @abstractmethod
    def get_build_events(self, build_id: int) -> "Iterator[BuildEvent]":
        """
        Iterate a build's events in stream order until the stream ends.

        Raises:
            EventPayloadError: If a stream record cannot be parsed
        """
        pass


class MetricSinkInterface(ABC):
    """Port for publishing build metrics (stdout, metrics backend, ...)."""

    @abstractmethod
    def emit(self, metric: "BuildMetric") -> None:
        """
        Publish one build's metrics.

        Raises:
            SinkError: If the metric could not be delivered
        """
        pass


class BuildCacheInterface(ABC):
    """Port for remembering which builds were already emitted."""

    @abstractmethod
    def is_processed(self, build_id: int) -> bool:
        pass

    @abstractmethod
    def mark_processed(self, build_id: int) -> None:
        """Record a build as emitted and persist the change."""
        pass
