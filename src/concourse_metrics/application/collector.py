"""
MetricsCollector: finds finished builds and turns each into a BuildMetric.

Builds are independent of each other; a failure while collecting one build
is logged and the pass moves on, unless fail_fast is set.
"""

import logging
from datetime import datetime

from concourse_metrics.domain.correlation import correlate
from concourse_metrics.domain.exceptions import CollectorError
from concourse_metrics.domain.flattener import flatten_plan
from concourse_metrics.domain.interfaces import (
    BuildCacheInterface,
    BuildSourceInterface,
    MetricSinkInterface,
)
from concourse_metrics.domain.models import Build, BuildMetric, CollectionResult
from concourse_metrics.domain.plan import decode_plan

logger = logging.getLogger("concourse_metrics.collector")


class MetricsCollector:
    """
    Orchestrates one collection pass.

    Depends only on domain ports: where builds come from, where metrics go
    and how processed builds are remembered are all injected.
    """

    def __init__(
        self,
        source: BuildSourceInterface,
        sink: MetricSinkInterface,
        cache: BuildCacheInterface | None = None,
        fail_fast: bool = False,
    ):
        """
        Args:
            source: Build, plan and event source
            sink: Destination for build metrics
            cache: Processed-build cache (None to emit every build found)
            fail_fast: Re-raise the first per-build error instead of skipping
        """
        self._source = source
        self._sink = sink
        self._cache = cache
        self._fail_fast = fail_fast

    def find_builds(self, since: datetime) -> list[Build]:
        """
        List finished pipeline builds that ended after ``since``.

        Running builds and one-off builds are left out.
        """
        cutoff = since.timestamp()
        builds: list[Build] = []

        for pipeline_name in self._source.list_pipelines():
            for job_name in self._source.list_jobs(pipeline_name):
                for build in self._source.list_job_builds(pipeline_name, job_name):
                    if build.is_running or build.is_one_off:
                        continue
                    if build.end_time > cutoff:
                        builds.append(build)

        logger.debug("Found %d finished builds since %s", len(builds), since)
        return builds

    def collect_build(self, build: Build) -> BuildMetric:
        """
        Build the metric for a single build.

        Raises:
            CollectorError: If the plan, the events or the API misbehave
        """
        raw_plan = self._source.get_build_plan(build.id)
        if raw_plan is None:
            logger.info("Build %d has no plan", build.id)
            return BuildMetric.for_build(build)

        steps = flatten_plan(decode_plan(raw_plan))
        events = list(self._source.get_build_events(build.id))
        logger.debug(
            "Build %d: %d steps, %d events", build.id, len(steps), len(events)
        )
        return correlate(steps, events, build)

    def run(self, since: datetime) -> CollectionResult:
        """
        Collect and emit every new build that finished after ``since``.

        Returns:
            CollectionResult with emitted, skipped and failed build ids

        Raises:
            CollectorError: When listing builds fails, or on the first
                per-build failure if fail_fast is set
        """
        emitted: list[int] = []
        skipped: list[int] = []
        failed: list[int] = []

        for build in self.find_builds(since):
            if self._cache is not None and self._cache.is_processed(build.id):
                skipped.append(build.id)
                continue

            try:
                metric = self.collect_build(build)
                self._sink.emit(metric)
            except CollectorError as e:
                if self._fail_fast:
                    raise
                logger.warning(
                    "Skipping build %d (%s/%s #%s): %s",
                    build.id,
                    build.pipeline_name,
                    build.job_name,
                    build.name,
                    e,
                )
                failed.append(build.id)
                continue

            if self._cache is not None:
                self._cache.mark_processed(build.id)
            emitted.append(build.id)
            logger.info(
                "Emitted build %d with %d steps", build.id, len(metric.tasks)
            )

        return CollectionResult(
            emitted=tuple(emitted), skipped=tuple(skipped), failed=tuple(failed)
        )
