"""Correlation of build events with flattened plan steps."""

from collections.abc import Iterable, Mapping

from concourse_metrics.domain.events import BuildEvent, Phase, classify_event
from concourse_metrics.domain.models import Build, BuildMetric, StepMetric


def correlate(
    steps: Mapping[str, StepMetric],
    events: Iterable[BuildEvent],
    build: Build,
) -> BuildMetric:
    """
    Merge lifecycle timestamps onto steps and wrap them in a BuildMetric.

    Each phase keeps the time of the last event for a given origin id.
    Steps without a matching event keep None for that phase; events for
    ids that are not in ``steps`` are ignored.

    Args:
        steps: Flattened plan (step id -> StepMetric)
        events: The build's events, in stream order
        build: Build the steps belong to

    Returns:
        BuildMetric with one StepMetric per entry of ``steps``

    Raises:
        EventPayloadError: On the first timing event without origin/time
    """
    times: dict[Phase, dict[str, int]] = {phase: {} for phase in Phase}

    for event in events:
        classified = classify_event(event)
        if classified is None:
            continue
        times[classified.phase][classified.origin_id] = classified.time

    tasks = tuple(
        step.with_timestamps(
            initialize_time=times[Phase.INITIALIZE].get(step_id),
            start_time=times[Phase.START].get(step_id),
            finish_time=times[Phase.FINISH].get(step_id),
        ).with_context(build)
        for step_id, step in steps.items()
    )

    return BuildMetric.for_build(build, tasks)
