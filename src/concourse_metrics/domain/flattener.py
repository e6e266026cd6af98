"""Plan flattening: every leaf step of a plan tree, keyed by step id."""

from concourse_metrics.domain.models import StepMetric
from concourse_metrics.domain.plan import (
    HookPlan,
    OpaquePlan,
    PlanNode,
    RetryPlan,
    SequencePlan,
    StepPlan,
    WrapperPlan,
)


def flatten_plan(root: PlanNode | None) -> dict[str, StepMetric]:
    """
    Collect a bare StepMetric for every task/get/put step in the plan.

    Composite nodes are transparent: their ids are dropped and all of their
    children are visited. Both branches of a hook are visited, since the
    result describes the plan's shape rather than the path a build took.
    Traversal is depth-first in plan order with an explicit stack; a step
    id seen twice keeps the later visit.

    Args:
        root: Root of the plan tree (None for a build without a plan)

    Returns:
        New dict mapping step id to StepMetric (timestamps unset)
    """
    steps: dict[str, StepMetric] = {}
    stack: list[PlanNode | None] = [root]

    while stack:
        node = stack.pop()
        if node is None:
            continue

        if isinstance(node, StepPlan):
            steps[node.id] = StepMetric(id=node.id, name=node.name, kind=node.kind)
        elif isinstance(node, SequencePlan):
            stack.extend(reversed(node.steps))
        elif isinstance(node, HookPlan):
            stack.extend((node.next, node.step))
        elif isinstance(node, WrapperPlan):
            stack.append(node.step)
        elif isinstance(node, RetryPlan):
            stack.extend(reversed(node.attempts))
        elif isinstance(node, OpaquePlan):
            continue
        else:
            raise TypeError(f"Unknown plan node type: {type(node).__name__}")

    return steps
