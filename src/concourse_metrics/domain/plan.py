"""
Build plan tree.

A plan is a closed set of node types, one per node kind, each carrying only
the fields that kind needs. Leaf nodes (task/get/put) are executable steps;
every other node only groups, sequences or guards its children.

decode_plan() turns the server's JSON plan into this tree.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from concourse_metrics.domain.exceptions import PlanDecodeError
from concourse_metrics.domain.models import StepKind

LEAF_KINDS = tuple(kind.value for kind in StepKind)
SEQUENCE_KINDS = ("aggregate", "in_parallel", "do")
HOOK_KINDS = ("on_success", "on_failure", "on_abort", "on_error", "ensure")
WRAPPER_KINDS = ("try", "timeout")
RETRY_KIND = "retry"

# Precedence when a node carries more than one kind key
KNOWN_KINDS = (
    LEAF_KINDS + SEQUENCE_KINDS + HOOK_KINDS + WRAPPER_KINDS + (RETRY_KIND,)
)


@dataclass(frozen=True)
class StepPlan:
    """Leaf node: a task, get or put step."""

    id: str
    kind: StepKind
    name: str = ""


@dataclass(frozen=True)
class SequencePlan:
    """aggregate / in_parallel / do: children visited in order."""

    id: str
    kind: str
    steps: tuple["PlanNode", ...] = ()


@dataclass(frozen=True)
class HookPlan:
    """on_success / on_failure / on_abort / on_error / ensure."""

    id: str
    kind: str
    step: "PlanNode | None" = None
    next: "PlanNode | None" = None


@dataclass(frozen=True)
class WrapperPlan:
    """try / timeout: a single guarded step."""

    id: str
    kind: str
    step: "PlanNode | None" = None


@dataclass(frozen=True)
class RetryPlan:
    """retry: one node per attempt."""

    id: str
    attempts: tuple["PlanNode", ...] = ()


@dataclass(frozen=True)
class OpaquePlan:
    """Any node kind the collector does not look into (check, set_pipeline, ...)."""

    id: str
    kind: str = ""


PlanNode = StepPlan | SequencePlan | HookPlan | WrapperPlan | RetryPlan | OpaquePlan


# =============================================================================
# DECODING
# =============================================================================


def decode_plan(raw: Any) -> PlanNode:
    """
    Decode a JSON plan into a PlanNode tree.

    Accepts either a bare plan node or the {"schema": ..., "plan": {...}}
    envelope returned by the build plan endpoint. Hyphenated kind names
    (in-parallel, on-success, ...) are accepted alongside the underscored
    wire names.

    Args:
        raw: Parsed JSON value

    Returns:
        Root PlanNode

    Raises:
        PlanDecodeError: If the value (or any child) is not shaped like a plan
    """
    if isinstance(raw, Mapping) and "plan" in raw and "id" not in raw:
        raw = raw["plan"]
    root = _as_node(raw, "plan")

    # Pre-order pass: record (kind, node, child slots); children always land
    # at a higher index than their parent.
    specs: list[tuple[str, dict[str, Any], list[int | None]]] = []
    pending: list[tuple[Any, int | None, int]] = [(root, None, 0)]
    while pending:
        raw_node, parent, slot = pending.pop()
        node = _normalize(_as_node(raw_node, "plan node"))
        kind = _kind_of(node)
        child_raws = _child_values(kind, node)
        index = len(specs)
        specs.append((kind, node, [None] * len(child_raws)))
        if parent is not None:
            specs[parent][2][slot] = index
        for child_slot, child_raw in enumerate(child_raws):
            if child_raw is not None:
                pending.append((child_raw, index, child_slot))

    built: list[PlanNode | None] = [None] * len(specs)
    for index in range(len(specs) - 1, -1, -1):
        kind, node, slots = specs[index]
        children = [built[i] if i is not None else None for i in slots]
        built[index] = _build(kind, node, children)

    result = built[0]
    if result is None:
        raise PlanDecodeError("Plan root did not decode to a node")
    return result


def _as_node(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise PlanDecodeError(
            f"Expected {what} to be an object, got {type(value).__name__}"
        )
    return value


def _normalize(node: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key).replace("-", "_"): value for key, value in node.items()}


def _kind_of(node: dict[str, Any]) -> str:
    for kind in KNOWN_KINDS:
        if node.get(kind) is not None:
            return kind
    for key, value in node.items():
        if key != "id" and value is not None:
            return key
    return ""


def _as_list(value: Any, kind: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise PlanDecodeError(
            f"Expected '{kind}' to be a list, got {type(value).__name__}"
        )
    return value


def _child_values(kind: str, node: dict[str, Any]) -> list[Any]:
    """Raw child nodes of a plan node, in visit order."""
    value = node.get(kind)
    if kind in ("aggregate", "do", RETRY_KIND):
        return _as_list(value, kind)
    if kind == "in_parallel":
        if isinstance(value, Mapping):
            return _as_list(value.get("steps"), kind)
        return _as_list(value, kind)
    if kind in HOOK_KINDS:
        body = _as_node(value, kind)
        second = body.get(kind)
        if second is None:
            second = body.get(kind.replace("_", "-"), body.get("next"))
        return [body.get("step"), second]
    if kind in WRAPPER_KINDS:
        return [_as_node(value, kind).get("step")]
    return []


def _build(kind: str, node: dict[str, Any], children: list[PlanNode | None]) -> PlanNode:
    node_id = str(node.get("id") or "")
    if kind in LEAF_KINDS:
        body = node[kind]
        name = body.get("name", "") if isinstance(body, Mapping) else ""
        return StepPlan(id=node_id, kind=StepKind(kind), name=str(name or ""))
    present = tuple(child for child in children if child is not None)
    if kind in SEQUENCE_KINDS:
        return SequencePlan(id=node_id, kind=kind, steps=present)
    if kind in HOOK_KINDS:
        return HookPlan(id=node_id, kind=kind, step=children[0], next=children[1])
    if kind in WRAPPER_KINDS:
        return WrapperPlan(id=node_id, kind=kind, step=children[0])
    if kind == RETRY_KIND:
        return RetryPlan(id=node_id, attempts=present)
    return OpaquePlan(id=node_id, kind=kind)
