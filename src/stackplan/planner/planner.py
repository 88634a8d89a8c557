"""Diff the desired graph against the state snapshot into an ordered plan."""

import networkx as nx
from typing import Any, Dict, List, Set
from .models import AttributeChange, Plan, PlanAction, PlanEntry
from ..graph.dependency_graph import DependencyGraph
from ..ingest.models import UNKNOWN, Reference
from ..ingest.references import contains_unknown, resolve_value
from ..state.models import StateSnapshot
from ..utils.errors import CorruptStateError
from ..utils.logging import get_logger

logger = get_logger("planner.planner")

_MISSING = object()


class _PlannedResource:
    """What planning knows about a resource once its entry is decided."""

    def __init__(self, action: PlanAction, resolved: Dict[str, Any], changed: Set[str]):
        self.action = action
        self.resolved = resolved
        self.changed = changed


def build_plan(graph: DependencyGraph, snapshot: StateSnapshot, destroy: bool = False) -> Plan:
    """
    Build an ordered plan reconciling the snapshot with the desired graph.

    Desired resources come first in topological order (dependencies before
    dependents, ties broken by declaration order), followed by deletions of
    snapshot resources that are no longer desired, dependents before their
    dependencies. The snapshot is never modified.

    Args:
        graph: Desired resources
        snapshot: Last applied state
        destroy: Plan the removal of every resource in the snapshot

    Returns:
        Plan
    """
    order = [] if destroy else graph.topological_order()
    planned: Dict[str, _PlannedResource] = {}
    entries: List[PlanEntry] = []

    def lookup(ref: Reference) -> Any:
        target = planned.get(ref.address)
        prior = snapshot.get(ref.address)
        if target is not None and (target.action == PlanAction.CREATE or ref.attribute in target.changed):
            return target.resolved.get(ref.attribute, UNKNOWN)
        if prior is not None and prior.has_value(ref.attribute):
            return prior.value_of(ref.attribute)
        if target is not None and ref.attribute in target.resolved:
            return target.resolved[ref.attribute]
        return UNKNOWN

    for address in order:
        resource = graph.get_resource(address)
        prior = snapshot.get(address)
        resolved = {key: resolve_value(value, lookup) for key, value in resource.attributes.items()}
        dependencies = graph.dependencies_of(address)

        if prior is None:
            changes = [AttributeChange(name=key, before=None, after=resolved[key]) for key in sorted(resolved)]
            action = PlanAction.CREATE
        else:
            changes = _diff(prior.attributes, resolved)
            action = PlanAction.UPDATE if changes else PlanAction.NO_OP
        stale = action == PlanAction.NO_OP and prior.dependencies != dependencies

        planned[address] = _PlannedResource(action, resolved, {change.name for change in changes})
        entries.append(PlanEntry(
            action=action,
            address=address,
            type=resource.type,
            resource=resource,
            resource_id=prior.id if prior is not None else None,
            dependencies=dependencies,
            changes=changes,
            stale_dependencies=stale,
        ))

    entries.extend(_delete_entries(snapshot, graph, set(order)))

    plan = Plan(entries=entries, destroy=destroy)
    counts = plan.counts()
    logger.info(
        f"Plan: {counts['CREATE']} to create, {counts['UPDATE']} to update, "
        f"{counts['DELETE']} to delete, {counts['NO_OP']} unchanged"
    )
    return plan


def _diff(before: Dict[str, Any], after: Dict[str, Any]) -> List[AttributeChange]:
    changes = []
    for key in sorted(set(before) | set(after)):
        old = before.get(key, _MISSING)
        new = after.get(key, _MISSING)
        if new is not _MISSING and not contains_unknown(new) and old == new:
            continue
        changes.append(AttributeChange(
            name=key,
            before=None if old is _MISSING else old,
            after=None if new is _MISSING else new,
        ))
    return changes


def _delete_entries(snapshot: StateSnapshot, graph: DependencyGraph, desired: Set[str]) -> List[PlanEntry]:
    """
    Deletions ordered so dependents are removed before their dependencies.

    Edges come from the dependencies recorded in state and, for resources
    still declared (destroy mode), from the graph.
    """
    doomed = sorted(address for address in snapshot.resources if address not in desired)
    if not doomed:
        return []

    removal = nx.DiGraph()
    removal.add_nodes_from(doomed)
    dependencies: Dict[str, List[str]] = {}
    for address in doomed:
        deps = list(snapshot.resources[address].dependencies)
        for dep in graph.dependencies_of(address):
            if dep not in deps:
                deps.append(dep)
        dependencies[address] = deps
        for dep in deps:
            if dep in removal:
                removal.add_edge(address, dep)

    try:
        ordered = list(nx.lexicographical_topological_sort(removal))
    except nx.NetworkXUnfeasible:
        raise CorruptStateError("State records a dependency cycle between resources scheduled for deletion")

    entries = []
    for address in ordered:
        state = snapshot.resources[address]
        entries.append(PlanEntry(
            action=PlanAction.DELETE,
            address=address,
            type=state.type,
            resource_id=state.id,
            dependencies=dependencies[address],
        ))
    return entries
