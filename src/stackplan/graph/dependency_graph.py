"""Build directed dependency graph from resource definitions."""

import networkx as nx
from typing import Dict, Iterable, List, Optional, Set
from ..ingest.models import ResourceDefinition
from ..ingest.references import iter_references
from ..schema.registry import SchemaRegistry
from ..utils.errors import CycleError, UnresolvedReferenceError
from ..utils.logging import get_logger

logger = get_logger("graph.dependency_graph")

REFERENCE_EDGE = "reference"
EXPLICIT_EDGE = "depends_on"


class DependencyGraph:
    """Directed dependency graph: nodes=resources, edges point from dependent to dependency."""

    def __init__(self, registry: Optional[SchemaRegistry] = None):
        self.graph = nx.DiGraph()
        self.registry = registry
        self._resource_map: Dict[str, ResourceDefinition] = {}

    def add_resource(self, resource: ResourceDefinition) -> None:
        """Add a resource node to the graph."""
        node_id = self.get_node_id(resource)
        self.graph.add_node(node_id, resource=resource)
        self._resource_map[node_id] = resource

    def get_node_id(self, resource: ResourceDefinition) -> str:
        """Node ID of a resource is its address."""
        return resource.address

    def _add_edge(self, node_id: str, dep_node_id: str, kind: str) -> None:
        if self.graph.has_edge(node_id, dep_node_id):
            self.graph.edges[node_id, dep_node_id]["kinds"].add(kind)
            return
        self.graph.add_edge(node_id, dep_node_id, kinds={kind})
        logger.debug(f"Added dependency edge: {node_id} -> {dep_node_id} ({kind})")

    def _reference_edges(self, resource: ResourceDefinition) -> None:
        node_id = self.get_node_id(resource)
        for value in resource.attributes.values():
            for ref in iter_references(value):
                target = self._resource_map.get(ref.address)
                if target is None:
                    raise UnresolvedReferenceError(
                        f"Reference {ref} points to undeclared resource '{ref.address}'",
                        address=node_id,
                    )
                schema = self.registry.get(target.type) if self.registry else None
                if schema is not None and not schema.exposes(ref.attribute):
                    raise UnresolvedReferenceError(
                        f"Reference {ref}: {target.type} has no attribute '{ref.attribute}'",
                        address=node_id,
                    )
                self._add_edge(node_id, ref.address, REFERENCE_EDGE)

    def _explicit_edges(self, resource: ResourceDefinition) -> None:
        node_id = self.get_node_id(resource)
        for dep_address in resource.depends_on:
            if dep_address not in self._resource_map:
                raise UnresolvedReferenceError(
                    f"depends_on points to undeclared resource '{dep_address}'",
                    address=node_id,
                )
            self._add_edge(node_id, dep_address, EXPLICIT_EDGE)

    def build_from_resources(self, resources: Iterable[ResourceDefinition]) -> None:
        """
        Build complete dependency graph from resources.

        Raises:
            UnresolvedReferenceError: If a reference or depends_on entry
                points to a resource that is not declared
            CycleError: If the dependencies form a cycle
        """
        resources = list(resources)
        for resource in resources:
            self.add_resource(resource)

        # Two edge-producing passes over the same graph; repeated edges merge.
        for resource in resources:
            self._reference_edges(resource)
        for resource in resources:
            self._explicit_edges(resource)

        cycle = self.find_cycle()
        if cycle:
            raise CycleError(cycle)

        logger.info(f"Built dependency graph with {self.graph.number_of_nodes()} nodes and {self.graph.number_of_edges()} edges")

    def _declaration_key(self, node_id: str) -> int:
        return self._resource_map[node_id].index

    def find_cycle(self) -> Optional[List[str]]:
        """
        Depth-first search with recursion-stack tracking.

        Returns:
            Cycle members in dependency order, or None if the graph is acyclic
        """
        visited: Set[str] = set()
        for root in sorted(self.graph.nodes, key=self._declaration_key):
            if root in visited:
                continue
            path: List[str] = [root]
            on_stack: Set[str] = {root}
            visited.add(root)
            stack = [iter(self.dependencies_of(root))]
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    stack.pop()
                    on_stack.discard(path.pop())
                    continue
                if child in on_stack:
                    return path[path.index(child):]
                if child not in visited:
                    visited.add(child)
                    on_stack.add(child)
                    path.append(child)
                    stack.append(iter(self.dependencies_of(child)))
        return None

    def topological_order(self) -> List[str]:
        """Addresses with dependencies first, ties broken by declaration order."""
        return list(nx.lexicographical_topological_sort(self.graph.reverse(copy=False), key=self._declaration_key))

    def dependencies_of(self, resource_id: str) -> List[str]:
        """Direct dependencies of a resource, in declaration order."""
        if resource_id not in self.graph:
            return []
        return sorted(self.graph.successors(resource_id), key=self._declaration_key)

    def dependents_of(self, resource_id: str) -> List[str]:
        """Resources that directly depend on the given one, in declaration order."""
        if resource_id not in self.graph:
            return []
        return sorted(self.graph.predecessors(resource_id), key=self._declaration_key)

    def get_downstream_resources(self, resource_id: str) -> Set[str]:
        """Get all resources that depend on the given resource (downstream)."""
        if resource_id not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, resource_id))

    def get_upstream_resources(self, resource_id: str) -> Set[str]:
        """Get all resources that the given resource depends on (upstream)."""
        if resource_id not in self.graph:
            return set()
        return set(nx.descendants(self.graph, resource_id))

    def edge_kinds(self, resource_id: str, dep_id: str) -> Set[str]:
        if not self.graph.has_edge(resource_id, dep_id):
            return set()
        return set(self.graph.edges[resource_id, dep_id]["kinds"])

    def get_resource(self, node_id: str) -> Optional[ResourceDefinition]:
        """Get resource definition by node ID."""
        return self._resource_map.get(node_id)

    def get_all_resources(self) -> List[ResourceDefinition]:
        """Get all resources in declaration order."""
        return sorted(self._resource_map.values(), key=lambda r: r.index)

    def __contains__(self, resource_id: str) -> bool:
        return resource_id in self._resource_map

    def __len__(self) -> int:
        return len(self._resource_map)


def build_graph(resources: Iterable[ResourceDefinition], registry: Optional[SchemaRegistry] = None) -> DependencyGraph:
    """Build and return a dependency graph for the given resources."""
    graph = DependencyGraph(registry=registry)
    graph.build_from_resources(resources)
    return graph
