"""Tests for dependency graph."""

import pytest
from stackplan.graph.dependency_graph import DependencyGraph, build_graph
from stackplan.ingest.document_loader import load_definitions
from stackplan.schema.registry import build_registry
from stackplan.utils.errors import CycleError, UnresolvedReferenceError

RG = "azurerm_resource_group"


def resource_group(name, depends_on=None):
    return (RG, name, {"name": name, "location": "westeurope"}, depends_on or [])


@pytest.fixture
def layered_resources():
    """Resource group, network and subnet, with an unrelated storage account."""
    return load_definitions([
        ("azurerm_storage_account", "logs", {
            "name": "logs", "location": "westeurope", "resource_group_name": "${azurerm_resource_group.rg.name}",
            "account_tier": "Standard", "account_replication_type": "LRS",
        }, []),
        ("azurerm_subnet", "sn", {
            "name": "sn",
            "resource_group_name": "${azurerm_resource_group.rg.name}",
            "virtual_network_name": "${azurerm_virtual_network.vn.name}",
            "address_prefixes": ["10.0.1.0/24"],
        }, []),
        ("azurerm_virtual_network", "vn", {
            "name": "vn", "location": "westeurope",
            "resource_group_name": "${azurerm_resource_group.rg.name}",
            "address_space": ["10.0.0.0/16"],
        }, [f"{RG}.rg"]),
        resource_group("rg"),
    ])


class TestDependencyGraph:
    """Test dependency graph construction."""

    def test_build_graph_from_resources(self, layered_resources):
        """Test building graph from resources."""
        graph = DependencyGraph()
        graph.build_from_resources(layered_resources)

        assert graph.graph.number_of_nodes() == 4
        # sn->rg, sn->vn, vn->rg, logs->rg
        assert graph.graph.number_of_edges() == 4
        assert len(graph) == 4

    def test_get_node_id(self, layered_resources):
        """Node IDs are resource addresses."""
        graph = DependencyGraph()
        assert graph.get_node_id(layered_resources[1]) == "azurerm_subnet.sn"

    def test_reference_and_explicit_edges_merge(self, layered_resources):
        """A dependency declared twice is one edge carrying both kinds."""
        graph = build_graph(layered_resources)

        assert graph.edge_kinds("azurerm_virtual_network.vn", f"{RG}.rg") == {"reference", "depends_on"}
        assert graph.edge_kinds("azurerm_subnet.sn", "azurerm_virtual_network.vn") == {"reference"}
        assert graph.edge_kinds(f"{RG}.rg", "azurerm_subnet.sn") == set()

    def test_dependencies_and_dependents(self, layered_resources):
        """Direct neighbours come back in declaration order."""
        graph = build_graph(layered_resources)

        assert graph.dependencies_of("azurerm_subnet.sn") == ["azurerm_virtual_network.vn", f"{RG}.rg"]
        assert graph.dependents_of(f"{RG}.rg") == [
            "azurerm_storage_account.logs",
            "azurerm_subnet.sn",
            "azurerm_virtual_network.vn",
        ]
        assert graph.dependencies_of("missing.node") == []

    def test_get_downstream_resources(self, layered_resources):
        """Everything that transitively depends on the resource group."""
        graph = build_graph(layered_resources)

        assert graph.get_downstream_resources(f"{RG}.rg") == {
            "azurerm_storage_account.logs",
            "azurerm_subnet.sn",
            "azurerm_virtual_network.vn",
        }
        assert graph.get_downstream_resources("azurerm_subnet.sn") == set()

    def test_get_upstream_resources(self, layered_resources):
        """Everything the subnet transitively depends on."""
        graph = build_graph(layered_resources)

        assert graph.get_upstream_resources("azurerm_subnet.sn") == {"azurerm_virtual_network.vn", f"{RG}.rg"}
        assert graph.get_upstream_resources("missing.node") == set()

    def test_get_all_resources_in_declaration_order(self, layered_resources):
        """Resources come back in the order they were declared."""
        graph = build_graph(layered_resources)
        assert [r.name for r in graph.get_all_resources()] == ["logs", "sn", "vn", "rg"]


class TestTopologicalOrder:
    """Test ordering of resources."""

    def test_dependencies_first(self, layered_resources):
        """Every resource comes after its dependencies, ties by declaration order."""
        order = build_graph(layered_resources).topological_order()

        assert order == [
            f"{RG}.rg",
            "azurerm_storage_account.logs",
            "azurerm_virtual_network.vn",
            "azurerm_subnet.sn",
        ]

    def test_independent_resources_keep_declaration_order(self):
        """Resources without edges keep their declared order."""
        resources = load_definitions([resource_group("c"), resource_group("a"), resource_group("b")])
        assert build_graph(resources).topological_order() == [f"{RG}.c", f"{RG}.a", f"{RG}.b"]

    def test_order_is_stable(self, layered_resources):
        """Repeated builds yield the same order."""
        first = build_graph(layered_resources).topological_order()
        second = build_graph(layered_resources).topological_order()
        assert first == second


class TestGraphErrors:
    """Test rejection of broken graphs."""

    def test_cycle_names_every_member(self):
        """A three-resource cycle is reported with all members."""
        resources = load_definitions([
            resource_group("a", [f"{RG}.b"]),
            resource_group("b", [f"{RG}.c"]),
            resource_group("c", [f"{RG}.a"]),
        ])

        with pytest.raises(CycleError) as exc_info:
            build_graph(resources)

        assert exc_info.value.cycle == [f"{RG}.a", f"{RG}.b", f"{RG}.c"]
        assert "Dependency cycle detected" in str(exc_info.value)

    def test_self_reference_is_a_cycle(self):
        """A resource referencing itself is a cycle of one."""
        resources = load_definitions([
            (RG, "rg", {"name": "${azurerm_resource_group.rg.location}", "location": "westeurope"}, []),
        ])

        with pytest.raises(CycleError) as exc_info:
            build_graph(resources)
        assert exc_info.value.cycle == [f"{RG}.rg"]

    def test_cycle_through_references(self):
        """Cycles formed by references are detected as well."""
        registry = build_registry({"custom_peer": {"required": ["name"], "optional": ["peer"]}})
        resources = load_definitions([
            ("custom_peer", "left", {"name": "l", "peer": "${custom_peer.right.id}"}, []),
            ("custom_peer", "right", {"name": "r", "peer": "${custom_peer.left.id}"}, []),
        ], registry=registry)

        with pytest.raises(CycleError) as exc_info:
            build_graph(resources, registry=registry)
        assert set(exc_info.value.cycle) == {"custom_peer.left", "custom_peer.right"}

    def test_reference_to_undeclared_resource(self):
        """References must point at declared resources."""
        resources = load_definitions([
            ("azurerm_virtual_network", "vn", {
                "name": "vn", "location": "westeurope",
                "resource_group_name": "${azurerm_resource_group.missing.name}",
                "address_space": [],
            }, []),
        ])

        with pytest.raises(UnresolvedReferenceError, match="azurerm_resource_group.missing"):
            build_graph(resources)

    def test_depends_on_undeclared_resource(self):
        """Explicit dependencies must point at declared resources."""
        resources = load_definitions([resource_group("rg", [f"{RG}.ghost"])])

        with pytest.raises(UnresolvedReferenceError, match="ghost"):
            build_graph(resources)

    def test_reference_to_unknown_attribute(self):
        """With a registry, the referenced attribute must exist on the target type."""
        registry = build_registry()
        resources = load_definitions([
            resource_group("rg"),
            ("azurerm_virtual_network", "vn", {
                "name": "vn", "location": "westeurope",
                "resource_group_name": "${azurerm_resource_group.rg.colour}",
                "address_space": [],
            }, []),
        ], registry=registry)

        with pytest.raises(UnresolvedReferenceError, match="no attribute 'colour'"):
            build_graph(resources, registry=registry)

        assert build_graph(resources) is not None
