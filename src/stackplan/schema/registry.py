"""Declarative catalog of supported resource types."""

from typing import Any, Dict, Iterable, List, Optional, Set
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("schema.registry")

# Every type exposes "id" as a computed attribute in addition to the ones listed.
SUPPORTED_RESOURCE_TYPES = {
    "azurerm_resource_group": {
        "required": ["name", "location"],
        "optional": ["tags", "managed_by"],
        "computed": [],
    },
    "azurerm_virtual_network": {
        "required": ["name", "location", "resource_group_name", "address_space"],
        "optional": ["dns_servers", "tags"],
        "computed": ["guid"],
    },
    "azurerm_subnet": {
        "required": ["name", "resource_group_name", "virtual_network_name", "address_prefixes"],
        "optional": ["service_endpoints"],
        "computed": [],
    },
    "azurerm_network_security_group": {
        "required": ["name", "location", "resource_group_name"],
        "optional": ["security_rule", "tags"],
        "computed": [],
    },
    "azurerm_subnet_network_security_group_association": {
        "required": ["subnet_id", "network_security_group_id"],
        "optional": [],
        "computed": [],
    },
    "azurerm_public_ip": {
        "required": ["name", "location", "resource_group_name", "allocation_method"],
        "optional": ["sku", "domain_name_label", "tags"],
        "computed": ["ip_address", "fqdn"],
    },
    "azurerm_network_interface": {
        "required": ["name", "location", "resource_group_name", "ip_configuration"],
        "optional": ["tags"],
        "computed": ["private_ip_address", "mac_address"],
    },
    "azurerm_linux_virtual_machine": {
        "required": ["name", "location", "resource_group_name", "size", "admin_username",
                     "network_interface_ids", "os_disk", "source_image_reference"],
        "optional": ["admin_ssh_key", "disable_password_authentication", "computer_name", "tags"],
        "computed": ["private_ip_address", "public_ip_address", "virtual_machine_id"],
    },
    "azurerm_storage_account": {
        "required": ["name", "location", "resource_group_name", "account_tier", "account_replication_type"],
        "optional": ["account_kind", "min_tls_version", "tags"],
        "computed": ["primary_blob_endpoint", "primary_access_key"],
    },
    "azurerm_storage_container": {
        "required": ["name", "storage_account_name"],
        "optional": ["container_access_type"],
        "computed": [],
    },
    "azurerm_key_vault": {
        "required": ["name", "location", "resource_group_name", "tenant_id", "sku_name"],
        "optional": ["soft_delete_retention_days", "purge_protection_enabled", "tags"],
        "computed": ["vault_uri"],
    },
}


class ResourceSchema:
    """Attribute schema for a single resource type."""

    def __init__(self, type_name: str, required: Iterable[str], optional: Iterable[str], computed: Iterable[str]):
        self.type_name = type_name
        self.required: Set[str] = set(required)
        self.optional: Set[str] = set(optional)
        self.computed: Set[str] = set(computed) | {"id"}

    @property
    def arguments(self) -> Set[str]:
        """Attributes a resource document may set."""
        return self.required | self.optional

    def accepts(self, attribute: str) -> bool:
        return attribute in self.arguments

    def exposes(self, attribute: str) -> bool:
        """Whether other resources may reference this attribute."""
        return attribute in self.arguments or attribute in self.computed

    def __repr__(self) -> str:
        return f"ResourceSchema(type_name={self.type_name})"


class SchemaRegistry:
    """Lookup of resource schemas by type name."""

    def __init__(self, types: Optional[Dict[str, Dict[str, Any]]] = None):
        self._schemas: Dict[str, ResourceSchema] = {}
        for type_name, entry in (types if types is not None else SUPPORTED_RESOURCE_TYPES).items():
            self.register(type_name, entry)

    def register(self, type_name: str, entry: Dict[str, Any]) -> None:
        """Register or replace a resource type."""
        if not isinstance(entry, dict):
            raise ConfigError(f"Schema for resource type '{type_name}' must be a dictionary")
        unknown_keys = set(entry) - {"required", "optional", "computed"}
        if unknown_keys:
            raise ConfigError(
                f"Schema for resource type '{type_name}' has unknown keys: {', '.join(sorted(unknown_keys))}"
            )
        for key in ("required", "optional", "computed"):
            if not isinstance(entry.get(key, []), list):
                raise ConfigError(f"Schema '{type_name}.{key}' must be a list")
        self._schemas[type_name] = ResourceSchema(
            type_name,
            required=entry.get("required", []),
            optional=entry.get("optional", []),
            computed=entry.get("computed", []),
        )

    def get(self, type_name: str) -> Optional[ResourceSchema]:
        return self._schemas.get(type_name)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._schemas

    def type_names(self) -> List[str]:
        return sorted(self._schemas)


def build_registry(extra_types: Optional[Dict[str, Dict[str, Any]]] = None) -> SchemaRegistry:
    """
    Build the schema registry from the built-in catalog plus configured types.

    Args:
        extra_types: Additional or overriding type schemas (from the
            ``resource_types`` configuration section)

    Returns:
        SchemaRegistry instance
    """
    registry = SchemaRegistry()
    for type_name, entry in (extra_types or {}).items():
        registry.register(type_name, entry)
        logger.debug(f"Registered custom resource type: {type_name}")
    return registry
