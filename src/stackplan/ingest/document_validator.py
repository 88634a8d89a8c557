"""Validate resource documents and definitions against the schema registry."""

import re
from typing import Any, Dict, List
from .models import ResourceDefinition
from ..schema.registry import SchemaRegistry
from ..utils.errors import ParseError, ValidationError
from ..utils.logging import get_logger

logger = get_logger("ingest.document_validator")

_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
_ADDRESS = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*\.[A-Za-z_][A-Za-z0-9_-]*$")

DOCUMENT_KEYS = {"resources", "resource", "variables"}
RESOURCE_KEYS = {"type", "name", "attributes", "depends_on"}


def validate_document_structure(document: Any, source: str) -> None:
    """
    Validate the top-level shape of one parsed document.

    Args:
        document: Parsed YAML document
        source: Document label used in error messages

    Raises:
        ParseError: If the document structure is invalid
    """
    if not isinstance(document, dict):
        raise ParseError(f"Document {source} must be a mapping with 'resources', 'resource' or 'variables'")

    unknown_keys = set(document) - DOCUMENT_KEYS
    if unknown_keys:
        raise ParseError(
            f"Document {source} has unknown top-level keys: {', '.join(sorted(map(str, unknown_keys)))}"
        )

    if "resources" in document and not isinstance(document["resources"], list):
        raise ParseError(f"Document {source}: 'resources' must be a list")

    if "resource" in document:
        resource_block = document["resource"]
        if not isinstance(resource_block, dict):
            raise ParseError(f"Document {source}: 'resource' must be a mapping of type -> name -> attributes")
        for type_name, by_name in resource_block.items():
            if not isinstance(by_name, dict):
                raise ParseError(f"Document {source}: 'resource.{type_name}' must be a mapping of name -> attributes")

    variables = document.get("variables", {})
    if variables is not None and not isinstance(variables, dict):
        raise ParseError(f"Document {source}: 'variables' must be a mapping")

    logger.debug(f"Document structure validation passed: {source}")


def validate_resource_entry(entry: Any, source: str, position: int) -> None:
    """Validate one entry of a ``resources`` list."""
    if not isinstance(entry, dict):
        raise ParseError(f"Document {source}: resource #{position} must be a mapping")

    unknown_keys = set(entry) - RESOURCE_KEYS
    if unknown_keys:
        raise ParseError(
            f"Document {source}: resource #{position} has unknown keys: {', '.join(sorted(map(str, unknown_keys)))}"
        )

    for key in ("type", "name"):
        if key not in entry:
            raise ParseError(f"Document {source}: resource #{position} is missing '{key}'")

    attributes = entry.get("attributes", {})
    if attributes is not None and not isinstance(attributes, dict):
        raise ParseError(f"Document {source}: resource #{position} 'attributes' must be a mapping")


def validate_identity(resource_type: Any, name: Any, source: str) -> None:
    """Validate a resource's type tag and logical name."""
    if not isinstance(resource_type, str) or not _NAME.match(resource_type):
        raise ParseError(f"Invalid resource type '{resource_type}' in {source}")
    if not isinstance(name, str) or not _NAME.match(name):
        raise ParseError(f"Invalid resource name '{name}' in {source}", address=f"{resource_type}.{name}")


def validate_depends_on(depends_on: Any, address: str) -> List[str]:
    """Validate an explicit dependency list and return it as addresses."""
    if depends_on is None:
        return []
    if not isinstance(depends_on, list):
        raise ParseError("'depends_on' must be a list of resource addresses", address=address)
    for dep in depends_on:
        if not isinstance(dep, str) or not _ADDRESS.match(dep):
            raise ParseError(f"Invalid dependency '{dep}', expected <type>.<name>", address=address)
    return list(depends_on)


def validate_definition(definition: ResourceDefinition, registry: SchemaRegistry) -> None:
    """
    Validate a resource definition against its type schema.

    Raises:
        ValidationError: If the type is unknown, an attribute is not
            recognized, or a required attribute is missing
    """
    schema = registry.get(definition.type)
    if schema is None:
        raise ValidationError(f"Unsupported resource type '{definition.type}'", address=definition.address)

    unknown = sorted(key for key in definition.attributes if not schema.accepts(key))
    if unknown:
        raise ValidationError(
            f"Unsupported attribute(s) for {definition.type}: {', '.join(unknown)}",
            address=definition.address,
        )

    missing = sorted(key for key in schema.required if key not in definition.attributes)
    if missing:
        raise ValidationError(f"Missing required attribute(s): {', '.join(missing)}", address=definition.address)


def collect_variables(documents: List[Dict[str, Any]], sources: List[str]) -> Dict[str, Any]:
    """Merge variable defaults declared across documents."""
    variables: Dict[str, Any] = {}
    declared_in: Dict[str, str] = {}
    for document, source in zip(documents, sources):
        for var_name, value in (document.get("variables") or {}).items():
            if not isinstance(var_name, str) or not _NAME.match(var_name):
                raise ParseError(f"Invalid variable name '{var_name}' in {source}")
            if var_name in variables:
                raise ParseError(
                    f"Variable '{var_name}' declared in both {declared_in[var_name]} and {source}"
                )
            variables[var_name] = value
            declared_in[var_name] = source
    return variables
