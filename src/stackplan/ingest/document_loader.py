"""Load declarative resource documents into resource definitions."""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import yaml
from .models import ResourceDefinition, make_address
from .references import parse_value
from .document_validator import (
    collect_variables,
    validate_definition,
    validate_depends_on,
    validate_document_structure,
    validate_identity,
    validate_resource_entry,
)
from ..schema.registry import SchemaRegistry, build_registry
from ..utils.errors import DuplicateNameError, ParseError
from ..utils.logging import get_logger

logger = get_logger("ingest.document_loader")

DOCUMENT_SUFFIXES = (".yaml", ".yml", ".json")

# (type, name, attributes, depends_on, source)
RawEntry = Tuple[str, str, Dict[str, Any], List[str], str]


def load_resource_files(
    paths: Iterable[str],
    variables: Optional[Dict[str, Any]] = None,
    defaults: Optional[Dict[str, Any]] = None,
    registry: Optional[SchemaRegistry] = None,
) -> List[ResourceDefinition]:
    """
    Load resource documents from files and directories.

    Directories contribute every ``*.yaml``, ``*.yml`` and ``*.json`` file
    directly inside them, in sorted order.

    Args:
        paths: Files or directories to read
        variables: Variable values overriding document defaults
        defaults: Attribute defaults (e.g. location) for types that accept them
        registry: Schema registry (built-in catalog if None)

    Returns:
        Resource definitions in declaration order

    Raises:
        ParseError: If a path cannot be read or a document is malformed
    """
    texts = []
    sources = []
    for file_path in _expand_paths(paths):
        try:
            texts.append(file_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ParseError(f"Error reading resource file {file_path}: {e}")
        sources.append(str(file_path))

    if not texts:
        raise ParseError("No resource documents found. Pass .yaml, .yml or .json files or a directory holding them")

    return load_documents(texts, variables=variables, defaults=defaults, registry=registry, sources=sources)


def _expand_paths(paths: Iterable[str]) -> List[Path]:
    files = []
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            files.extend(sorted(p for p in path.iterdir() if p.is_file() and p.suffix in DOCUMENT_SUFFIXES))
        elif path.is_file():
            files.append(path)
        else:
            raise ParseError(f"Resource file not found: {raw_path}")
    return files


def load_documents(
    texts: Sequence[str],
    variables: Optional[Dict[str, Any]] = None,
    defaults: Optional[Dict[str, Any]] = None,
    registry: Optional[SchemaRegistry] = None,
    sources: Optional[Sequence[str]] = None,
) -> List[ResourceDefinition]:
    """
    Parse YAML (or JSON) text documents into resource definitions.

    Each text may hold several ``---`` separated documents. Resources are
    declared either as a ``resources`` list or as a Terraform JSON style
    ``resource`` mapping (type -> name -> attributes).
    """
    if sources is None:
        sources = [f"<document {i + 1}>" for i in range(len(texts))]

    documents: List[Dict[str, Any]] = []
    document_sources: List[str] = []
    for text, source in zip(texts, sources):
        try:
            parsed = [doc for doc in yaml.safe_load_all(text) if doc is not None]
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid YAML in {source}: {e}")
        for doc in parsed:
            validate_document_structure(doc, source)
            documents.append(doc)
            document_sources.append(source)

    merged_variables = collect_variables(documents, document_sources)
    merged_variables.update(variables or {})

    entries: List[RawEntry] = []
    for document, source in zip(documents, document_sources):
        entries.extend(_document_entries(document, source))

    return _build_definitions(entries, merged_variables, defaults, registry)


def _document_entries(document: Dict[str, Any], source: str) -> List[RawEntry]:
    entries = []
    for position, entry in enumerate(document.get("resources") or [], start=1):
        validate_resource_entry(entry, source, position)
        entries.append((
            entry["type"],
            entry["name"],
            entry.get("attributes") or {},
            entry.get("depends_on"),
            source,
        ))

    for type_name, by_name in (document.get("resource") or {}).items():
        for name, body in by_name.items():
            if body is not None and not isinstance(body, dict):
                raise ParseError(f"Document {source}: 'resource.{type_name}.{name}' must be a mapping")
            body = dict(body or {})
            depends_on = body.pop("depends_on", None)
            entries.append((type_name, name, body, depends_on, source))
    return entries


def load_definitions(
    entries: Iterable[Tuple[str, str, Dict[str, Any], List[str]]],
    variables: Optional[Dict[str, Any]] = None,
    defaults: Optional[Dict[str, Any]] = None,
    registry: Optional[SchemaRegistry] = None,
) -> List[ResourceDefinition]:
    """
    Build resource definitions from (type, name, attributes, depends_on) tuples.

    Attribute strings are parsed for ``${...}`` expressions exactly as in
    documents.
    """
    raw_entries = [
        (resource_type, name, attributes or {}, depends_on, "<definitions>")
        for resource_type, name, attributes, depends_on in entries
    ]
    return _build_definitions(raw_entries, variables or {}, defaults, registry)


def _build_definitions(
    entries: List[RawEntry],
    variables: Dict[str, Any],
    defaults: Optional[Dict[str, Any]],
    registry: Optional[SchemaRegistry],
) -> List[ResourceDefinition]:
    if registry is None:
        registry = build_registry()

    definitions: List[ResourceDefinition] = []
    seen: Dict[str, str] = {}
    for index, (resource_type, name, attributes, depends_on, source) in enumerate(entries):
        validate_identity(resource_type, name, source)
        address = make_address(resource_type, name)
        if address in seen:
            raise DuplicateNameError(
                f"Resource declared more than once (in {seen[address]} and {source})",
                address=address,
            )
        seen[address] = source

        if not isinstance(attributes, dict):
            raise ParseError("Attributes must be a mapping", address=address)

        parsed_attributes = {
            str(key): parse_value(value, variables, address) for key, value in attributes.items()
        }
        schema = registry.get(resource_type)
        if schema is not None:
            for key, value in (defaults or {}).items():
                if key not in parsed_attributes and schema.accepts(key):
                    parsed_attributes[key] = value

        definition = ResourceDefinition(
            type=resource_type,
            name=name,
            attributes=parsed_attributes,
            depends_on=validate_depends_on(depends_on, address),
            index=index,
            source=source,
        )
        validate_definition(definition, registry)
        definitions.append(definition)

    logger.info(f"Loaded {len(definitions)} resource definitions")
    return definitions
