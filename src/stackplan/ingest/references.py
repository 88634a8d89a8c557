"""Parse ``${...}`` expressions into references and resolve them later."""

import re
from typing import Any, Callable, Dict, Iterator, Optional
from .models import Reference, Interpolation, UNKNOWN
from ..utils.errors import ParseError, ValidationError

_EXPRESSION = re.compile(r"\$\$\{|\$\{([^}]*)\}")
_IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_-]*"
_REFERENCE = re.compile(rf"^({_IDENTIFIER})\.({_IDENTIFIER})\.({_IDENTIFIER})$")
_VARIABLE = re.compile(rf"^var\.({_IDENTIFIER})$")

Lookup = Callable[[Reference], Any]


def parse_value(raw: Any, variables: Optional[Dict[str, Any]] = None, address: Optional[str] = None) -> Any:
    """
    Turn a raw document value into its two-phase form.

    Strings holding ``${type.name.attribute}`` become Reference tokens (or
    Interpolation templates when mixed with text); ``${var.NAME}`` is
    substituted immediately. Lists and maps are walked recursively.

    Raises:
        ParseError: On a malformed or unterminated expression
        ValidationError: On an undefined variable
    """
    if isinstance(raw, str):
        return _parse_string(raw, variables or {}, address)
    if isinstance(raw, list):
        return [parse_value(item, variables, address) for item in raw]
    if isinstance(raw, dict):
        return {str(key): parse_value(value, variables, address) for key, value in raw.items()}
    return raw


def _parse_string(text: str, variables: Dict[str, Any], address: Optional[str]) -> Any:
    parts = []
    literal = []
    position = 0
    for match in _EXPRESSION.finditer(text):
        literal.append(text[position:match.start()])
        position = match.end()
        if match.group(0) == "$${":
            literal.append("${")
            continue
        value = _parse_expression(match.group(1).strip(), variables, address)
        if isinstance(value, Reference):
            if literal:
                parts.append("".join(literal))
                literal = []
            parts.append(value)
        else:
            literal.append(value if isinstance(value, str) else str(value))
        if match.start() == 0 and match.end() == len(text) and not isinstance(value, str):
            # A lone expression keeps the referenced value's own type.
            return value
    tail = text[position:]
    if "${" in tail:
        raise ParseError(f"Unterminated expression in '{text}'", address=address)
    literal.append(tail)
    if literal:
        parts.append("".join(literal))

    parts = [part for part in parts if part != ""]
    if not any(isinstance(part, Reference) for part in parts):
        return "".join(parts)
    if len(parts) == 1:
        return parts[0]
    return Interpolation(parts=parts)


def _parse_expression(expression: str, variables: Dict[str, Any], address: Optional[str]) -> Any:
    var_match = _VARIABLE.match(expression)
    if var_match:
        var_name = var_match.group(1)
        if var_name not in variables:
            raise ValidationError(f"Undefined variable '{var_name}'", address=address)
        return variables[var_name]

    ref_match = _REFERENCE.match(expression)
    if ref_match:
        return Reference(
            resource_type=ref_match.group(1),
            name=ref_match.group(2),
            attribute=ref_match.group(3),
        )

    raise ParseError(
        f"Malformed expression '${{{expression}}}'. "
        "Expected ${type.name.attribute} or ${var.name}",
        address=address,
    )


def iter_references(value: Any) -> Iterator[Reference]:
    """Yield every reference held anywhere inside a parsed value."""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, Interpolation):
        yield from value.references
    elif isinstance(value, list):
        for item in value:
            yield from iter_references(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)


def resolve_value(value: Any, lookup: Lookup) -> Any:
    """
    Resolve every reference inside a parsed value.

    The lookup returns the concrete value of a reference, or UNKNOWN when it
    is not available yet. A template with any unknown part is unknown as a
    whole; containers keep unknown items in place.
    """
    if isinstance(value, (Reference, Interpolation)):
        return value.resolve(lookup)
    if isinstance(value, list):
        return [resolve_value(item, lookup) for item in value]
    if isinstance(value, dict):
        return {key: resolve_value(item, lookup) for key, item in value.items()}
    return value


def contains_unknown(value: Any) -> bool:
    if value is UNKNOWN:
        return True
    if isinstance(value, list):
        return any(contains_unknown(item) for item in value)
    if isinstance(value, dict):
        return any(contains_unknown(item) for item in value.values())
    return False


def render_value(value: Any) -> Any:
    """Convert a parsed or resolved value into plain data for display and JSON."""
    if value is UNKNOWN:
        return "(known after apply)"
    if isinstance(value, (Reference, Interpolation)):
        return str(value)
    if isinstance(value, list):
        return [render_value(item) for item in value]
    if isinstance(value, dict):
        return {key: render_value(item) for key, item in value.items()}
    return value
