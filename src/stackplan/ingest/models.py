"""Pydantic models for declared resources and references between them."""

from typing import Any, Callable, Dict, List, Optional, Union
from pydantic import BaseModel, Field


def make_address(resource_type: str, name: str) -> str:
    """Build a resource address from its type and logical name."""
    return f"{resource_type}.{name}"


def split_address(address: str) -> tuple[str, str]:
    """Split a resource address into (type, name)."""
    resource_type, _, name = address.partition(".")
    return resource_type, name


class _Unknown:
    """Placeholder for a value that is only known after apply."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(known after apply)"

    def __reduce__(self):
        return (_Unknown, ())


UNKNOWN = _Unknown()


class Reference(BaseModel):
    """Pointer to an attribute of another resource, resolved after that resource is applied."""
    resource_type: str = Field(..., description="Type of the referenced resource")
    name: str = Field(..., description="Logical name of the referenced resource")
    attribute: str = Field(..., description="Referenced attribute (argument or computed output)")

    class Config:
        frozen = True

    @property
    def address(self) -> str:
        return make_address(self.resource_type, self.name)

    def resolve(self, lookup: Callable[["Reference"], Any]) -> Any:
        """Resolve to a concrete value (or UNKNOWN) through the given lookup."""
        return lookup(self)

    def __str__(self) -> str:
        return "${" + f"{self.address}.{self.attribute}" + "}"


class Interpolation(BaseModel):
    """String template mixing literal text with references."""
    parts: List[Union[str, Reference]] = Field(default_factory=list)

    class Config:
        frozen = True

    @property
    def references(self) -> List[Reference]:
        return [part for part in self.parts if isinstance(part, Reference)]

    def resolve(self, lookup: Callable[[Reference], Any]) -> Any:
        rendered = []
        for part in self.parts:
            if isinstance(part, Reference):
                value = part.resolve(lookup)
                if value is UNKNOWN:
                    return UNKNOWN
                rendered.append(value if isinstance(value, str) else str(value))
            else:
                rendered.append(part)
        return "".join(rendered)

    def __str__(self) -> str:
        return "".join(str(part) if isinstance(part, Reference) else part.replace("${", "$${") for part in self.parts)


class ResourceDefinition(BaseModel):
    """A declared resource. Immutable once loaded."""
    type: str = Field(..., description="Resource type tag (e.g. azurerm_resource_group)")
    name: str = Field(..., description="Logical name, unique per type")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Attribute values, possibly holding references")
    depends_on: List[str] = Field(default_factory=list, description="Explicit dependency addresses")
    index: int = Field(0, ge=0, description="Declaration order")
    source: Optional[str] = Field(None, description="Document the resource was declared in")

    class Config:
        frozen = True
        arbitrary_types_allowed = True

    @property
    def address(self) -> str:
        return make_address(self.type, self.name)
