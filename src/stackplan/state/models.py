"""Pydantic models for the persisted state snapshot."""

import uuid
from typing import Any, Dict, List
from pydantic import BaseModel, Field

STATE_FORMAT_VERSION = 2


class ResourceState(BaseModel):
    """Last applied record of a single resource."""
    type: str = Field(..., description="Resource type tag")
    name: str = Field(..., description="Logical resource name")
    id: str = Field(..., description="Provider-assigned identifier")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Resolved attributes sent to the provider")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Attributes returned by the provider")
    dependencies: List[str] = Field(default_factory=list, description="Addresses this resource depended on when applied")

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    def value_of(self, attribute: str) -> Any:
        """Value of an attribute as seen by references (provider outputs win)."""
        if attribute == "id":
            return self.id
        if attribute in self.outputs:
            return self.outputs[attribute]
        return self.attributes.get(attribute)

    def has_value(self, attribute: str) -> bool:
        return attribute == "id" or attribute in self.outputs or attribute in self.attributes


class StateSnapshot(BaseModel):
    """Mapping from resource address to its last applied state."""
    format_version: int = Field(default=STATE_FORMAT_VERSION, description="Persisted layout version")
    serial: int = Field(default=0, ge=0, description="Incremented on every save")
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Identity of this state's history")
    resources: Dict[str, ResourceState] = Field(default_factory=dict, description="Resource states keyed by address")

    def get(self, address: str):
        return self.resources.get(address)

    def __contains__(self, address: str) -> bool:
        return address in self.resources

    def with_resource(self, state: ResourceState) -> "StateSnapshot":
        """Copy of the snapshot with one resource recorded."""
        resources = dict(self.resources)
        resources[state.address] = state
        return self.model_copy(update={"resources": resources})

    def without_resource(self, address: str) -> "StateSnapshot":
        """Copy of the snapshot with one resource removed."""
        resources = {key: value for key, value in self.resources.items() if key != address}
        return self.model_copy(update={"resources": resources})
