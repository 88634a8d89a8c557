"""Pydantic models for plans."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from ..ingest.models import ResourceDefinition
from ..ingest.references import render_value


class PlanAction(str, Enum):
    """Operation a plan entry performs."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    NO_OP = "NO_OP"


class AttributeChange(BaseModel):
    """One attribute that differs between the snapshot and the desired state."""
    name: str
    before: Any = None
    after: Any = None

    class Config:
        frozen = True
        arbitrary_types_allowed = True


class PlanEntry(BaseModel):
    """Single operation of a plan."""
    action: PlanAction = Field(..., description="Operation to perform")
    address: str = Field(..., description="Resource address (type.name)")
    type: str = Field(..., description="Resource type tag")
    resource: Optional[ResourceDefinition] = Field(None, description="Desired definition (absent for DELETE)")
    resource_id: Optional[str] = Field(None, description="Provider identifier for UPDATE, DELETE and NO_OP")
    dependencies: List[str] = Field(default_factory=list, description="Addresses this resource depends on")
    changes: List[AttributeChange] = Field(default_factory=list, description="Changed attributes")
    stale_dependencies: bool = Field(default=False, description="NO_OP whose recorded dependencies differ from the graph")

    class Config:
        frozen = True

    @property
    def is_change(self) -> bool:
        return self.action != PlanAction.NO_OP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "address": self.address,
            "type": self.type,
            "resource_id": self.resource_id,
            "dependencies": list(self.dependencies),
            "changes": [
                {"name": c.name, "before": render_value(c.before), "after": render_value(c.after)}
                for c in self.changes
            ],
        }


class Plan(BaseModel):
    """Ordered sequence of plan entries."""
    entries: List[PlanEntry] = Field(default_factory=list)
    destroy: bool = Field(default=False, description="Whether this plan tears everything down")

    @property
    def changes(self) -> List[PlanEntry]:
        """Entries that perform an operation (everything except NO_OP)."""
        return [entry for entry in self.entries if entry.is_change]

    @property
    def has_changes(self) -> bool:
        return any(entry.is_change for entry in self.entries)

    @property
    def needs_apply(self) -> bool:
        """Whether applying would call the provider or rewrite the state file."""
        return any(entry.is_change or entry.stale_dependencies for entry in self.entries)

    def counts(self) -> Dict[str, int]:
        counts = {action.value: 0 for action in PlanAction}
        for entry in self.entries:
            counts[entry.action.value] += 1
        return counts

    def entry(self, address: str) -> Optional[PlanEntry]:
        for candidate in self.entries:
            if candidate.address == address:
                return candidate
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destroy": self.destroy,
            "summary": self.counts(),
            "entries": [entry.to_dict() for entry in self.entries],
        }
