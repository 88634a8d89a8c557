"""Pydantic model for apply outcomes."""

from typing import Dict, List
from pydantic import BaseModel, Field


class ApplyResult(BaseModel):
    """Outcome of applying a plan, addresses listed in plan order."""
    succeeded: List[str] = Field(default_factory=list, description="Entries the provider confirmed")
    failed: List[str] = Field(default_factory=list, description="Entries that failed or timed out")
    skipped: List[str] = Field(default_factory=list, description="Entries not attempted")
    unchanged: List[str] = Field(default_factory=list, description="NO_OP entries")
    errors: Dict[str, str] = Field(default_factory=dict, description="Failure reason per address")
    cancelled: bool = Field(default=False, description="Whether the run was cancelled")

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped

    def to_dict(self) -> Dict[str, object]:
        return self.model_dump()
