"""Plan construction."""

from .models import AttributeChange, Plan, PlanAction, PlanEntry
from .planner import build_plan

__all__ = ["AttributeChange", "Plan", "PlanAction", "PlanEntry", "build_plan"]
