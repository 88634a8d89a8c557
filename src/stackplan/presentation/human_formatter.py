"""Human-friendly output formatter - converts plans and apply results to readable text."""

import json
import os
from typing import Any, List, Optional
from ..executor.models import ApplyResult
from ..ingest.references import render_value
from ..planner.models import Plan, PlanAction, PlanEntry


def _use_ascii(ascii_mode: Optional[bool] = None) -> bool:
    """Resolve whether to use ASCII output (checked at format time)."""
    if ascii_mode is not None:
        return bool(ascii_mode)
    return os.environ.get("STACKPLAN_ASCII", "").lower() in ("1", "true", "yes")


_SYMBOLS = {
    PlanAction.CREATE: "+",
    PlanAction.UPDATE: "~",
    PlanAction.DELETE: "-",
    PlanAction.NO_OP: " ",
}


def _section(title: str, width: int = 65) -> List[str]:
    """Return section divider."""
    h = "-" * width
    return [h, title.center(width), h]


def _format_value(value: Any) -> str:
    rendered = render_value(value)
    if rendered == "(known after apply)":
        return rendered
    return json.dumps(rendered, sort_keys=True)


def _format_entry(entry: PlanEntry, arrow: str) -> List[str]:
    lines = [f"  {_SYMBOLS[entry.action]} {entry.action.value.lower().replace('_', '-'):<7} {entry.address}"]
    if entry.action == PlanAction.DELETE:
        lines.append(f"      id: {entry.resource_id}")
        return lines

    width = max((len(change.name) for change in entry.changes), default=0)
    for change in entry.changes:
        if entry.action == PlanAction.CREATE:
            lines.append(f"      {change.name:<{width}} = {_format_value(change.after)}")
        elif change.after is None:
            lines.append(f"      {change.name:<{width}} = {_format_value(change.before)} {arrow} null")
        else:
            lines.append(f"      {change.name:<{width}} = {_format_value(change.before)} {arrow} {_format_value(change.after)}")
    return lines


def format_plan(plan: Plan, environment: Optional[str] = None, show_unchanged: bool = False, ascii_mode: Optional[bool] = None) -> str:
    """
    Format a plan for terminal output.

    Args:
        plan: Plan to render
        environment: Environment name shown in the header
        show_unchanged: Also list NO_OP entries
        ascii_mode: Force ASCII arrows (default: STACKPLAN_ASCII env var)

    Returns:
        Multi-line string
    """
    arrow = "->" if _use_ascii(ascii_mode) else "→"
    title = "STACKPLAN DESTROY PLAN" if plan.destroy else "STACKPLAN PLAN"
    if environment:
        title += f" ({environment})"
    lines = _section(title)
    lines.append("")

    if not plan.has_changes:
        lines.append("No changes. Infrastructure matches the configuration.")
    else:
        for entry in plan.entries:
            if entry.is_change or show_unchanged:
                lines.extend(_format_entry(entry, arrow))
                lines.append("")

    counts = plan.counts()
    lines.append(
        f"Plan: {counts['CREATE']} to create, {counts['UPDATE']} to update, "
        f"{counts['DELETE']} to delete, {counts['NO_OP']} unchanged."
    )
    return "\n".join(lines)


def format_apply_result(result: ApplyResult) -> str:
    """Format an apply result for terminal output."""
    lines = _section("APPLY RESULT")
    lines.append("")
    status = "CANCELLED" if result.cancelled else ("COMPLETE" if result.ok else "INCOMPLETE")
    lines.append(f"Status: {status}")
    lines.append(
        f"{len(result.succeeded)} succeeded, {len(result.failed)} failed, "
        f"{len(result.skipped)} skipped, {len(result.unchanged)} unchanged"
    )

    if result.succeeded:
        lines.append("")
        lines.append("Succeeded:")
        lines.extend(f"  {address}" for address in result.succeeded)
    if result.failed:
        lines.append("")
        lines.append("Failed:")
        lines.extend(f"  {address}: {result.errors.get(address, 'unknown error')}" for address in result.failed)
    if result.skipped:
        lines.append("")
        lines.append("Skipped:")
        lines.extend(f"  {address}" for address in result.skipped)
    return "\n".join(lines)
