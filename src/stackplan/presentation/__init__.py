"""Presentation layer - human-readable plan and apply output."""

from .human_formatter import format_plan, format_apply_result

__all__ = ["format_plan", "format_apply_result"]
