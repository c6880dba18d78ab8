"""Export helpers for planned routes."""

from .workbook import export_filename, route_plan_to_workbook

__all__ = ["export_filename", "route_plan_to_workbook"]
