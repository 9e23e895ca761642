"""Timesheet Engine package.

This package is organized by feature modules (calendar, timesheets, api)
with a thin Flask controller layer on top of plain service objects that
reconcile backend task groups with calendar overlays.
"""
