"""Group key derivation.

A group key is the engine's identity for "the same task line": a work item
and the task group it belongs to share it. It is built from the department id
and the task id, separated so that ``("ab", "c")`` and ``("a", "bc")`` never
collide. Empty ids stay empty, so an item without department keys on the
task alone and vice versa.
"""

from __future__ import annotations

GROUP_KEY_SEPARATOR = "::"


def group_key(record) -> str:
    """Group key of anything carrying ``department_id`` and ``task_id``."""
    department = getattr(record, "department_id", "") or ""
    task = getattr(record, "task_id", "") or ""
    return f"{department}{GROUP_KEY_SEPARATOR}{task}"
