from __future__ import annotations

from typing import Protocol

from .model import EmployeeProfile


class EmployeeProfileRepository(Protocol):
    def get_profile(self, employee_id: str) -> EmployeeProfile:
        """Return patterns, holidays and absences, each list sorted by date."""

        raise NotImplementedError
