from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

from ..model import WorkItem


class OvertimeClassifier(ABC):
    """Classifier interface (Strategy Pattern for overtime)."""

    @abstractmethod
    def overtime(self, item: WorkItem) -> timedelta:
        raise NotImplementedError
