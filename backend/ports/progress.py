"""ProgressPort — abstract interface for reporting session lifecycle progress."""

from abc import ABC, abstractmethod
from typing import Optional


class ProgressPort(ABC):
    @abstractmethod
    def report(
        self,
        session_id: str,
        state: str,
        detail: Optional[str] = None,
    ) -> None:
        """Report a state change. state: idle, starting, listening, resolved, failed."""
