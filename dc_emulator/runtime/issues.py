"""Shared issue representation for run reports."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from dc_emulator.common.errors import RunError

IssueSeverity = Literal["fatal", "error", "warning"]


@dataclass(slots=True)
class RunIssue:
    """Lightweight report line for a failed run step."""

    code: str
    message: str
    step: str
    severity: IssueSeverity = "error"
    subject: Optional[str] = None

    @classmethod
    def from_error(cls, error: RunError) -> "RunIssue":
        return cls(
            code=error.code,
            message=error.message,
            step=error.step,
            severity=error.severity,
            subject=error.subject,
        )

    def is_error(self) -> bool:
        """Return True when the issue fails the run."""
        return self.severity in ("fatal", "error")

    def format(self) -> str:
        return f"[{self.severity.upper()}] {self.step}: {self.code} - {self.message}"
