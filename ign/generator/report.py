"""Generation report models.

The report is the engine's only output besides the files themselves: one
entry per planned action, in plan order, consumed for dry-run display,
verbose output and exit-status decisions.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from ign.errors import ConflictError


class ActionKind(str, Enum):
    """What the planner decided to do with one destination path."""

    CREATE = "create"
    SKIP = "skip"
    OVERWRITE = "overwrite"
    BACKUP = "backup"


class UpdateStatus(str, Enum):
    """Classification of a file during an update run."""

    UNCHANGED = "unchanged"
    TEMPLATE_CHANGED = "template_changed"
    CONFLICT = "conflict"
    NEW = "new"
    ORPHANED = "orphaned"


class ReportEntry(BaseModel):
    """Outcome for a single destination path."""

    path: str = Field(..., description="Destination path relative to the output root")
    action: ActionKind
    error: Optional[str] = Field(default=None)
    source: str = Field(default="", description="Template-relative source path")
    status: Optional[UpdateStatus] = Field(default=None, description="Update classification")


class GenerationReport(BaseModel):
    """Ordered results of a checkout or update run."""

    entries: list[ReportEntry] = Field(default_factory=list)
    dry_run: bool = Field(default=False)
    cancelled: bool = Field(default=False)

    @computed_field  # type: ignore[misc]
    @property
    def conflicts(self) -> list[str]:
        """Paths left unresolved because both user and template changed them."""
        return [
            e.path
            for e in self.entries
            if e.status is UpdateStatus.CONFLICT and e.action is ActionKind.SKIP
        ]

    @computed_field  # type: ignore[misc]
    @property
    def errors(self) -> list[str]:
        """Paths whose action failed or was not started (excluding conflicts)."""
        return [
            e.path
            for e in self.entries
            if e.error is not None and e.status is not UpdateStatus.CONFLICT
        ]

    @computed_field  # type: ignore[misc]
    @property
    def exit_code(self) -> int:
        """0 on a clean run, 1 when any conflict or per-file error remains."""
        return 1 if self.conflicts or self.errors or self.cancelled else 0

    def by_action(self, kind: ActionKind) -> list[ReportEntry]:
        return [e for e in self.entries if e.action is kind]

    def counts(self) -> dict[str, int]:
        """``{action: count}`` for every action kind, in enum order."""
        return {kind.value: len(self.by_action(kind)) for kind in ActionKind}

    def raise_for_conflicts(self) -> None:
        """Raise :class:`ConflictError` if the run left any conflict unresolved."""
        if self.conflicts:
            raise ConflictError(self.conflicts)
