"""Generation planning.

Decides, per destination path, whether a run creates, skips, overwrites or
backs up a file.  The planner only probes the filesystem; it never changes
it, so a dry run executes exactly the same planning code as a real one.

Checkout policy:

=========  =====  =========
existing   force  action
=========  =====  =========
no         any    Create
yes        no     Skip
yes        yes    Overwrite
=========  =====  =========

The project config file is special-cased: when it already exists and
``force`` is set, it is first moved to ``<file>.bkN`` and then created anew.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ign.generator.fingerprints import FileFingerprint, classify, fingerprint, fingerprint_file
from ign.generator.report import ActionKind, UpdateStatus
from ign.generator.writer import next_backup_path


CONFLICT_NOTE = "modified locally and in the template; re-run with force to overwrite"


@dataclass(frozen=True)
class RenderedFile:
    """A fully rendered output file waiting to be planned."""

    source_path: str
    dest_path: str
    content: bytes
    executable: bool = False

    @property
    def content_hash(self) -> str:
        return fingerprint(self.content)


class FileAction(BaseModel):
    """One planned step for one destination path."""

    model_config = ConfigDict(frozen=True)

    source_path: str = Field(default="")
    dest_path: str
    kind: ActionKind
    backup_path: Optional[str] = Field(default=None, description="Target of a Backup action")
    status: Optional[UpdateStatus] = Field(default=None)
    note: Optional[str] = Field(default=None, description="Per-file warning carried to the report")


class GenerationPlan(BaseModel):
    """Immutable, ordered list of actions for one run."""

    model_config = ConfigDict(frozen=True)

    actions: tuple[FileAction, ...] = Field(default_factory=tuple)
    force: bool = Field(default=False)

    def kinds(self) -> dict[str, ActionKind]:
        """``{dest_path: kind}`` of the final action for each path."""
        return {a.dest_path: a.kind for a in self.actions}

    def writes(self) -> list[FileAction]:
        return [a for a in self.actions if a.kind in (ActionKind.CREATE, ActionKind.OVERWRITE)]


def decide_action(exists: bool, force: bool) -> ActionKind:
    """Checkout policy for a single destination path."""
    if not exists:
        return ActionKind.CREATE
    return ActionKind.OVERWRITE if force else ActionKind.SKIP


def plan_generation(
    rendered: list[RenderedFile],
    dest_root: str | Path,
    *,
    force: bool = False,
    project_config: str | None = None,
) -> GenerationPlan:
    """Plan a checkout of *rendered* into *dest_root*.

    Args:
        rendered: Output files in the order they should be written.
        dest_root: Output root directory.
        force: Overwrite existing files.
        project_config: Destination path of the project config file, if it
            is part of *rendered*; an existing one is backed up under force.
    """
    root = Path(dest_root)
    actions: list[FileAction] = []
    for item in rendered:
        target = root / item.dest_path
        exists = target.exists()
        if item.dest_path == project_config and exists and force:
            backup = next_backup_path(target)
            actions.append(
                FileAction(
                    source_path=item.source_path,
                    dest_path=item.dest_path,
                    kind=ActionKind.BACKUP,
                    backup_path=backup.relative_to(root).as_posix(),
                )
            )
            actions.append(
                FileAction(
                    source_path=item.source_path,
                    dest_path=item.dest_path,
                    kind=ActionKind.CREATE,
                )
            )
            continue
        actions.append(
            FileAction(
                source_path=item.source_path,
                dest_path=item.dest_path,
                kind=decide_action(exists, force),
            )
        )
    return GenerationPlan(actions=tuple(actions), force=force)


def plan_update(
    rendered: list[RenderedFile],
    stored: Mapping[str, FileFingerprint],
    dest_root: str | Path,
    *,
    force: bool = False,
) -> GenerationPlan:
    """Plan an update run from fresh renders and the stored fingerprints.

    ``unchanged`` files are skipped, ``template_changed`` files are
    overwritten, ``conflict`` files are overwritten only with *force* and
    otherwise skipped with a warning note.  ``new`` files are created when
    absent (or adopted when already identical on disk).  Stored paths that
    the template no longer renders are reported as ``orphaned`` and left
    alone.
    """
    root = Path(dest_root)
    actions: list[FileAction] = []
    rendered_paths = set()

    for item in rendered:
        rendered_paths.add(item.dest_path)
        previous = stored.get(item.dest_path)
        disk_hash = fingerprint_file(root / item.dest_path)
        status = classify(
            item.content_hash,
            previous.content_hash if previous is not None else None,
            disk_hash,
        )

        note = None
        if status is UpdateStatus.UNCHANGED:
            kind = ActionKind.SKIP
        elif status is UpdateStatus.TEMPLATE_CHANGED:
            kind = ActionKind.OVERWRITE
        elif status is UpdateStatus.NEW:
            kind = ActionKind.CREATE if disk_hash is None else ActionKind.SKIP
        elif force:
            kind = ActionKind.OVERWRITE if disk_hash is not None else ActionKind.CREATE
        else:
            kind = ActionKind.SKIP
            note = CONFLICT_NOTE

        actions.append(
            FileAction(
                source_path=item.source_path,
                dest_path=item.dest_path,
                kind=kind,
                status=status,
                note=note,
            )
        )

    for dest_path in sorted(set(stored) - rendered_paths):
        actions.append(
            FileAction(dest_path=dest_path, kind=ActionKind.SKIP, status=UpdateStatus.ORPHANED)
        )

    return GenerationPlan(actions=tuple(actions), force=force)
