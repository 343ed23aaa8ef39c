"""Filesystem materialization of a generation plan.

Every Create/Overwrite goes through :func:`atomic_write` (temp file in the
same directory, fsync, rename) so an interrupted run never leaves a
half-written destination file.  Backups run first and strictly in plan
order; the remaining writes may run concurrently up to a configurable limit.
Cancellation is checked before each file starts and never interrupts a
write already in flight.
"""

from __future__ import annotations

import asyncio
import os
import stat
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from ign.errors import TemplateIOError
from ign.generator.report import ActionKind, GenerationReport, ReportEntry

if TYPE_CHECKING:
    from ign.generator.planner import GenerationPlan


DEFAULT_FILE_MODE = 0o644
EXECUTABLE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH

CANCELLED = "cancelled"
ABORTED = "aborted after an earlier write failed"


# ---------------------------------------------------------------------------
# Atomic file operations
# ---------------------------------------------------------------------------


def atomic_write(path: Path, content: bytes, *, executable: bool = False) -> None:
    """Write *content* to *path* atomically.

    The data goes to a temporary file in the destination directory which is
    then renamed over *path*.  On failure the temporary file is removed and
    any existing *path* is left untouched.  An existing file keeps its
    permission bits; ``executable`` adds the execute bits.

    Raises:
        TemplateIOError: Wrapping the underlying ``OSError``.
    """
    dir_path = path.parent
    temp_path: Path | None = None
    try:
        dir_path.mkdir(parents=True, exist_ok=True)
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = DEFAULT_FILE_MODE
        if executable:
            mode |= EXECUTABLE_BITS

        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=dir_path,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
        temp_path = None
    except OSError as exc:
        raise TemplateIOError(path, exc) from exc
    finally:
        if temp_path is not None:
            try:
                temp_path.unlink()
            except OSError:
                pass


def next_backup_path(path: Path) -> Path:
    """Return ``<path>.bkN`` with N one past the highest existing backup.

    Earlier backups are never reused or overwritten.
    """
    prefix = path.name + ".bk"
    highest = 0
    if path.parent.is_dir():
        for sibling in path.parent.iterdir():
            suffix = sibling.name[len(prefix):]
            if sibling.name.startswith(prefix) and suffix.isdigit():
                highest = max(highest, int(suffix))
    return path.with_name(f"{prefix}{highest + 1}")


def backup_file(path: Path, backup_path: Path) -> None:
    """Move *path* to *backup_path*, refusing to replace an existing backup."""
    if backup_path.exists():
        raise TemplateIOError(
            backup_path, FileExistsError(17, "backup already exists", str(backup_path))
        )
    try:
        os.rename(path, backup_path)
    except OSError as exc:
        raise TemplateIOError(path, exc) from exc


# ---------------------------------------------------------------------------
# Plan application
# ---------------------------------------------------------------------------


async def apply_plan(
    plan: GenerationPlan,
    contents: Mapping[str, tuple[bytes, bool]],
    dest_root: str | Path,
    *,
    dry_run: bool = False,
    preserve_executable: bool = True,
    cancel: asyncio.Event | None = None,
    max_parallel: int = 1,
) -> GenerationReport:
    """Carry out *plan* under *dest_root* and report what happened.

    Args:
        plan: The :class:`~ign.generator.planner.GenerationPlan` to execute.
        contents: ``{dest_path: (bytes, executable)}`` for every Create and
            Overwrite action.
        dest_root: Output root directory.
        dry_run: Report the plan without touching the filesystem.
        preserve_executable: Carry the template's execute bit to the output.
        cancel: When set, no further file is started.
        max_parallel: Maximum concurrent writes.

    Raises:
        TemplateIOError: On the first filesystem failure, after in-flight
            writes have finished.
    """
    root = Path(dest_root)
    entries = [
        ReportEntry(
            path=action.dest_path,
            action=action.kind,
            source=action.source_path,
            status=action.status,
            error=action.note,
        )
        for action in plan.actions
    ]
    report = GenerationReport(entries=entries, dry_run=dry_run)
    if dry_run:
        return report

    def cancelled() -> bool:
        return cancel is not None and cancel.is_set()

    # Backups are numbered from the filesystem state, so run them one by one.
    for index, action in enumerate(plan.actions):
        if action.kind is not ActionKind.BACKUP:
            continue
        if cancelled():
            report.entries[index].error = CANCELLED
            report.cancelled = True
            continue
        await asyncio.to_thread(
            backup_file, root / action.dest_path, root / action.backup_path
        )

    semaphore = asyncio.Semaphore(max(1, max_parallel))
    failed = asyncio.Event()

    async def write_one(index: int) -> None:
        action = plan.actions[index]
        async with semaphore:
            if failed.is_set():
                report.entries[index].error = ABORTED
                return
            if cancelled():
                report.entries[index].error = CANCELLED
                report.cancelled = True
                return
            content, executable = contents[action.dest_path]
            try:
                await asyncio.to_thread(
                    atomic_write,
                    root / action.dest_path,
                    content,
                    executable=executable and preserve_executable,
                )
            except TemplateIOError as exc:
                report.entries[index].error = str(exc)
                failed.set()
                raise

    tasks = [
        write_one(index)
        for index, action in enumerate(plan.actions)
        if action.kind in (ActionKind.CREATE, ActionKind.OVERWRITE)
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return report
