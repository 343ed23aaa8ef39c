"""Exception hierarchy for the ign template engine.

Every error raised by the engine derives from :class:`IgnError`.  Errors that
describe a broken template (scan, parse, include, cycle) abort a run
immediately; validation problems are collected across every file and raised
together as a single :class:`ValidationError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Position:
    """A location inside a template file (1-based line and column)."""

    offset: int
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class IgnError(Exception):
    """Base class for all engine errors."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable description of the error."""
        return {"error": type(self).__name__, "message": str(self)}


class ScanError(IgnError):
    """Raised when a template cannot be tokenized (unterminated or unknown directive)."""

    def __init__(self, path: str, position: Position, message: str) -> None:
        self.path = path
        self.position = position
        super().__init__(f"{path}:{position}: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "path": self.path,
            "line": self.position.line,
            "column": self.position.column,
        }


class ParseError(IgnError):
    """Raised for mismatched open/close directives or malformed directive arguments."""

    def __init__(
        self,
        path: str,
        failed_at: Position,
        message: str,
        opened_at: Position | None = None,
    ) -> None:
        self.path = path
        self.failed_at = failed_at
        self.opened_at = opened_at
        detail = f"{path}:{failed_at}: {message}"
        if opened_at is not None:
            detail += f" (opened at {path}:{opened_at})"
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        data = {**super().to_dict(), "path": self.path, "failed_at": str(self.failed_at)}
        if self.opened_at is not None:
            data["opened_at"] = str(self.opened_at)
        return data


@dataclass
class ValidationIssue:
    """One problem found while resolving variables.

    ``kind`` is one of ``missing_required``, ``invalid_value``,
    ``unknown_condition`` or ``duplicate_destination``.
    """

    kind: str
    variable: str
    files: list[str]
    value: str | None = None
    detail: str = ""

    def __str__(self) -> str:
        where = ", ".join(self.files) if self.files else "manifest"
        if self.kind == "missing_required":
            return f"missing required variable '{self.variable}' (referenced in: {where})"
        if self.kind == "invalid_value":
            return (
                f"invalid value {self.value!r} for variable '{self.variable}' "
                f"in {where}: {self.detail}"
            )
        if self.kind == "unknown_condition":
            return f"unknown condition variable '{self.variable}' in {where}"
        if self.kind == "duplicate_destination":
            return f"files {where} all render to '{self.value}'"
        return f"{self.kind}: '{self.variable}' in {where}"


class ValidationError(IgnError):
    """Raised once per run with every validation issue found across all files."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = list(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"{len(self.issues)} validation error(s):\n{lines}")

    @property
    def variables(self) -> list[str]:
        return sorted({issue.variable for issue in self.issues})

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "issues": [
                {
                    "kind": issue.kind,
                    "variable": issue.variable,
                    "files": issue.files,
                    "value": issue.value,
                }
                for issue in self.issues
            ],
        }


class ManifestError(IgnError):
    """Raised when a template manifest cannot be read or violates its schema."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = str(path)
        super().__init__(f"{self.path}: {message}")


class StateError(IgnError):
    """Raised when a project metadata file under ``.ign/`` is corrupt."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = str(path)
        super().__init__(f"{self.path}: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "path": self.path}


class CycleError(IgnError):
    """Raised when a file transitively includes itself."""

    def __init__(self, chain: list[str]) -> None:
        self.chain = list(chain)
        super().__init__("include cycle detected: " + " -> ".join(self.chain))


class IncludeError(IgnError):
    """Raised when an include path is missing or escapes the template root."""

    def __init__(self, path: str, message: str, included_from: str | None = None) -> None:
        self.path = path
        self.reason = message
        self.included_from = included_from
        prefix = f"{included_from}: " if included_from else ""
        super().__init__(f"{prefix}{message}: {path}")


class ConflictError(IgnError):
    """Raised on request when an update left user-edited files unresolved."""

    def __init__(self, paths: list[str]) -> None:
        self.paths = list(paths)
        super().__init__(
            f"{len(self.paths)} file(s) changed both locally and in the template: "
            + ", ".join(self.paths)
        )


class TemplateIOError(IgnError):
    """Wraps an ``OSError`` raised while reading templates or writing output."""

    def __init__(self, path: str | Path, cause: OSError) -> None:
        self.path = str(path)
        self.cause = cause
        super().__init__(f"{self.path}: {cause.strerror or cause}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "path": self.path}
