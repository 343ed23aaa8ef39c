"""Content fingerprints and update classification.

After a successful write the engine records a SHA-256 fingerprint of each
generated file, keyed by the template reference that produced it.  An update
run compares three hashes per file (stored, fresh render, on disk) to decide
whether it can overwrite safely or would discard user edits.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from ign.errors import StateError, TemplateIOError
from ign.generator.report import UpdateStatus
from ign.generator.writer import atomic_write


STORE_VERSION = 1


class FileFingerprint(BaseModel):
    """Hash of a generated file as last written by the engine."""

    dest_path: str
    content_hash: str
    template_ref: str = Field(default="")


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def fingerprint(content: bytes) -> str:
    """SHA-256 hex digest of *content*."""
    return hashlib.sha256(content).hexdigest()


def fingerprint_file(path: Path) -> str | None:
    """SHA-256 hex digest of the file at *path*, or ``None`` if it is missing."""
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                h.update(chunk)
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
        return None
    except OSError as exc:
        raise TemplateIOError(path, exc) from exc
    return h.hexdigest()


def classify(new_hash: str, stored_hash: str | None, disk_hash: str | None) -> UpdateStatus:
    """Three-way classification of one tracked (or newly rendered) file.

    Args:
        new_hash: Fingerprint of the fresh render.
        stored_hash: Fingerprint recorded at the last write, if tracked.
        disk_hash: Fingerprint of the file currently on disk, ``None`` if
            the file is gone.
    """
    if stored_hash is None:
        if disk_hash is None or disk_hash == new_hash:
            return UpdateStatus.NEW
        return UpdateStatus.CONFLICT
    if new_hash == stored_hash or disk_hash == new_hash:
        return UpdateStatus.UNCHANGED
    if disk_hash == stored_hash:
        return UpdateStatus.TEMPLATE_CHANGED
    return UpdateStatus.CONFLICT


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class FingerprintStore(Protocol):
    """Persisted fingerprints, owned by the caller and passed to the engine."""

    def load(self, template_ref: str) -> dict[str, FileFingerprint]:
        """Return ``{dest_path: fingerprint}`` recorded for *template_ref*."""
        ...

    def save(self, template_ref: str, fingerprints: Mapping[str, FileFingerprint]) -> None:
        """Replace everything recorded for *template_ref*."""
        ...


class InMemoryFingerprintStore:
    """Fingerprint store kept in a dict; used by tests and dry runs."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, FileFingerprint]] = {}

    def load(self, template_ref: str) -> dict[str, FileFingerprint]:
        return dict(self._data.get(template_ref, {}))

    def save(self, template_ref: str, fingerprints: Mapping[str, FileFingerprint]) -> None:
        self._data[template_ref] = dict(fingerprints)


class JsonFingerprintStore:
    """Fingerprint store persisted as JSON next to the project config.

    File layout::

        {"version": 1,
         "templates": {"<template ref>": {"<dest path>": "<sha256>"}}}
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, dict[str, str]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise TemplateIOError(self.path, exc) from exc
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StateError(self.path, f"invalid JSON: {exc}") from exc
        templates = data.get("templates", {}) if isinstance(data, dict) else None
        if not isinstance(templates, dict) or not all(
            isinstance(entries, dict)
            and all(isinstance(digest, str) for digest in entries.values())
            for entries in templates.values()
        ):
            raise StateError(self.path, "expected {\"templates\": {ref: {path: sha256}}}")
        return dict(templates)

    def load(self, template_ref: str) -> dict[str, FileFingerprint]:
        entries = self._read().get(template_ref, {})
        return {
            dest: FileFingerprint(dest_path=dest, content_hash=digest, template_ref=template_ref)
            for dest, digest in entries.items()
        }

    def save(self, template_ref: str, fingerprints: Mapping[str, FileFingerprint]) -> None:
        templates = self._read()
        templates[template_ref] = {
            dest: fp.content_hash for dest, fp in sorted(fingerprints.items())
        }
        payload = {"version": STORE_VERSION, "templates": templates}
        content = (json.dumps(payload, indent=2, sort_keys=True) + "\n").encode("utf-8")
        atomic_write(self.path, content)
