"""Template manifest models and template-tree discovery.

A template root may contain ``ign.json`` (or ``ign.yaml`` / ``ign.yml``)
declaring its variables and generation settings::

    {
      "name": "python-cli",
      "variables": {
        "PROJECT_NAME": {"type": "string", "required": true,
                         "description": "Package name"},
        "USE_DOCKER":   {"type": "bool", "default": false}
      },
      "settings": {"ignore_patterns": ["*.pyc", "partials/*"]}
    }

Every other file under the root (minus ignored paths) is part of the
template tree.
"""

from __future__ import annotations

import fnmatch
import json
import os
import stat
from pathlib import Path
from typing import Literal, Optional, Union

import pydantic
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from ign.errors import ManifestError, TemplateIOError
from ign.template.parser import NAME_RE


MANIFEST_NAMES: tuple[str, ...] = ("ign.json", "ign.yaml", "ign.yml")

# Directories never treated as template content.
ALWAYS_SKIPPED_DIRS: frozenset[str] = frozenset({".git", ".ign"})

BINARY_SNIFF_BYTES = 8192


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class VariableSpec(BaseModel):
    """Declaration of one template variable.

    Exactly one of ``required`` and ``default`` applies: a variable with a
    default is optional, a variable without one is required.
    """

    name: str = Field(default="", description="Filled in from the manifest key")
    type: Literal["string", "int", "bool"] = Field(default="string")
    required: Optional[bool] = Field(default=None)
    default: Optional[Union[bool, int, str]] = Field(default=None)
    description: str = Field(default="")

    @model_validator(mode="after")
    def _check_default(self) -> "VariableSpec":
        if self.required is None:
            self.required = self.default is None
        if self.required and self.default is not None:
            raise ValueError("a required variable cannot declare a default")
        if not self.required and self.default is None:
            raise ValueError("an optional variable must declare a default")
        if self.default is not None and not _matches_type(self.default, self.type):
            raise ValueError(
                f"default {self.default!r} does not match declared type '{self.type}'"
            )
        return self


class TemplateSettings(BaseModel):
    """Generation settings of a template."""

    ignore_patterns: list[str] = Field(default_factory=list)
    include_dotfiles: bool = Field(default=True)
    preserve_executable: bool = Field(default=True)

    @field_validator("ignore_patterns")
    @classmethod
    def _dedupe(cls, patterns: list[str]) -> list[str]:
        return sorted(set(patterns))


class TemplateManifest(BaseModel):
    """A template's variable declarations and settings."""

    name: str = Field(default="")
    version: str = Field(default="")
    description: str = Field(default="")
    variables: dict[str, VariableSpec] = Field(default_factory=dict)
    settings: TemplateSettings = Field(default_factory=TemplateSettings)

    @model_validator(mode="after")
    def _name_variables(self) -> "TemplateManifest":
        for key, spec in self.variables.items():
            if not NAME_RE.match(key):
                raise ValueError(f"invalid variable name {key!r}")
            if spec.name and spec.name != key:
                raise ValueError(f"variable {key!r} declares mismatching name {spec.name!r}")
            spec.name = key
        return self

    def required_variables(self) -> list[str]:
        return [name for name, spec in self.variables.items() if spec.required]


def _matches_type(value: object, var_type: str) -> bool:
    if var_type == "bool":
        return isinstance(value, bool)
    if var_type == "int":
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, str)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def find_manifest(root: str | Path) -> Path | None:
    """Return the manifest file inside *root*, if any."""
    for name in MANIFEST_NAMES:
        candidate = Path(root) / name
        if candidate.is_file():
            return candidate
    return None


def load_manifest(root: str | Path) -> TemplateManifest:
    """Load the manifest of the template at *root*.

    A template without a manifest gets an empty one (no declared variables,
    default settings).

    Raises:
        ManifestError: If the file is not valid JSON/YAML or fails validation.
    """
    path = find_manifest(root)
    if path is None:
        return TemplateManifest()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateIOError(path, exc) from exc

    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(path, f"cannot parse manifest: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestError(path, "manifest must be a mapping")

    try:
        return TemplateManifest.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ManifestError(path, str(exc)) from exc


# ---------------------------------------------------------------------------
# Template tree
# ---------------------------------------------------------------------------


class TemplateFile(BaseModel):
    """One file of the template tree."""

    relative_path: str = Field(..., description="POSIX path relative to the template root")
    executable: bool = Field(default=False)
    binary: bool = Field(default=False)


def is_binary(path: Path) -> bool:
    """Treat a file as binary when its first chunk contains a NUL byte."""
    with open(path, "rb") as f:
        return b"\x00" in f.read(BINARY_SNIFF_BYTES)


def is_ignored(relative_path: str, settings: TemplateSettings) -> bool:
    """Whether *relative_path* is excluded by the template settings."""
    parts = relative_path.split("/")
    if not settings.include_dotfiles and any(part.startswith(".") for part in parts):
        return True
    for pattern in settings.ignore_patterns:
        if fnmatch.fnmatchcase(relative_path, pattern):
            return True
        if any(fnmatch.fnmatchcase(part, pattern) for part in parts):
            return True
    return False


def walk_template(root: str | Path, manifest: TemplateManifest) -> list[TemplateFile]:
    """List the template files under *root* in sorted path order."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise TemplateIOError(
            root_path, FileNotFoundError(2, "template directory not found", str(root_path))
        )

    files: list[TemplateFile] = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(d for d in dirnames if d not in ALWAYS_SKIPPED_DIRS)
        base = Path(dirpath)
        for filename in sorted(filenames):
            full = base / filename
            relative = full.relative_to(root_path).as_posix()
            if relative in MANIFEST_NAMES:
                continue
            if is_ignored(relative, manifest.settings):
                continue
            try:
                mode = full.stat().st_mode
                if not stat.S_ISREG(mode):
                    continue
                binary = is_binary(full)
            except OSError as exc:
                raise TemplateIOError(full, exc) from exc
            files.append(
                TemplateFile(
                    relative_path=relative,
                    executable=bool(mode & stat.S_IXUSR),
                    binary=binary,
                )
            )
    files.sort(key=lambda f: f.relative_path)
    return files
