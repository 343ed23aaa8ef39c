"""Engine configuration.

Typed settings for a generation run.  Like the rest of the package's data
models these are Pydantic v2 models so they validate on construction and
round-trip through JSON or environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ign.errors import StateError


_TRUE_ENV_VALUES = frozenset({"1", "true", "yes", "on"})


class EngineConfig(BaseModel):
    """Settings for checkout and update runs.

    The project-side metadata lives in ``<output_dir>/<config_dir>/``: the
    project config file records which template and variables produced the
    project, the fingerprint file records the hash of every generated file.
    """

    output_dir: Path = Field(default=Path("."))
    config_dir: str = Field(default=".ign")
    config_file: str = Field(default="ign-var.json")
    fingerprint_file: str = Field(default="ign-hashes.json")
    force: bool = Field(default=False, description="Overwrite existing files")
    dry_run: bool = Field(default=False, description="Plan only, never touch the filesystem")
    max_parallel_writes: int = Field(
        default=1, ge=1, description="Upper bound on concurrent file writes"
    )

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        """Root of the ``.ign/`` metadata directory inside the output."""
        return self.output_dir / self.config_dir

    @property
    def project_config_path(self) -> Path:
        """Path to the project config file (``.ign/ign-var.json``)."""
        return self.config_path / self.config_file

    @property
    def fingerprint_path(self) -> Path:
        """Path to the persisted fingerprint store."""
        return self.config_path / self.fingerprint_file

    @property
    def project_config_relpath(self) -> str:
        return f"{self.config_dir}/{self.config_file}"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "EngineConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "EngineConfig":
        """Build an ``EngineConfig`` from environment variables.

        Recognised variables (all optional):
            IGN_OUTPUT_DIR, IGN_CONFIG_DIR, IGN_FORCE, IGN_DRY_RUN,
            IGN_MAX_PARALLEL_WRITES.

        Keyword arguments override the environment.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("IGN_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["IGN_OUTPUT_DIR"])
        if os.environ.get("IGN_CONFIG_DIR"):
            kwargs["config_dir"] = os.environ["IGN_CONFIG_DIR"]
        if os.environ.get("IGN_FORCE"):
            kwargs["force"] = os.environ["IGN_FORCE"].strip().lower() in _TRUE_ENV_VALUES
        if os.environ.get("IGN_DRY_RUN"):
            kwargs["dry_run"] = os.environ["IGN_DRY_RUN"].strip().lower() in _TRUE_ENV_VALUES
        if os.environ.get("IGN_MAX_PARALLEL_WRITES"):
            kwargs["max_parallel_writes"] = int(os.environ["IGN_MAX_PARALLEL_WRITES"])
        kwargs.update(overrides)
        return cls(**kwargs)


class ProjectConfig(BaseModel):
    """Contents of ``.ign/ign-var.json``: what produced this project."""

    template: str = Field(..., description="Template reference (URL or local path)")
    variables: dict[str, Any] = Field(default_factory=dict)

    def to_json_bytes(self) -> bytes:
        return (self.model_dump_json(indent=2) + "\n").encode("utf-8")

    @classmethod
    def load(cls, path: Path) -> "ProjectConfig":
        """Read a project config.

        Raises:
            OSError: If the file cannot be read.
            StateError: If it is not valid project config JSON.
        """
        raw = Path(path).read_text(encoding="utf-8")
        try:
            return cls.model_validate_json(raw)
        except ValueError as exc:
            raise StateError(path, f"invalid project config: {exc}") from exc
