"""Shared pytest fixtures for the ign test suite.

Provides reusable fixtures for:
- Building template trees (optionally with an ``ign.json`` manifest)
- Output directories and engine configuration
- In-memory fingerprint stores
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from ign.config import EngineConfig
from ign.generator.fingerprints import InMemoryFingerprintStore


# ---------------------------------------------------------------------------
# Template trees
# ---------------------------------------------------------------------------

TemplateFactory = Callable[..., Path]


@pytest.fixture
def make_template(tmp_path: Path) -> TemplateFactory:
    """Factory writing ``{relative_path: content}`` under ``tmp_path/<name>``.

    Calling it again with the same name rewrites the given files in place,
    which is how tests simulate a template changing between runs.
    """

    def _make(
        files: dict[str, str | bytes],
        manifest: dict[str, Any] | None = None,
        name: str = "template",
    ) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            data = content.encode("utf-8") if isinstance(content, str) else content
            path.write_bytes(data)
        if manifest is not None:
            (root / "ign.json").write_text(json.dumps(manifest), encoding="utf-8")
        return root

    return _make


@pytest.fixture
def sample_manifest() -> dict[str, Any]:
    """Manifest declaring one variable of each type."""
    return {
        "name": "sample",
        "variables": {
            "PROJECT_NAME": {"type": "string", "required": True, "description": "Name"},
            "PORT": {"type": "int", "default": 8080},
            "USE_DOCKER": {"type": "bool", "default": False},
        },
    }


# ---------------------------------------------------------------------------
# Output & engine
# ---------------------------------------------------------------------------


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Empty output directory for generated projects."""
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture
def engine_config(output_dir: Path) -> EngineConfig:
    return EngineConfig(output_dir=output_dir)


@pytest.fixture
def memory_store() -> InMemoryFingerprintStore:
    return InMemoryFingerprintStore()
