"""ign -- template directive engine and project generator.

Turns a tree of ``@ign-...@`` annotated template files into a project tree
and later re-applies template changes without discarding user edits.

Quick usage::

    import asyncio
    from ign import Engine, EngineConfig

    engine = Engine("./template", EngineConfig(output_dir="./my-project"))
    report = asyncio.run(engine.checkout({"PROJECT_NAME": "demo"}))
"""

from ign.config import EngineConfig, ProjectConfig
from ign.engine import Engine
from ign.errors import (
    ConflictError,
    CycleError,
    IgnError,
    IncludeError,
    ManifestError,
    ParseError,
    ScanError,
    StateError,
    TemplateIOError,
    ValidationError,
    ValidationIssue,
)
from ign.generator.report import ActionKind, GenerationReport, UpdateStatus
from ign.template.renderer import render_template

__version__ = "0.1.0"

__all__ = [
    "ActionKind",
    "ConflictError",
    "CycleError",
    "Engine",
    "EngineConfig",
    "GenerationReport",
    "IgnError",
    "IncludeError",
    "ManifestError",
    "ParseError",
    "ProjectConfig",
    "ScanError",
    "StateError",
    "TemplateIOError",
    "UpdateStatus",
    "ValidationError",
    "ValidationIssue",
    "render_template",
]
