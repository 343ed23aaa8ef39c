"""Project materialization: planning, atomic writes and update tracking."""

from ign.generator.fingerprints import (
    FileFingerprint,
    FingerprintStore,
    InMemoryFingerprintStore,
    JsonFingerprintStore,
    classify,
    fingerprint,
)
from ign.generator.planner import (
    FileAction,
    GenerationPlan,
    RenderedFile,
    decide_action,
    plan_generation,
    plan_update,
)
from ign.generator.report import ActionKind, GenerationReport, ReportEntry, UpdateStatus
from ign.generator.writer import apply_plan, atomic_write, next_backup_path

__all__ = [
    "ActionKind",
    "FileAction",
    "FileFingerprint",
    "FingerprintStore",
    "GenerationPlan",
    "GenerationReport",
    "InMemoryFingerprintStore",
    "JsonFingerprintStore",
    "RenderedFile",
    "ReportEntry",
    "UpdateStatus",
    "apply_plan",
    "atomic_write",
    "classify",
    "decide_action",
    "fingerprint",
    "next_backup_path",
    "plan_generation",
    "plan_update",
]
