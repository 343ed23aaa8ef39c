"""Generation engine.

Drives the two runs a project goes through:

checkout -- render every template file, plan against the (usually empty)
            output directory, write, record fingerprints and the project
            config.
update   -- re-render with the same variables, classify every file against
            the stored fingerprints and only overwrite what the user has not
            touched.

Usage::

    python -m ign.engine ./template -o ./my-project --var PROJECT_NAME=demo
    python -m ign.engine ./template -o ./my-project --update
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ign.config import EngineConfig, ProjectConfig
from ign.errors import IgnError, TemplateIOError, ValidationIssue
from ign.generator.fingerprints import (
    FileFingerprint,
    FingerprintStore,
    JsonFingerprintStore,
)
from ign.generator.planner import (
    GenerationPlan,
    RenderedFile,
    plan_generation,
    plan_update,
)
from ign.generator.report import ActionKind, GenerationReport, UpdateStatus
from ign.generator.writer import apply_plan
from ign.template.includes import IncludeResolver
from ign.template.manifest import TemplateManifest, load_manifest, walk_template
from ign.template.renderer import Renderer
from ign.template.variables import build_resolved_variables


class Engine:
    """Template engine for one template directory and one output directory.

    Attributes:
        template_dir: Local template root (already fetched by the caller).
        config: Engine settings, including the output directory.
        template_ref: Identifier under which fingerprints are stored.
        store: Fingerprint store; defaults to ``.ign/ign-hashes.json`` in
            the output directory.
        manifest: The template's loaded manifest.
    """

    def __init__(
        self,
        template_dir: str | Path,
        config: EngineConfig | None = None,
        *,
        template_ref: str | None = None,
        store: FingerprintStore | None = None,
    ) -> None:
        self.template_dir = Path(template_dir)
        self.config = config or EngineConfig()
        self.template_ref = template_ref or str(self.template_dir.resolve())
        self.store: FingerprintStore = store or JsonFingerprintStore(self.config.fingerprint_path)
        self.manifest: TemplateManifest = load_manifest(self.template_dir)

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_all(self, values: Mapping[str, Any]) -> list[RenderedFile]:
        """Render every template file with *values*.

        Scan, parse, include and cycle errors abort at once.  Variable
        problems are collected over all files and raised together.

        Raises:
            ValidationError: With every variable problem in the run.
        """
        files = walk_template(self.template_dir, self.manifest)
        variables, issues = build_resolved_variables(values, self.manifest)
        renderer = Renderer(variables)
        includes = IncludeResolver(self.template_dir)

        rendered: list[RenderedFile] = []
        for template_file in files:
            source = template_file.relative_path
            dest = renderer.render_path(source)
            if template_file.binary:
                try:
                    content = (self.template_dir / source).read_bytes()
                except OSError as exc:
                    raise TemplateIOError(self.template_dir / source, exc) from exc
            else:
                content = renderer.render(includes.expand(source), source)
            rendered.append(
                RenderedFile(
                    source_path=source,
                    dest_path=dest,
                    content=content,
                    executable=template_file.executable,
                )
            )

        for name in self.manifest.required_variables():
            if name not in variables.supplied and name not in variables.rejected:
                renderer.resolver.record_missing(name, None)

        issues.extend(_duplicate_destinations(rendered))
        renderer.raise_if_errors(issues)
        return rendered

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def checkout(
        self,
        values: Mapping[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> GenerationReport:
        """Materialize the template into the output directory."""
        rendered = self.render_all(values)
        project = ProjectConfig(template=self.template_ref, variables=dict(values))
        config_file = RenderedFile(
            source_path="",
            dest_path=self.config.project_config_relpath,
            content=project.to_json_bytes(),
        )

        plan = plan_generation(
            rendered + [config_file],
            self.output_dir,
            force=self.config.force,
            project_config=config_file.dest_path,
        )
        stored = self.store.load(self.template_ref)
        report = await self._apply(plan, rendered + [config_file], cancel)

        if not report.dry_run:
            written = _written_paths(report)
            for item in rendered:
                if item.dest_path in written:
                    stored[item.dest_path] = self._fingerprint(item)
            self.store.save(self.template_ref, stored)
        return report

    async def update(
        self,
        values: Mapping[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> GenerationReport:
        """Re-apply the template without discarding user edits.

        When *values* is omitted the variables recorded in the project config
        by the checkout are reused.
        """
        if values is None:
            values = self.load_project_config().variables

        rendered = self.render_all(values)
        stored = self.store.load(self.template_ref)
        plan = plan_update(rendered, stored, self.output_dir, force=self.config.force)
        report = await self._apply(plan, rendered, cancel)

        if not report.dry_run:
            written = _written_paths(report)
            # Skipped new and unchanged files take the render hash as baseline.
            adopted = {
                e.path
                for e in report.entries
                if e.action is ActionKind.SKIP
                and e.status in (UpdateStatus.NEW, UpdateStatus.UNCHANGED)
            }
            for item in rendered:
                if item.dest_path in written or item.dest_path in adopted:
                    stored[item.dest_path] = self._fingerprint(item)
            self.store.save(self.template_ref, stored)
        return report

    def load_project_config(self) -> ProjectConfig:
        """Read ``.ign/ign-var.json`` from the output directory."""
        path = self.config.project_config_path
        try:
            return ProjectConfig.load(path)
        except OSError as exc:
            raise TemplateIOError(path, exc) from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _apply(
        self,
        plan: GenerationPlan,
        rendered: list[RenderedFile],
        cancel: asyncio.Event | None,
    ) -> GenerationReport:
        contents = {item.dest_path: (item.content, item.executable) for item in rendered}
        return await apply_plan(
            plan,
            contents,
            self.output_dir,
            dry_run=self.config.dry_run,
            preserve_executable=self.manifest.settings.preserve_executable,
            cancel=cancel,
            max_parallel=self.config.max_parallel_writes,
        )

    def _fingerprint(self, item: RenderedFile) -> FileFingerprint:
        return FileFingerprint(
            dest_path=item.dest_path,
            content_hash=item.content_hash,
            template_ref=self.template_ref,
        )


def _written_paths(report: GenerationReport) -> set[str]:
    return {
        e.path
        for e in report.entries
        if e.action in (ActionKind.CREATE, ActionKind.OVERWRITE) and e.error is None
    }


def _duplicate_destinations(rendered: list[RenderedFile]) -> list[ValidationIssue]:
    seen: dict[str, str] = {}
    issues: list[ValidationIssue] = []
    for item in rendered:
        first = seen.setdefault(item.dest_path, item.source_path)
        if first != item.source_path:
            issues.append(
                ValidationIssue(
                    kind="duplicate_destination",
                    variable="<path>",
                    files=[first, item.source_path],
                    value=item.dest_path,
                )
            )
    return issues


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Developer entry point: ``python -m ign.engine TEMPLATE -o OUTPUT``."""
    import argparse

    from rich.markup import escape

    from ign.utils import (
        parse_assignments,
        print_error,
        print_report,
        print_success,
        print_warning,
    )

    parser = argparse.ArgumentParser(
        description="ign -- generate a project from an annotated template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m ign.engine ./template -o ./app --var PROJECT_NAME=app\n"
            "  python -m ign.engine ./template -o ./app --update --dry-run\n"
        ),
    )
    parser.add_argument("template", help="Path to the local template directory")
    parser.add_argument("--output", "-o", default=".", help="Output directory (default: .)")
    parser.add_argument(
        "--var", action="append", default=[], metavar="NAME=VALUE",
        help="Variable value (repeatable)",
    )
    parser.add_argument("--force", action="store_true", help="Overwrite existing files")
    parser.add_argument("--dry-run", action="store_true", help="Show the plan without writing")
    parser.add_argument("--update", action="store_true", help="Update a previous checkout")

    args = parser.parse_args()

    try:
        values = parse_assignments(args.var)
    except ValueError as exc:
        print_error(f"Error: {exc}")
        sys.exit(2)

    overrides: dict[str, Any] = {"output_dir": Path(args.output)}
    if args.force:
        overrides["force"] = True
    if args.dry_run:
        overrides["dry_run"] = True
    config = EngineConfig.from_env(**overrides)

    try:
        engine = Engine(args.template, config)
        if args.update:
            report = asyncio.run(engine.update(values or None))
        else:
            report = asyncio.run(engine.checkout(values))
    except IgnError as exc:
        print_error(f"Error: {escape(str(exc))}")
        sys.exit(1)

    print_report(report, title="Update" if args.update else "Checkout")
    for path in report.conflicts:
        print_warning(f"Conflict: {escape(path)} changed locally and in the template")
    if report.exit_code == 0 and not report.dry_run:
        print_success(f"Project written to {escape(str(config.output_dir))}")
    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
