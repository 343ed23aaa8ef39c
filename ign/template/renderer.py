"""Rendering of expanded directive trees to output bytes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ign.errors import ValidationIssue
from ign.template.conditions import ConditionEvaluator
from ign.template.nodes import Comment, DirectiveNode, If, Include, Raw, Text, VarRef
from ign.template.parser import parse_template
from ign.template.variables import ResolvedVariables, VariableResolver, build_resolved_variables


class Renderer:
    """Renders trees for one run, sharing a single :class:`ResolvedVariables`.

    Validation problems from every rendered file accumulate on the renderer;
    the caller checks :attr:`issues` (or calls :meth:`raise_if_errors`) once
    all files are rendered.
    """

    def __init__(self, variables: ResolvedVariables) -> None:
        self.variables = variables
        self.resolver = VariableResolver(variables)
        self.conditions = ConditionEvaluator(variables)

    def render(self, nodes: tuple[DirectiveNode, ...], path: str) -> bytes:
        """Render an include-free tree belonging to file *path*."""
        out: list[bytes] = []
        self._render_into(nodes, path, out)
        return b"".join(out)

    def render_path(self, relative_path: str) -> str:
        """Substitute directives inside a template-relative file path.

        Each rendered path segment must be non-empty and must not contain a
        separator, so a variable can rename a file or directory but never
        move it elsewhere in the tree.
        """
        if "@ign-" not in relative_path:
            return relative_path
        rendered = self.render(
            parse_template(relative_path.encode("utf-8"), relative_path), relative_path
        ).decode("utf-8")
        original_parts = relative_path.split("/")
        rendered_parts = rendered.split("/")
        if len(rendered_parts) != len(original_parts) or any(
            part in ("", ".", "..") for part in rendered_parts
        ):
            self.resolver.issues.append(
                ValidationIssue(
                    kind="invalid_value",
                    variable="<path>",
                    files=[relative_path],
                    value=rendered,
                    detail="rendered path segments must be non-empty names without '/'",
                )
            )
            return relative_path
        return rendered

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.resolver.all_issues() + self.conditions.issues

    def raise_if_errors(self, extra: list[ValidationIssue] | None = None) -> None:
        self.resolver.raise_if_errors(list(extra or []) + self.conditions.issues)

    def _render_into(self, nodes: tuple[DirectiveNode, ...], path: str, out: list[bytes]) -> None:
        for node in nodes:
            if isinstance(node, Text):
                out.append(node.data)
            elif isinstance(node, VarRef):
                out.append(self.resolver.resolve(node, path).encode("utf-8"))
            elif isinstance(node, If):
                if self.conditions.evaluate(node, path):
                    self._render_into(node.body, path, out)
            elif isinstance(node, Raw):
                out.append(node.data)
            elif isinstance(node, Comment):
                continue
            elif isinstance(node, Include):
                raise ValueError(
                    f"{path}:{node.position}: include of '{node.path}' was not expanded"
                )
            else:
                raise TypeError(f"unknown directive node: {node!r}")


def render_template(
    data: bytes,
    values: Mapping[str, Any],
    manifest: Any = None,
    path: str = "<template>",
) -> bytes:
    """Parse and render a single include-free template in one call.

    Raises:
        ScanError, ParseError: For a malformed template.
        ValidationError: With every variable problem found.
    """
    variables, issues = build_resolved_variables(values, manifest)
    renderer = Renderer(variables)
    output = renderer.render(parse_template(data, path), path)
    renderer.raise_if_errors(issues)
    return output
