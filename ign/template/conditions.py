"""Conditional evaluation for ``@ign-if`` blocks."""

from __future__ import annotations

from typing import Any

from ign.errors import ValidationIssue
from ign.template.nodes import If
from ign.template.variables import ResolvedVariables, format_value


FALSY_STRINGS: frozenset[str] = frozenset({"", "false", "0", "no"})


def is_truthy(value: Any | None) -> bool:
    """Truthiness applied uniformly whatever the declared type.

    ``None`` (absent), the empty string and ``false``/``0``/``no`` in any
    case are falsy; everything else is truthy.
    """
    if value is None:
        return False
    text = format_value(value) if isinstance(value, (str, int)) else str(value)
    return text.strip().lower() not in FALSY_STRINGS


class ConditionEvaluator:
    """Decides whether an ``If`` node's body is emitted.

    A condition naming a variable that the manifest never declared and that
    the caller did not supply is an ``unknown_condition`` issue; the body is
    then treated as not emitted and the issue is reported with the run's
    other validation errors.
    """

    def __init__(self, variables: ResolvedVariables) -> None:
        self.variables = variables
        self._unknown: dict[str, ValidationIssue] = {}

    @property
    def issues(self) -> list[ValidationIssue]:
        return list(self._unknown.values())

    def evaluate(self, node: If, path: str) -> bool:
        name = node.condition
        if self.variables.note_rejected_use(name, path):
            return False
        if name not in self.variables.supplied and not self.variables.is_declared(name):
            issue = self._unknown.setdefault(
                name, ValidationIssue(kind="unknown_condition", variable=name, files=[])
            )
            if path not in issue.files:
                issue.files.append(path)
            return False
        result = is_truthy(self.variables.lookup(name))
        return not result if node.negated else result
