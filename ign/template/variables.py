"""Typed variable values and the variable resolver.

Values reach the engine as a flat ``{name: value}`` map produced by whatever
collected them (prompt, config file, defaults).  This module coerces them to
the declared types, builds the immutable run-wide :class:`ResolvedVariables`
and resolves ``VarRef`` nodes, collecting every problem instead of stopping at
the first one.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from ign.errors import ValidationError, ValidationIssue
from ign.template.nodes import VAR_TYPES, TypedValue, VarRef


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

TRUTHY_TOKENS: frozenset[str] = frozenset({"true", "yes", "1", "on"})
FALSY_TOKENS: frozenset[str] = frozenset({"false", "no", "0", "off"})

_INT_RE = re.compile(r"[+-]?[0-9]+\Z")


class CoercionError(ValueError):
    """A value could not be converted to the requested variable type."""


def coerce_value(value: Any, var_type: str) -> TypedValue:
    """Convert *value* to *var_type* (``string``, ``int`` or ``bool``).

    Strings pass through, ints use a strict base-10 parse, bools accept only
    the fixed token sets in :data:`TRUTHY_TOKENS` and :data:`FALSY_TOKENS`.

    Raises:
        CoercionError: If the value does not fit the type.
    """
    if var_type not in VAR_TYPES:
        raise CoercionError(f"unknown variable type '{var_type}'")

    if var_type == "string":
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int)):
            return str(value)
        raise CoercionError(f"expected a string, got {type(value).__name__}")

    if var_type == "int":
        if isinstance(value, bool):
            raise CoercionError("expected an integer, got a boolean")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and _INT_RE.match(value.strip()):
            return int(value.strip(), 10)
        raise CoercionError("expected a base-10 integer")

    if isinstance(value, bool):
        return value
    token = str(value).strip().lower() if isinstance(value, (str, int)) else None
    if token in TRUTHY_TOKENS:
        return True
    if token in FALSY_TOKENS:
        return False
    raise CoercionError(
        "expected one of " + ", ".join(sorted(TRUTHY_TOKENS | FALSY_TOKENS))
    )


def format_value(value: TypedValue) -> str:
    """Render a typed value as the text substituted into output."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ---------------------------------------------------------------------------
# ResolvedVariables
# ---------------------------------------------------------------------------


class ResolvedVariables:
    """Run-wide, read-only view of supplied values and manifest defaults.

    ``supplied`` holds the values the caller passed in (already coerced to the
    manifest type where the manifest declares one); ``defaults`` holds the
    manifest-level defaults.  ``declared`` lists every manifest variable.
    ``rejected`` maps each supplied value that failed coercion to the
    ``invalid_value`` issue recorded for it.
    """

    def __init__(
        self,
        supplied: Mapping[str, Any],
        defaults: Mapping[str, TypedValue] | None = None,
        declared: Mapping[str, str] | None = None,
        rejected: Mapping[str, ValidationIssue] | None = None,
    ) -> None:
        self._supplied = MappingProxyType(dict(supplied))
        self._defaults = MappingProxyType(dict(defaults or {}))
        self._declared = MappingProxyType(dict(declared or {}))
        self._rejected = MappingProxyType(dict(rejected or {}))

    @property
    def supplied(self) -> Mapping[str, Any]:
        return self._supplied

    @property
    def defaults(self) -> Mapping[str, TypedValue]:
        return self._defaults

    @property
    def declared(self) -> Mapping[str, str]:
        """``{name: type}`` for every variable the manifest declares."""
        return self._declared

    @property
    def rejected(self) -> Mapping[str, ValidationIssue]:
        return self._rejected

    def note_rejected_use(self, name: str, path: str) -> bool:
        """Add *path* to the issue of a rejected value; false if *name* was not rejected."""
        issue = self._rejected.get(name)
        if issue is None:
            return False
        if path not in issue.files:
            issue.files.append(path)
        return True

    def is_declared(self, name: str) -> bool:
        return name in self._declared

    def lookup(self, name: str) -> Any | None:
        """Return the supplied value, else the manifest default, else ``None``."""
        if name in self._supplied:
            return self._supplied[name]
        return self._defaults.get(name)

    def as_dict(self) -> dict[str, Any]:
        """Merged ``{name: value}`` with supplied values winning over defaults."""
        return {**self._defaults, **self._supplied}


def build_resolved_variables(
    values: Mapping[str, Any],
    manifest: Any = None,
) -> tuple[ResolvedVariables, list[ValidationIssue]]:
    """Build the run-wide variable map from user *values* and a manifest.

    Supplied values for manifest-declared variables are coerced to the
    declared type.  Failures are returned as ``invalid_value`` issues and the
    bad value is kept out of ``supplied``; the resolver later adds every file
    that references it to that same issue.
    """
    issues: list[ValidationIssue] = []
    supplied: dict[str, Any] = {}
    rejected: dict[str, ValidationIssue] = {}
    defaults: dict[str, TypedValue] = {}
    declared: dict[str, str] = {}

    specs = manifest.variables if manifest is not None else {}
    for name, spec in specs.items():
        declared[name] = spec.type
        if spec.default is not None:
            defaults[name] = spec.default

    for name, value in values.items():
        spec = specs.get(name)
        if spec is None:
            supplied[name] = value
            continue
        try:
            supplied[name] = coerce_value(value, spec.type)
        except CoercionError as exc:
            rejected[name] = ValidationIssue(
                kind="invalid_value",
                variable=name,
                files=[],
                value=str(value),
                detail=str(exc),
            )
            issues.append(rejected[name])

    return ResolvedVariables(supplied, defaults, declared, rejected), issues


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class VariableResolver:
    """Resolves ``VarRef`` nodes against a :class:`ResolvedVariables` map.

    Problems are recorded rather than raised so that a whole run can be
    checked in one pass; call :meth:`raise_if_errors` when done.
    """

    def __init__(self, variables: ResolvedVariables) -> None:
        self.variables = variables
        self.issues: list[ValidationIssue] = []
        self._missing: dict[str, list[str]] = {}

    def resolve(self, ref: VarRef, path: str) -> str:
        """Return the substitution text for *ref* appearing in file *path*.

        Order: supplied value, then the reference's own default, then the
        manifest default.  Returns ``""`` after recording an issue; a
        supplied value that already failed coercion only gains *path* on its
        existing issue.
        """
        name = ref.name
        if self.variables.note_rejected_use(name, path):
            return ""
        if name in self.variables.supplied:
            raw = self.variables.supplied[name]
            try:
                return format_value(coerce_value(raw, ref.var_type))
            except CoercionError as exc:
                self.issues.append(
                    ValidationIssue(
                        kind="invalid_value",
                        variable=name,
                        files=[path],
                        value=format_value(raw) if isinstance(raw, (str, int)) else str(raw),
                        detail=str(exc),
                    )
                )
                return ""

        if ref.default is not None:
            return format_value(ref.default)

        if name in self.variables.defaults:
            default = self.variables.defaults[name]
            try:
                return format_value(coerce_value(default, ref.var_type))
            except CoercionError as exc:
                self.issues.append(
                    ValidationIssue(
                        kind="invalid_value",
                        variable=name,
                        files=[path],
                        value=format_value(default),
                        detail=str(exc),
                    )
                )
                return ""

        self.record_missing(name, path)
        return ""

    def record_missing(self, name: str, path: str | None) -> None:
        """Note that required variable *name* had no value (in *path*)."""
        files = self._missing.setdefault(name, [])
        if path is not None and path not in files:
            files.append(path)

    def all_issues(self) -> list[ValidationIssue]:
        """Every issue recorded so far, missing-required issues grouped by name."""
        missing = [
            ValidationIssue(kind="missing_required", variable=name, files=list(files))
            for name, files in self._missing.items()
        ]
        return missing + self.issues

    def raise_if_errors(self, extra: list[ValidationIssue] | None = None) -> None:
        issues = list(extra or []) + self.all_issues()
        if issues:
            raise ValidationError(issues)
