"""Directive tree node types.

A parsed template file is a list of :data:`DirectiveNode` values.  The union
is closed: the renderer and include resolver dispatch on exactly these six
classes and treat anything else as a programming error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ign.errors import Position


# ---------------------------------------------------------------------------
# Variable types
# ---------------------------------------------------------------------------

VAR_TYPES: tuple[str, ...] = ("string", "int", "bool")

TypedValue = Union[str, int, bool]


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Text:
    """Literal template text, emitted verbatim."""

    data: bytes
    position: Position


@dataclass(frozen=True)
class VarRef:
    """``@ign-var:NAME[:TYPE][=DEFAULT]@``.

    ``default`` is already coerced to ``var_type`` by the parser.
    """

    name: str
    var_type: str
    default: TypedValue | None
    position: Position
    explicit_type: bool = False

    @property
    def required(self) -> bool:
        return self.default is None


@dataclass(frozen=True)
class If:
    """``@ign-if:[!]NAME@ ... @ign-endif@``."""

    condition: str
    negated: bool
    body: tuple["DirectiveNode", ...]
    position: Position


@dataclass(frozen=True)
class Include:
    """``@ign-include:PATH@``, spliced away before rendering."""

    path: str
    position: Position


@dataclass(frozen=True)
class Raw:
    """Content of an ``@ign-raw@`` block, passed through untouched."""

    data: bytes
    position: Position


@dataclass(frozen=True)
class Comment:
    """Content of an ``@ign-comment@`` block, never emitted."""

    data: bytes
    position: Position


DirectiveNode = Union[Text, VarRef, If, Include, Raw, Comment]

