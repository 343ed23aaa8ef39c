"""Directive parser.

Turns the scanner's token stream into a tree of :mod:`ign.template.nodes`.
``@ign-if`` / ``@ign-endif`` pairs are matched with a stack; raw and comment
blocks already arrive as single tokens from the scanner.
"""

from __future__ import annotations

import re

from ign.errors import ParseError, Position
from ign.template.nodes import (
    VAR_TYPES,
    Comment,
    DirectiveNode,
    If,
    Include,
    Raw,
    Text,
    TypedValue,
    VarRef,
)
from ign.template.scanner import Scanner, Token, TokenKind
from ign.template.variables import CoercionError, coerce_value


NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")
_NAME_SPLIT_RE = re.compile(r"([^:=]*)(.*)\Z", re.DOTALL)


def parse_var_spec(spec: str) -> tuple[str, str, bool, TypedValue | None]:
    """Parse the argument of ``@ign-var:...@``.

    Accepts ``NAME``, ``NAME:TYPE``, ``NAME=DEFAULT`` and
    ``NAME:TYPE=DEFAULT``.  ``NAME:text`` where *text* is not a type name and
    contains no ``=`` is read as ``NAME=text``.

    Returns:
        ``(name, type, explicit_type, default)`` with the default coerced.

    Raises:
        ValueError: On a bad name, unknown type or a default that does not
            fit the type.
    """
    match = _NAME_SPLIT_RE.match(spec)
    name, rest = match.group(1), match.group(2)  # type: ignore[union-attr]
    if not NAME_RE.match(name):
        raise ValueError(f"invalid variable name {name!r}")

    var_type, explicit = "string", False
    default_text: str | None = None

    if rest.startswith(":"):
        type_part, eq, default_part = rest[1:].partition("=")
        if type_part in VAR_TYPES:
            var_type, explicit = type_part, True
            default_text = default_part if eq else None
        elif not eq:
            default_text = rest[1:]
        else:
            raise ValueError(
                f"unknown type {type_part!r} for variable '{name}' "
                f"(expected one of {', '.join(VAR_TYPES)})"
            )
    elif rest.startswith("="):
        default_text = rest[1:]

    default: TypedValue | None = None
    if default_text is not None:
        try:
            default = coerce_value(default_text, var_type)
        except CoercionError as exc:
            raise ValueError(
                f"default {default_text!r} for variable '{name}' is not a valid {var_type}: {exc}"
            ) from exc
    return name, var_type, explicit, default


class Parser:
    """Builds the directive tree for one file from its tokens."""

    def __init__(self, tokens: list[Token], path: str, end: Position) -> None:
        self.tokens = tokens
        self.path = path
        self.end = end

    def parse(self) -> tuple[DirectiveNode, ...]:
        root: list[DirectiveNode] = []
        current = root
        # (opening token, condition, negated, parent body)
        stack: list[tuple[Token, str, bool, list[DirectiveNode]]] = []

        for token in self.tokens:
            kind = token.kind
            if kind is TokenKind.TEXT:
                current.append(Text(token.value, token.position))
            elif kind is TokenKind.VAR:
                current.append(self._var_ref(token))
            elif kind is TokenKind.IF:
                condition, negated = self._condition(token)
                stack.append((token, condition, negated, current))
                current = []
            elif kind is TokenKind.ENDIF:
                if not stack:
                    raise ParseError(
                        self.path, token.position, "'@ign-endif' without matching '@ign-if'"
                    )
                opener, condition, negated, parent = stack.pop()
                parent.append(If(condition, negated, tuple(current), opener.position))
                current = parent
            elif kind is TokenKind.INCLUDE:
                target = self._decode(token).strip()
                if not target:
                    raise ParseError(self.path, token.position, "'@ign-include' requires a path")
                current.append(Include(target, token.position))
            elif kind is TokenKind.RAW:
                current.append(Raw(token.value, token.position))
            elif kind is TokenKind.COMMENT:
                current.append(Comment(token.value, token.position))
            elif kind in (TokenKind.ENDRAW, TokenKind.ENDCOMMENT):
                opener_kind = "raw" if kind is TokenKind.ENDRAW else "comment"
                raise ParseError(
                    self.path,
                    token.position,
                    f"'@ign-{kind.value}' without matching '@ign-{opener_kind}'",
                    opened_at=stack[-1][0].position if stack else None,
                )
            else:
                raise ParseError(self.path, token.position, f"unexpected token {kind.value!r}")

        if stack:
            opener = stack[-1][0]
            raise ParseError(
                self.path,
                self.end,
                "'@ign-if' not closed before end of file",
                opened_at=opener.position,
            )
        return tuple(root)

    def _decode(self, token: Token) -> str:
        try:
            return token.value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(
                self.path, token.position, f"directive argument is not valid UTF-8: {exc}"
            ) from exc

    def _var_ref(self, token: Token) -> VarRef:
        try:
            name, var_type, explicit, default = parse_var_spec(self._decode(token))
        except ValueError as exc:
            raise ParseError(self.path, token.position, str(exc)) from exc
        return VarRef(name, var_type, default, token.position, explicit_type=explicit)

    def _condition(self, token: Token) -> tuple[str, bool]:
        text = self._decode(token).strip()
        negated = text.startswith("!")
        name = text[1:].strip() if negated else text
        if not NAME_RE.match(name):
            raise ParseError(self.path, token.position, f"invalid condition name {name!r}")
        return name, negated


def parse_template(data: bytes, path: str = "<template>") -> tuple[DirectiveNode, ...]:
    """Scan and parse one template file's bytes."""
    scanner = Scanner(data, path)
    tokens = scanner.scan()
    return Parser(tokens, path, scanner.position(len(data))).parse()
