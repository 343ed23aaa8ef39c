"""Directive scanner.

Splits the raw bytes of one template file into literal-text and directive
tokens.  Directives start with the ``@ign-`` sentinel followed by a keyword and
end at the next ``@`` on the same line::

    @ign-var:PROJECT_NAME@
    @ign-if:!USE_DOCKER@ ... @ign-endif@
    @ign-include:partials/header.md@
    @ign-raw@ ... @ign-endraw@
    @ign-comment@ ... @ign-endcomment@

Raw and comment blocks are captured whole during scanning: nothing between
the opening marker and the matching close marker is tokenized.
"""

from __future__ import annotations

import re
from bisect import bisect_left
from dataclasses import dataclass
from enum import Enum

from ign.errors import Position, ScanError


SENTINEL = b"@ign-"
DELIMITER = b"@"

_KEYWORD_RE = re.compile(rb"[a-z]+")


class TokenKind(str, Enum):
    """Kinds of token produced by :class:`Scanner`."""

    TEXT = "text"
    VAR = "var"
    IF = "if"
    ENDIF = "endif"
    INCLUDE = "include"
    RAW = "raw"
    ENDRAW = "endraw"
    COMMENT = "comment"
    ENDCOMMENT = "endcomment"


_KEYWORDS: dict[bytes, TokenKind] = {
    kind.value.encode("ascii"): kind for kind in TokenKind if kind is not TokenKind.TEXT
}

# Directives that carry a ``:ARGUMENT`` after the keyword.
_WITH_ARGUMENT = frozenset({TokenKind.VAR, TokenKind.IF, TokenKind.INCLUDE})

# Block directives whose body is captured verbatim up to the close marker.
_OPAQUE_BLOCKS: dict[TokenKind, bytes] = {
    TokenKind.RAW: SENTINEL + b"endraw" + DELIMITER,
    TokenKind.COMMENT: SENTINEL + b"endcomment" + DELIMITER,
}


@dataclass(frozen=True)
class Token:
    """A scanned token.

    For directives with an argument ``value`` holds the argument bytes (text
    after the colon); for raw/comment blocks it holds the captured body; for
    text tokens it holds the literal bytes.
    """

    kind: TokenKind
    value: bytes
    position: Position


class Scanner:
    """Tokenizes a single template file."""

    def __init__(self, data: bytes, path: str = "<template>") -> None:
        self.data = data
        self.path = path
        self._newlines = [m.start() for m in re.finditer(rb"\n", data)]

    def position(self, offset: int) -> Position:
        """Translate a byte offset into a :class:`Position`."""
        index = bisect_left(self._newlines, offset)
        line_start = self._newlines[index - 1] + 1 if index > 0 else 0
        return Position(offset=offset, line=index + 1, column=offset - line_start + 1)

    def scan(self) -> list[Token]:
        """Return the complete token list for the file.

        Raises:
            ScanError: On an unknown keyword, a directive not closed on its
                own line, a missing or unexpected argument, or an unclosed
                raw/comment block.
        """
        data = self.data
        tokens: list[Token] = []
        pos = 0
        length = len(data)

        while pos < length:
            start = data.find(SENTINEL, pos)
            if start == -1:
                tokens.append(Token(TokenKind.TEXT, data[pos:], self.position(pos)))
                break
            if start > pos:
                tokens.append(Token(TokenKind.TEXT, data[pos:start], self.position(pos)))

            opened = self.position(start)
            keyword_match = _KEYWORD_RE.match(data, start + len(SENTINEL))
            keyword = keyword_match.group() if keyword_match else b""
            kind = _KEYWORDS.get(keyword)
            if kind is None:
                raise ScanError(
                    self.path,
                    opened,
                    f"unknown directive '@ign-{keyword.decode('ascii', 'replace')}'",
                )

            after_keyword = keyword_match.end()  # type: ignore[union-attr]
            close = data.find(DELIMITER, after_keyword)
            line_end = data.find(b"\n", after_keyword)
            if close == -1 or (line_end != -1 and line_end < close):
                raise ScanError(
                    self.path, opened, f"unterminated '@ign-{kind.value}' directive"
                )

            argument = data[after_keyword:close]
            value = self._check_argument(kind, argument, opened)
            end = close + len(DELIMITER)

            closer = _OPAQUE_BLOCKS.get(kind)
            if closer is not None:
                body_end = data.find(closer, end)
                if body_end == -1:
                    raise ScanError(
                        self.path,
                        opened,
                        f"unterminated '@ign-{kind.value}' block "
                        f"(missing '{closer.decode('ascii')}')",
                    )
                tokens.append(Token(kind, data[end:body_end], opened))
                pos = body_end + len(closer)
            else:
                tokens.append(Token(kind, value, opened))
                pos = end

        return tokens

    def _check_argument(self, kind: TokenKind, argument: bytes, opened: Position) -> bytes:
        if kind in _WITH_ARGUMENT:
            if not argument.startswith(b":"):
                raise ScanError(
                    self.path, opened, f"'@ign-{kind.value}' requires ':' and an argument"
                )
            return argument[1:]
        if argument:
            raise ScanError(self.path, opened, f"'@ign-{kind.value}' takes no argument")
        return b""


def scan(data: bytes, path: str = "<template>") -> list[Token]:
    """Convenience wrapper around :meth:`Scanner.scan`."""
    return Scanner(data, path).scan()
