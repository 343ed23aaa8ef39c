"""Include resolution.

``@ign-include:PATH@`` nodes are replaced by the parsed content of ``PATH``
(relative to the template root) before rendering.  Parsed files live in an
arena keyed by canonical path so each file is read and parsed once per run;
a separate "currently expanding" set detects cycles independently of the
order in which files are visited.
"""

from __future__ import annotations

import posixpath
from collections.abc import Callable
from pathlib import Path

from ign.errors import CycleError, IncludeError, TemplateIOError
from ign.template.nodes import DirectiveNode, If, Include
from ign.template.parser import parse_template


def canonical_path(path: str) -> str:
    """Normalize a template-relative path to POSIX form without ``.``/``..``.

    Raises:
        IncludeError: If the path escapes the template root.
    """
    normalized = posixpath.normpath(path.replace("\\", "/").lstrip("/"))
    if normalized in (".", "") or normalized == ".." or normalized.startswith("../"):
        raise IncludeError(path, "include path escapes the template root")
    return normalized


class IncludeResolver:
    """Expands includes for every file of one template tree.

    Args:
        root: Template root directory.
        loader: Optional ``(relative_path) -> bytes`` callable replacing
            filesystem reads.
    """

    def __init__(self, root: str | Path, loader: Callable[[str], bytes] | None = None) -> None:
        self.root = Path(root)
        self._loader = loader or self._read_file
        self._arena: dict[str, tuple[DirectiveNode, ...]] = {}
        self._expanded: dict[str, tuple[DirectiveNode, ...]] = {}
        self._expanding: set[str] = set()
        self._chain: list[str] = []

    # -- Public API --------------------------------------------------------

    def parsed(self, path: str) -> tuple[DirectiveNode, ...]:
        """Return the parsed (unexpanded) tree of *path*, loading it on first use."""
        canon = canonical_path(path)
        if canon not in self._arena:
            data = self._load(canon)
            self._arena[canon] = parse_template(data, canon)
        return self._arena[canon]

    def expand(self, path: str) -> tuple[DirectiveNode, ...]:
        """Return the tree of *path* with every include spliced in.

        Raises:
            CycleError: If *path* is (transitively) included by itself.
            IncludeError: If an included file is missing or outside the root.
        """
        canon = canonical_path(path)
        cached = self._expanded.get(canon)
        if cached is not None:
            return cached
        if canon in self._expanding:
            start = self._chain.index(canon)
            raise CycleError(self._chain[start:] + [canon])

        self._expanding.add(canon)
        self._chain.append(canon)
        try:
            expanded = self.splice(self.parsed(canon), canon)
        finally:
            self._chain.pop()
            self._expanding.discard(canon)
        self._expanded[canon] = expanded
        return expanded

    def splice(self, nodes: tuple[DirectiveNode, ...], current: str) -> tuple[DirectiveNode, ...]:
        """Replace ``Include`` nodes in *nodes*, which belong to file *current*."""
        result: list[DirectiveNode] = []
        for node in nodes:
            if isinstance(node, Include):
                try:
                    target = canonical_path(node.path)
                except IncludeError as exc:
                    raise IncludeError(node.path, exc.reason, current) from exc
                result.extend(self._expand_from(target, current))
            elif isinstance(node, If):
                result.append(
                    If(node.condition, node.negated, self.splice(node.body, current), node.position)
                )
            else:
                result.append(node)
        return tuple(result)

    @property
    def loaded_paths(self) -> list[str]:
        """Canonical paths parsed so far, in load order."""
        return list(self._arena)

    # -- Internal helpers --------------------------------------------------

    def _expand_from(self, target: str, current: str) -> tuple[DirectiveNode, ...]:
        if target in self._expanding:
            start = self._chain.index(target)
            raise CycleError(self._chain[start:] + [target])
        try:
            return self.expand(target)
        except IncludeError as exc:
            if exc.included_from is None and exc.path == target:
                raise IncludeError(target, exc.reason, current) from exc
            raise

    def _load(self, canon: str) -> bytes:
        try:
            return self._loader(canon)
        except FileNotFoundError as exc:
            raise IncludeError(canon, "included file not found") from exc
        except IsADirectoryError as exc:
            raise IncludeError(canon, "include path is a directory") from exc
        except OSError as exc:
            raise TemplateIOError(self.root / canon, exc) from exc

    def _read_file(self, canon: str) -> bytes:
        return (self.root / canon).read_bytes()
