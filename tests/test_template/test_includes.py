"""Unit tests for include expansion (ign.template.includes).

Tests cover:
- canonical_path normalization and root escapes
- Splicing of included content, including inside conditionals
- Parse-once arena and expansion caching
- Cycle detection (self, mutual, transitive) and missing includes
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ign.errors import CycleError, IncludeError
from ign.template.includes import IncludeResolver, canonical_path
from ign.template.nodes import If, Include, Text, VarRef


pytestmark = pytest.mark.unit


def _loader(files: dict[str, bytes], calls: list[str] | None = None):
    def load(path: str) -> bytes:
        if calls is not None:
            calls.append(path)
        try:
            return files[path]
        except KeyError:
            raise FileNotFoundError(2, "No such file or directory", path) from None

    return load


# ---------------------------------------------------------------------------
# canonical_path
# ---------------------------------------------------------------------------


class TestCanonicalPath:
    def test_normalizes_dots_and_slashes(self):
        assert canonical_path("a/./b/../c.txt") == "a/c.txt"
        assert canonical_path("/partials/x.txt") == "partials/x.txt"
        assert canonical_path("a\\b.txt") == "a/b.txt"

    @pytest.mark.parametrize("path", ["..", "../x.txt", "a/../../x.txt", ".", ""])
    def test_rejects_escapes(self, path):
        with pytest.raises(IncludeError, match="escapes the template root"):
            canonical_path(path)


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------


class TestExpand:
    def test_include_is_spliced(self):
        resolver = IncludeResolver(
            "/tpl",
            _loader({"main.txt": b"a@ign-include:part.txt@c", "part.txt": b"b@ign-var:X@"}),
        )
        nodes = resolver.expand("main.txt")
        assert [type(n) for n in nodes] == [Text, Text, VarRef, Text]
        assert not any(isinstance(n, Include) for n in nodes)

    def test_include_inside_conditional_body(self):
        resolver = IncludeResolver(
            "/tpl",
            _loader({"main.txt": b"@ign-if:A@@ign-include:p.txt@@ign-endif@", "p.txt": b"P"}),
        )
        (node,) = resolver.expand("main.txt")
        assert isinstance(node, If)
        assert node.body[0].data == b"P"

    def test_nested_includes(self):
        resolver = IncludeResolver(
            "/tpl",
            _loader({
                "a.txt": b"A@ign-include:dir/b.txt@",
                "dir/b.txt": b"B@ign-include:dir/c.txt@",
                "dir/c.txt": b"C",
            }),
        )
        assert b"".join(n.data for n in resolver.expand("a.txt")) == b"ABC"

    def test_each_file_loaded_once(self):
        calls: list[str] = []
        resolver = IncludeResolver(
            "/tpl",
            _loader(
                {
                    "a.txt": b"@ign-include:shared.txt@@ign-include:shared.txt@",
                    "b.txt": b"@ign-include:./shared.txt@",
                    "shared.txt": b"S",
                },
                calls,
            ),
        )
        resolver.expand("a.txt")
        resolver.expand("b.txt")
        assert calls.count("shared.txt") == 1
        assert resolver.loaded_paths == ["a.txt", "shared.txt", "b.txt"]

    def test_diamond_is_not_a_cycle(self):
        resolver = IncludeResolver(
            "/tpl",
            _loader({
                "top.txt": b"@ign-include:l.txt@@ign-include:r.txt@",
                "l.txt": b"@ign-include:base.txt@",
                "r.txt": b"@ign-include:base.txt@",
                "base.txt": b"x",
            }),
        )
        assert len(resolver.expand("top.txt")) == 2

    def test_reads_from_filesystem_by_default(self, tmp_path: Path):
        (tmp_path / "main.txt").write_bytes(b"[@ign-include:p.txt@]")
        (tmp_path / "p.txt").write_bytes(b"inner")
        resolver = IncludeResolver(tmp_path)
        assert b"".join(n.data for n in resolver.expand("main.txt")) == b"[inner]"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestIncludeErrors:
    def test_self_include(self):
        resolver = IncludeResolver("/tpl", _loader({"a.txt": b"@ign-include:a.txt@"}))
        with pytest.raises(CycleError) as exc_info:
            resolver.expand("a.txt")
        assert exc_info.value.chain == ["a.txt", "a.txt"]

    def test_mutual_include(self):
        resolver = IncludeResolver(
            "/tpl",
            _loader({"a.txt": b"@ign-include:b.txt@", "b.txt": b"@ign-include:a.txt@"}),
        )
        with pytest.raises(CycleError) as exc_info:
            resolver.expand("a.txt")
        assert exc_info.value.chain == ["a.txt", "b.txt", "a.txt"]
        assert "a.txt -> b.txt -> a.txt" in str(exc_info.value)

    def test_cycle_reported_from_where_it_starts(self):
        resolver = IncludeResolver(
            "/tpl",
            _loader({
                "main.txt": b"@ign-include:x.txt@",
                "x.txt": b"@ign-include:y.txt@",
                "y.txt": b"@ign-include:x.txt@",
            }),
        )
        with pytest.raises(CycleError) as exc_info:
            resolver.expand("main.txt")
        assert exc_info.value.chain == ["x.txt", "y.txt", "x.txt"]

    def test_cycle_inside_false_conditional_still_detected(self):
        resolver = IncludeResolver(
            "/tpl",
            _loader({"a.txt": b"@ign-if:NEVER@@ign-include:a.txt@@ign-endif@"}),
        )
        with pytest.raises(CycleError):
            resolver.expand("a.txt")

    def test_missing_include_names_includer(self):
        resolver = IncludeResolver("/tpl", _loader({"main.txt": b"@ign-include:gone.txt@"}))
        with pytest.raises(IncludeError) as exc_info:
            resolver.expand("main.txt")
        assert exc_info.value.path == "gone.txt"
        assert exc_info.value.included_from == "main.txt"
        assert "not found" in str(exc_info.value)

    def test_escaping_include_names_includer(self):
        resolver = IncludeResolver("/tpl", _loader({"main.txt": b"@ign-include:../etc/passwd@"}))
        with pytest.raises(IncludeError) as exc_info:
            resolver.expand("main.txt")
        assert exc_info.value.included_from == "main.txt"
        assert "escapes the template root" in str(exc_info.value)
