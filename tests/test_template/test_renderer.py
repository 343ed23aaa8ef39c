"""Unit tests for rendering (ign.template.renderer).

Tests cover:
- Identity on directive-free input, byte-for-byte
- Substitution, conditionals, raw and comment blocks
- Batched validation errors across references
- Path rendering and its segment rules
"""

from __future__ import annotations

import pytest

from ign.errors import ParseError, Position, ValidationError
from ign.template.manifest import TemplateManifest, VariableSpec
from ign.template.nodes import Include
from ign.template.parser import parse_template
from ign.template.renderer import Renderer, render_template
from ign.template.variables import ResolvedVariables


pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# render_template
# ---------------------------------------------------------------------------


class TestRenderTemplate:
    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"plain text\n",
            b"crlf\r\nline\r\n",
            "café ☃\n".encode("utf-8"),
            b"email me at a@b.c @ noon",
            b"tabs\tand  spaces   \n\n\n",
        ],
    )
    def test_directive_free_input_is_unchanged(self, data):
        assert render_template(data, {}) == data

    def test_substitution(self):
        assert render_template(b"name=@ign-var:NAME@!", {"NAME": "demo"}) == b"name=demo!"

    def test_default_used_when_absent(self):
        assert render_template(b"@ign-var:PORT:int=8080@", {}) == b"8080"

    def test_legacy_colon_default(self):
        out = render_template(b"@ign-var:DESCRIPTION:A TypeScript project@", {})
        assert out == b"A TypeScript project"

    def test_bool_formats_lowercase(self):
        assert render_template(b"@ign-var:ON:bool@", {"ON": "YES"}) == b"true"

    def test_conditionals(self):
        template = b"a@ign-if:D@[d]@ign-endif@@ign-if:!D@[nd]@ign-endif@b"
        assert render_template(template, {"D": "true"}) == b"a[d]b"
        assert render_template(template, {"D": "false"}) == b"a[nd]b"

    def test_raw_block_is_emitted_verbatim(self):
        template = b"@ign-raw@@ign-var:FOO@ and @ign-if:X@@ign-endraw@"
        assert render_template(template, {}) == b"@ign-var:FOO@ and @ign-if:X@"

    def test_comment_block_is_dropped(self):
        template = b"keep@ign-comment@ @ign-var:MISSING@ @ign-endcomment@this"
        assert render_template(template, {}) == b"keepthis"

    def test_whitespace_around_directives_preserved(self):
        template = b"  @ign-if:A@\n  x\n  @ign-endif@\n"
        assert render_template(template, {"A": "1"}) == b"  \n  x\n  \n"

    def test_manifest_default_and_type(self):
        manifest = TemplateManifest(variables={"PORT": VariableSpec(type="int", default=80)})
        assert render_template(b"@ign-var:PORT@", {}, manifest) == b"80"
        assert render_template(b"@ign-var:PORT@", {"PORT": "443"}, manifest) == b"443"

    def test_all_missing_variables_reported_together(self):
        template = b"@ign-var:A@ @ign-var:B@ @ign-if:C@@ign-endif@ @ign-var:N:int@"
        with pytest.raises(ValidationError) as exc_info:
            render_template(template, {"N": "x"}, path="f.txt")
        kinds = {(i.kind, i.variable) for i in exc_info.value.issues}
        assert kinds == {
            ("missing_required", "A"),
            ("missing_required", "B"),
            ("unknown_condition", "C"),
            ("invalid_value", "N"),
        }

    def test_missing_variable_inside_false_branch_is_not_required(self):
        template = b"@ign-if:F@@ign-var:ONLY_WHEN_F@@ign-endif@"
        assert render_template(template, {"F": "no"}) == b""

    def test_malformed_template_raises_parse_error(self):
        with pytest.raises(ParseError):
            render_template(b"@ign-if:A@never closed", {"A": "1"})


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class TestRenderer:
    def test_same_tree_renders_identically(self):
        nodes = parse_template(b"@ign-var:A@@ign-if:B@ on@ign-endif@@ign-raw@r@ign-endraw@", "f")
        renderer = Renderer(ResolvedVariables({"A": "a", "B": "yes"}))
        assert renderer.render(nodes, "f") == renderer.render(nodes, "f") == b"a onr"

    def test_unexpanded_include_is_rejected(self):
        renderer = Renderer(ResolvedVariables({}))
        node = Include("x.txt", Position(0, 1, 1))
        with pytest.raises(ValueError, match="not expanded"):
            renderer.render((node,), "f.txt")

    def test_render_path_substitutes_segments(self):
        renderer = Renderer(ResolvedVariables({"PKG": "demo"}))
        assert renderer.render_path("src/@ign-var:PKG@/__init__.py") == "src/demo/__init__.py"
        assert renderer.issues == []

    def test_render_path_without_directives(self):
        renderer = Renderer(ResolvedVariables({}))
        assert renderer.render_path("a/b.txt") == "a/b.txt"

    @pytest.mark.parametrize("value", ["", "x/y", "..", "."])
    def test_render_path_rejects_bad_segments(self, value):
        renderer = Renderer(ResolvedVariables({"PKG": value}))
        assert renderer.render_path("src/@ign-var:PKG@/m.py") == "src/@ign-var:PKG@/m.py"
        (issue,) = renderer.issues
        assert issue.kind == "invalid_value"
        assert issue.files == ["src/@ign-var:PKG@/m.py"]

    def test_issues_shared_across_files(self):
        renderer = Renderer(ResolvedVariables({}))
        renderer.render(parse_template(b"@ign-var:NAME@", "a"), "a")
        renderer.render(parse_template(b"@ign-var:NAME@", "b"), "b")
        with pytest.raises(ValidationError) as exc_info:
            renderer.raise_if_errors()
        (issue,) = exc_info.value.issues
        assert issue.files == ["a", "b"]
