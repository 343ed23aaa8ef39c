"""Unit tests for the directive parser (ign.template.parser).

Tests cover:
- parse_var_spec for the four reference forms plus the legacy colon default
- Tree construction, nested conditionals, negation
- Stack discipline errors with opening and failure positions
"""

from __future__ import annotations

import pytest

from ign.errors import ParseError
from ign.template.nodes import Comment, If, Include, Raw, Text, VarRef
from ign.template.parser import parse_template, parse_var_spec


pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# parse_var_spec
# ---------------------------------------------------------------------------


class TestParseVarSpec:
    def test_name_only_is_required_string(self):
        assert parse_var_spec("NAME") == ("NAME", "string", False, None)

    def test_typed_without_default(self):
        assert parse_var_spec("PORT:int") == ("PORT", "int", True, None)

    def test_default_without_type(self):
        assert parse_var_spec("NAME=hello") == ("NAME", "string", False, "hello")

    def test_typed_default_is_coerced(self):
        assert parse_var_spec("PORT:int=8080") == ("PORT", "int", True, 8080)
        assert parse_var_spec("FLAG:bool=yes") == ("FLAG", "bool", True, True)

    def test_empty_default(self):
        assert parse_var_spec("NAME=") == ("NAME", "string", False, "")

    def test_default_keeps_later_separators(self):
        assert parse_var_spec("URL=http://x:1/a=b")[3] == "http://x:1/a=b"
        assert parse_var_spec("S:string=a=b")[3] == "a=b"

    def test_legacy_colon_default(self):
        name, var_type, explicit, default = parse_var_spec("DESCRIPTION:A TypeScript project")
        assert (name, var_type, explicit) == ("DESCRIPTION", "string", False)
        assert default == "A TypeScript project"

    @pytest.mark.parametrize("spec", ["1BAD", "", "has-dash", "sp ace"])
    def test_invalid_names(self, spec):
        with pytest.raises(ValueError, match="invalid variable name"):
            parse_var_spec(spec)

    def test_unknown_type_with_default(self):
        with pytest.raises(ValueError, match="unknown type"):
            parse_var_spec("X:float=1.5")

    def test_default_not_matching_type(self):
        with pytest.raises(ValueError, match="not a valid int"):
            parse_var_spec("PORT:int=abc")


# ---------------------------------------------------------------------------
# Tree construction
# ---------------------------------------------------------------------------


class TestParseTemplate:
    def test_all_node_kinds(self):
        nodes = parse_template(
            b"a@ign-var:N=x@"
            b"@ign-if:F@b@ign-endif@"
            b"@ign-include:p.txt@"
            b"@ign-raw@r@ign-endraw@"
            b"@ign-comment@c@ign-endcomment@"
        )
        assert [type(n) for n in nodes] == [Text, VarRef, If, Include, Raw, Comment]
        assert nodes[1].name == "N" and nodes[1].default == "x"
        assert nodes[3].path == "p.txt"
        assert nodes[4].data == b"r"
        assert nodes[5].data == b"c"

    def test_nested_conditionals(self):
        nodes = parse_template(b"@ign-if:A@1@ign-if:!B@2@ign-endif@3@ign-endif@")
        assert len(nodes) == 1
        outer = nodes[0]
        assert isinstance(outer, If)
        assert outer.condition == "A" and outer.negated is False
        inner = outer.body[1]
        assert isinstance(inner, If)
        assert inner.condition == "B" and inner.negated is True
        assert inner.body[0].data == b"2"
        assert outer.body[2].data == b"3"

    def test_var_ref_required_flag(self):
        (ref,) = parse_template(b"@ign-var:NAME@")
        assert ref.required is True
        assert ref.var_type == "string"

    def test_nodes_are_immutable(self):
        (ref,) = parse_template(b"@ign-var:NAME@")
        with pytest.raises(AttributeError):
            ref.name = "OTHER"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_endif_without_if(self):
        with pytest.raises(ParseError) as exc_info:
            parse_template(b"x\n@ign-endif@", "f.txt")
        assert exc_info.value.failed_at.line == 2
        assert exc_info.value.opened_at is None

    def test_unclosed_if_reports_both_locations(self):
        with pytest.raises(ParseError) as exc_info:
            parse_template(b"@ign-if:A@\nbody\n", "f.txt")
        err = exc_info.value
        assert (err.opened_at.line, err.opened_at.column) == (1, 1)
        assert err.failed_at.line == 3
        assert "opened at f.txt:1:1" in str(err)

    def test_innermost_unclosed_if_is_reported(self):
        with pytest.raises(ParseError) as exc_info:
            parse_template(b"@ign-if:A@@ign-endif@\n@ign-if:B@")
        assert exc_info.value.opened_at.line == 2

    def test_stray_endraw(self):
        with pytest.raises(ParseError, match="without matching '@ign-raw'"):
            parse_template(b"@ign-endraw@")

    def test_stray_endcomment_inside_if(self):
        with pytest.raises(ParseError) as exc_info:
            parse_template(b"@ign-if:A@@ign-endcomment@@ign-endif@")
        assert exc_info.value.opened_at is not None

    def test_invalid_variable_name(self):
        with pytest.raises(ParseError, match="invalid variable name"):
            parse_template(b"@ign-var:9X@")

    def test_invalid_condition_name(self):
        with pytest.raises(ParseError, match="invalid condition name"):
            parse_template(b"@ign-if:!@@ign-endif@")

    def test_include_requires_path(self):
        with pytest.raises(ParseError, match="requires a path"):
            parse_template(b"@ign-include: @")
