"""Directive language: scanning, parsing, resolution and rendering.

Quick usage::

    from ign.template import render_template

    render_template(b"Hello @ign-var:NAME=world@", {})  # b"Hello world"
"""

from ign.template.conditions import ConditionEvaluator, is_truthy
from ign.template.includes import IncludeResolver, canonical_path
from ign.template.manifest import (
    TemplateFile,
    TemplateManifest,
    TemplateSettings,
    VariableSpec,
    load_manifest,
    walk_template,
)
from ign.template.nodes import Comment, DirectiveNode, If, Include, Raw, Text, VarRef
from ign.template.parser import Parser, parse_template, parse_var_spec
from ign.template.renderer import Renderer, render_template
from ign.template.scanner import Scanner, Token, TokenKind, scan
from ign.template.variables import (
    ResolvedVariables,
    VariableResolver,
    build_resolved_variables,
    coerce_value,
)

__all__ = [
    "Comment",
    "ConditionEvaluator",
    "DirectiveNode",
    "If",
    "Include",
    "IncludeResolver",
    "Parser",
    "Raw",
    "Renderer",
    "ResolvedVariables",
    "Scanner",
    "TemplateFile",
    "TemplateManifest",
    "TemplateSettings",
    "Text",
    "Token",
    "TokenKind",
    "VarRef",
    "VariableResolver",
    "VariableSpec",
    "build_resolved_variables",
    "canonical_path",
    "coerce_value",
    "is_truthy",
    "load_manifest",
    "parse_template",
    "parse_var_spec",
    "render_template",
    "scan",
    "walk_template",
]
