"""
Markup — Annotated templates and the documents drafted from them.

- nodes: the template AST
- template_parser: template markup to AST
- document: the markup document tree
- transformer: text, markup and data conversions and renderings
"""

from clausegram.markup.nodes import (
    StaticChunk,
    LastChunk,
    Binding,
    FormattedBinding,
    IfBinding,
    IfElseBinding,
    ClauseBinding,
    WithBinding,
    UListBinding,
    OListBinding,
    JoinBinding,
    Expr,
    TemplateNode,
    TemplateAst,
    list_prefixes,
)

from clausegram.markup.template_parser import (
    TemplateParser,
    parse_template,
)

from clausegram.markup.document import MarkupNode

from clausegram.markup.transformer import (
    MarkupTransformer,
    DefaultMarkupTransformer,
    normalize_text,
    create_markup_transformer,
)

__all__ = [
    # Template AST
    "StaticChunk",
    "LastChunk",
    "Binding",
    "FormattedBinding",
    "IfBinding",
    "IfElseBinding",
    "ClauseBinding",
    "WithBinding",
    "UListBinding",
    "OListBinding",
    "JoinBinding",
    "Expr",
    "TemplateNode",
    "TemplateAst",
    "list_prefixes",
    # Parsing
    "TemplateParser",
    "parse_template",
    # Documents
    "MarkupNode",
    "MarkupTransformer",
    "DefaultMarkupTransformer",
    "normalize_text",
    "create_markup_transformer",
]
