"""
Template Parser — Annotated template markup to TemplateAst.

    Late delivery of {{goods}} entitles the buyer to a {{penalty as "0.00"}}% penalty.
    {{#if forceMajeure}}Force majeure applies.{{/if}}
    {{#ulist items}}{{quantity}} units of {{name}}{{/ulist}}

The meta-grammar runs on the same Earley engine as document parsing and
is held to the same rule: exactly one interpretation or an error.
"""

import json

from lark import Lark, Token, Transformer
from lark.exceptions import VisitError

from clausegram.errors import ClausegramError, ParseFailure
from clausegram.grammar.engine import parse_unambiguous
from clausegram.markup.nodes import (
    Binding,
    ClauseBinding,
    Expr,
    FormattedBinding,
    IfBinding,
    IfElseBinding,
    JoinBinding,
    LastChunk,
    OListBinding,
    StaticChunk,
    TemplateAst,
    UListBinding,
    WithBinding,
)


TEMPLATE_GRAMMAR = r"""
start: item*

?item: text
     | binding
     | formatted
     | if_block
     | if_else_block
     | clause_block
     | with_block
     | ulist_block
     | olist_block
     | join_block
     | expr

text: TEXT
binding: "{{" _WS? NAME _WS? "}}"
formatted: "{{" _WS? NAME _WS "as" _WS STRING _WS? "}}"

if_block: "{{#if" _WS NAME _WS? "}}" [TEXT] "{{/if}}"
if_else_block: "{{#if" _WS NAME _WS? "}}" [TEXT] "{{else}}" [TEXT] "{{/if}}"

clause_block: "{{#clause" _WS NAME _WS? "}}" block "{{/clause}}"
with_block: "{{#with" _WS NAME _WS? "}}" block "{{/with}}"
ulist_block: "{{#ulist" _WS NAME _WS? "}}" block "{{/ulist}}"
olist_block: "{{#olist" _WS NAME _WS? "}}" block "{{/olist}}"
join_block: "{{#join" _WS NAME [_WS "separator" _WS? "=" _WS? STRING] _WS? "}}" block "{{/join}}"
block: item*

expr: "{{%" EXPR "%}}"

TEXT: /(?:[^{]|\{(?!\{))+/
NAME: /[A-Za-z_][A-Za-z0-9_]*/
STRING: /"(?:[^"\\]|\\.)*"/
EXPR: /(?:[^%]|%(?!\}\}))+/
_WS: /[ \t]+/
"""


def _mark_last_chunk(nodes: list) -> list:
    if nodes and isinstance(nodes[-1], StaticChunk):
        last = nodes[-1]
        nodes[-1] = LastChunk(last.text, last.line, last.column)
    return nodes


def _text(token: Token | None) -> str:
    return str(token) if token is not None else ""


class _TemplateTransformer(Transformer):
    """Builds TemplateAst nodes from the meta-grammar parse tree."""

    def __init__(self, default_separator: str):
        super().__init__()
        self.default_separator = default_separator

    def start(self, items):
        return TemplateAst(_mark_last_chunk(list(items)))

    def block(self, items):
        return TemplateAst(_mark_last_chunk(list(items)))

    def text(self, items):
        token = items[0]
        return StaticChunk(str(token), token.line, token.column)

    def binding(self, items):
        name = items[0]
        return Binding(str(name), None, name.line, name.column)

    def formatted(self, items):
        name, fmt = items
        return FormattedBinding(str(name), json.loads(fmt), name.line, name.column)

    def if_block(self, items):
        name, text = items
        return IfBinding(str(name), _text(text), name.line, name.column)

    def if_else_block(self, items):
        name, when_true, when_false = items
        return IfElseBinding(str(name), _text(when_true), _text(when_false), name.line, name.column)

    def clause_block(self, items):
        name, nested = items
        return ClauseBinding(str(name), nested, name.line, name.column)

    def with_block(self, items):
        name, nested = items
        return WithBinding(str(name), nested, name.line, name.column)

    def ulist_block(self, items):
        name, nested = items
        return UListBinding(str(name), nested, name.line, name.column)

    def olist_block(self, items):
        name, nested = items
        return OListBinding(str(name), nested, name.line, name.column)

    def join_block(self, items):
        name, separator, nested = items
        sep = json.loads(separator) if separator is not None else self.default_separator
        return JoinBinding(str(name), sep, nested, name.line, name.column)

    def expr(self, items):
        token = items[0]
        return Expr(str(token).strip(), token.line, token.column)


class TemplateParser:
    """Parses annotated template markup; one instance may parse many templates."""

    def __init__(self, default_separator: str = ", "):
        self.default_separator = default_separator
        self._lark = Lark(
            TEMPLATE_GRAMMAR,
            parser="earley",
            lexer="dynamic",
            ambiguity="explicit",
            maybe_placeholders=True,
        )

    def parse(self, text: str, file_name: str | None = None) -> TemplateAst:
        """
        Parse template markup.

        Raises:
            ParseFailure: malformed markup
            AmbiguousParse: markup with more than one reading
        """
        tree = parse_unambiguous(self._lark, text, file_name)
        try:
            return _TemplateTransformer(self.default_separator).transform(tree)
        except VisitError as e:
            if isinstance(e.orig_exc, ClausegramError):
                raise e.orig_exc from None
            if isinstance(e.orig_exc, ValueError):
                raise ParseFailure(f"Malformed template markup: {e.orig_exc}", file_name=file_name) from e.orig_exc
            raise


def parse_template(text: str, file_name: str | None = None, default_separator: str = ", ") -> TemplateAst:
    """Parse template markup with a throwaway TemplateParser."""
    return TemplateParser(default_separator).parse(text, file_name)
