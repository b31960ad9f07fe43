"""
Markup Transformer — Conversions between text, markup documents and data.

The parse direction turns text into a document of paragraphs and
extracts data from it with a compiled grammar. The draft direction walks
a template AST together with data, printing each bound value the way
its grammar rule reads it, and renders the resulting document as
markdown text, a parsed tree, HTML or a slate-style editor value.
"""

import copy
import json
import re
from pathlib import Path
from typing import Any, Protocol

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import StructuralError, UnsupportedFormatError
from clausegram.grammar.actions import ParseContext
from clausegram.grammar.engine import CompiledGrammar
from clausegram.grammar.printer import ValuePrinter
from clausegram.markup.document import MarkupNode
from clausegram.markup.nodes import (
    BLOCK_NODES,
    TEXT_NODES,
    ClauseBinding,
    Expr,
    IfBinding,
    IfElseBinding,
    TemplateAst,
    WithBinding,
    list_prefixes,
)
from clausegram.observability import get_logger
from clausegram.schemas import ClassDeclaration, Property
from clausegram.vocabulary import DraftFormat, MarkupKind


logger = get_logger("markup")

TEMPLATES_DIR = Path(__file__).parent / "templates"

_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    """Canonical text: LF line endings, no blank-line runs, no leading or trailing newlines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip("\n")


def nl2br(text: str | None) -> Markup:
    return escape(text or "").replace("\n", Markup("<br/>\n"))


class MarkupTransformer(Protocol):
    """What the pipeline needs from a markup transformer."""

    def text_to_markup(self, text: str) -> MarkupNode: ...

    def markup_to_text(self, document: MarkupNode) -> str: ...

    def extract_data(
        self,
        document: MarkupNode,
        compiled: CompiledGrammar,
        schema_type: ClassDeclaration,
        context: ParseContext | None = None,
        file_name: str | None = None,
    ) -> Any: ...

    def draft_markup(
        self,
        data: dict[str, Any],
        ast: TemplateAst,
        schema_type: ClassDeclaration,
        printer: ValuePrinter,
    ) -> MarkupNode: ...

    def render(self, document: MarkupNode, draft_format: DraftFormat, unquote_variables: bool = False) -> Any: ...


class DefaultMarkupTransformer:
    """Plain-text markup transformer with HTML and slate renderings."""

    def __init__(self, config: ClausegramConfig = DEFAULT_CONFIG):
        self.config = config
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self._env.filters["nl2br"] = nl2br

    # =========================================================================
    # TEXT <-> MARKUP
    # =========================================================================

    def text_to_markup(self, text: str) -> MarkupNode:
        normalized = normalize_text(text)
        if not normalized:
            return MarkupNode.document()
        paragraphs = [
            MarkupNode(MarkupKind.PARAGRAPH, children=[MarkupNode.text_node(p)])
            for p in normalized.split("\n\n")
        ]
        return MarkupNode.document(paragraphs)

    def markup_to_text(self, document: MarkupNode) -> str:
        return normalize_text(document.plain_text())

    def extract_data(
        self,
        document: MarkupNode,
        compiled: CompiledGrammar,
        schema_type: ClassDeclaration,
        context: ParseContext | None = None,
        file_name: str | None = None,
    ) -> Any:
        """
        Data read from a document by a compiled grammar.

        Raises:
            ParseFailure: the text does not match the grammar
            AmbiguousParse: the text matches in more than one way
        """
        text = self.markup_to_text(document)
        data = compiled.get_parser().parse(text, context or ParseContext(config=self.config), file_name)
        logger.debug(f"Extracted {schema_type.fully_qualified_name} from {len(text)} characters")
        return data

    # =========================================================================
    # DRAFTING
    # =========================================================================

    def draft_markup(
        self,
        data: dict[str, Any],
        ast: TemplateAst,
        schema_type: ClassDeclaration,
        printer: ValuePrinter,
    ) -> MarkupNode:
        """Document for `data` laid out by a template AST."""
        return MarkupNode.document(self._draft_level(data, ast, schema_type, printer))

    def _property(self, decl: ClassDeclaration, node) -> Property:
        prop = decl.get_property(node.field)
        if prop is None:
            raise StructuralError(
                f"Template references a property '{node.field}' that is not declared "
                f"in the template model '{decl.fully_qualified_name}'"
            )
        return prop

    def _nested_type(self, printer: ValuePrinter, prop: Property, value: Any) -> ClassDeclaration:
        if isinstance(value, dict) and "$class" in value:
            return printer.model_manager.get_type(value["$class"])
        return printer.model_manager.get_type(prop.fully_qualified_type_name)

    def _draft_level(
        self,
        data: dict[str, Any],
        ast: TemplateAst,
        decl: ClassDeclaration,
        printer: ValuePrinter,
    ) -> list[MarkupNode]:
        out: list[MarkupNode] = []
        for node in ast:
            if isinstance(node, TEXT_NODES):
                if node.text:
                    out.append(MarkupNode.text_node(node.text))
            elif isinstance(node, Expr):
                out.append(MarkupNode(MarkupKind.FORMULA, text=f"{{{{% {node.expression} %}}}}", value=node.expression))
            elif isinstance(node, (IfBinding, IfElseBinding)):
                self._property(decl, node)
                value = bool(data.get(node.field))
                when_false = node.when_false if isinstance(node, IfElseBinding) else ""
                out.append(MarkupNode(
                    MarkupKind.CONDITIONAL,
                    text=node.when_true if value else when_false,
                    name=node.field,
                    value=value,
                    attrs={"when_true": node.when_true, "when_false": when_false},
                ))
            elif isinstance(node, BLOCK_NODES):
                prop = self._property(decl, node)
                value = data.get(node.field)
                if isinstance(node, (ClauseBinding, WithBinding)):
                    kind = MarkupKind.CLAUSE if isinstance(node, ClauseBinding) else MarkupKind.WITH
                    children = []
                    if value is not None:
                        nested_decl = self._nested_type(printer, prop, value)
                        children = self._draft_level(value, node.nested, nested_decl, printer)
                    out.append(MarkupNode(kind, name=node.field, children=children))
                else:
                    out.append(self._draft_list(node, prop, value or [], printer))
            else:
                prop = self._property(decl, node)
                value = data.get(node.field)
                out.append(MarkupNode(
                    MarkupKind.VARIABLE,
                    text=printer.print_property(prop, value, node.format_spec),
                    name=node.field,
                    value=value,
                    attrs={"type": prop.fully_qualified_type_name, "format": node.format_spec},
                ))
        return out

    def _draft_list(self, node, prop: Property, items: list[Any], printer: ValuePrinter) -> MarkupNode:
        first_prefix, rest_prefix = list_prefixes(node, self.config)
        children = []
        for i, item in enumerate(items):
            nested = node.nested.with_prefix(first_prefix if i == 0 else rest_prefix)
            item_decl = self._nested_type(printer, prop, item)
            children.append(MarkupNode(
                MarkupKind.LIST_ITEM,
                children=self._draft_level(item, nested, item_decl, printer),
            ))
        return MarkupNode(
            MarkupKind.LIST,
            name=node.field,
            children=children,
            attrs={"list_type": node.kind.value, "separator": rest_prefix},
        )

    # =========================================================================
    # RENDERING
    # =========================================================================

    def unquote(self, document: MarkupNode) -> MarkupNode:
        """Copy of a document whose string variables print without their quotes."""
        result = copy.deepcopy(document)
        for node in result.walk():
            if node.kind != MarkupKind.VARIABLE or not isinstance(node.value, str):
                continue
            text = node.text or ""
            if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
                node.text = json.loads(text)
        return result

    def paragraphs(self, document: MarkupNode) -> list[list[MarkupNode]]:
        """Top-level inline nodes grouped into paragraphs at blank lines."""
        if document.children and all(c.kind == MarkupKind.PARAGRAPH for c in document.children):
            return [list(p.children) for p in document.children]
        groups: list[list[MarkupNode]] = [[]]
        for node in document.children:
            if node.kind == MarkupKind.TEXT and "\n\n" in (node.text or ""):
                for i, piece in enumerate(node.text.split("\n\n")):
                    if i > 0:
                        groups.append([])
                    if piece:
                        groups[-1].append(MarkupNode.text_node(piece))
            else:
                groups[-1].append(node)
        return [g for g in groups if g]

    def to_html(self, document: MarkupNode) -> str:
        template = self._env.get_template("document.html")
        return template.render(paragraphs=self.paragraphs(document))

    def to_slate(self, document: MarkupNode) -> dict[str, Any]:
        blocks = [
            {"object": "block", "type": "paragraph", "data": {}, "nodes": [self._slate_node(n) for n in p]}
            for p in self.paragraphs(document)
        ]
        return {
            "object": "value",
            "document": {"object": "document", "data": {}, "nodes": blocks},
        }

    def _slate_node(self, node: MarkupNode) -> dict[str, Any]:
        if node.kind == MarkupKind.TEXT:
            return {"object": "text", "text": node.text or ""}
        data: dict[str, Any] = {}
        if node.name is not None:
            data["id"] = node.name
        if node.kind in (MarkupKind.VARIABLE, MarkupKind.CONDITIONAL, MarkupKind.FORMULA):
            data.update({k: v for k, v in node.attrs.items() if v is not None})
            if node.kind == MarkupKind.CONDITIONAL:
                data["value"] = node.value
            children = [{"object": "text", "text": node.text or ""}]
        else:
            data.update(node.attrs)
            children = [self._slate_node(c) for c in node.children]
        return {"object": "inline", "type": node.kind.value, "data": data, "nodes": children}

    def render(self, document: MarkupNode, draft_format: DraftFormat, unquote_variables: bool = False) -> Any:
        """
        Render a drafted document.

        The parsed tree is returned as drafted; every other rendering
        honors `unquote_variables`.

        Raises:
            UnsupportedFormatError: not one of the DraftFormat renderings
        """
        if draft_format == DraftFormat.MARKUP_PARSED:
            return document.to_dict()
        if unquote_variables:
            document = self.unquote(document)
        if draft_format == DraftFormat.MARKDOWN:
            return self.markup_to_text(document)
        if draft_format == DraftFormat.HTML:
            return self.to_html(document)
        if draft_format == DraftFormat.SLATE:
            return self.to_slate(document)
        raise UnsupportedFormatError(f"Unsupported format: {draft_format}")


def create_markup_transformer(config: ClausegramConfig = DEFAULT_CONFIG) -> DefaultMarkupTransformer:
    """Factory function for DefaultMarkupTransformer."""
    return DefaultMarkupTransformer(config)
