"""Tests for template markup parsing."""

import pytest

from clausegram.errors import ParseFailure
from clausegram.markup import (
    Binding,
    Expr,
    FormattedBinding,
    IfBinding,
    IfElseBinding,
    JoinBinding,
    LastChunk,
    OListBinding,
    StaticChunk,
    TemplateParser,
    UListBinding,
    WithBinding,
    parse_template,
)
from clausegram.vocabulary import NodeKind


@pytest.fixture(scope="module")
def parser():
    return TemplateParser()


class TestNodes:
    """Tests for the node kinds of the template AST."""

    def test_chunks_and_binding(self, parser):
        """Trailing text is a LastChunk."""
        ast = parser.parse("Hello {{name}}!")
        assert [n.kind for n in ast] == [NodeKind.STATIC_CHUNK, NodeKind.BINDING, NodeKind.LAST_CHUNK]
        assert ast.nodes[0] == StaticChunk("Hello ", 1, 1)
        assert isinstance(ast.nodes[1], Binding)
        assert ast.nodes[1].field == "name"
        assert ast.nodes[1].format_spec is None
        assert isinstance(ast.nodes[2], LastChunk)
        assert ast.nodes[2].text == "!"

    def test_binding_whitespace(self, parser):
        assert parser.parse("{{ name }}").nodes[0].field == "name"

    def test_formatted_binding(self, parser):
        node = parser.parse('Due {{dueDate as "DD MMMM YYYY"}}').nodes[1]
        assert isinstance(node, FormattedBinding)
        assert node.format == "DD MMMM YYYY"
        assert node.format_spec == "DD MMMM YYYY"

    def test_if_block(self, parser):
        node = parser.parse("{{#if forceMajeure}} except for Force Majeure{{/if}}").nodes[0]
        assert isinstance(node, IfBinding)
        assert node.field == "forceMajeure"
        assert node.when_true == " except for Force Majeure"

    def test_empty_if_block(self, parser):
        assert parser.parse("{{#if flag}}{{/if}}").nodes[0].when_true == ""

    def test_if_else_block(self, parser):
        node = parser.parse("{{#if expedited}}expedited{{else}}standard{{/if}}").nodes[0]
        assert isinstance(node, IfElseBinding)
        assert (node.when_true, node.when_false) == ("expedited", "standard")

    def test_with_block(self, parser):
        node = parser.parse("{{#with address}}{{city}}, {{zip}}{{/with}}").nodes[0]
        assert isinstance(node, WithBinding)
        assert [n.kind for n in node.nested] == [NodeKind.BINDING, NodeKind.STATIC_CHUNK, NodeKind.BINDING]

    def test_nested_last_chunk(self, parser):
        """Each nesting level marks its own trailing text."""
        node = parser.parse("{{#ulist items}}{{name}} units{{/ulist}} end").nodes[0]
        assert isinstance(node, UListBinding)
        assert isinstance(node.nested.nodes[-1], LastChunk)

    def test_olist_block(self, parser):
        assert isinstance(parser.parse("{{#olist items}}{{name}}{{/olist}}").nodes[0], OListBinding)

    def test_join_default_separator(self, parser):
        node = parser.parse("{{#join tags}}{{label}}{{/join}}").nodes[0]
        assert isinstance(node, JoinBinding)
        assert node.separator == ", "

    def test_join_separator(self, parser):
        node = parser.parse('{{#join tags separator=" and "}}{{label}}{{/join}}').nodes[0]
        assert node.separator == " and "

    def test_configured_separator(self):
        ast = parse_template("{{#join tags}}{{label}}{{/join}}", default_separator="; ")
        assert ast.nodes[0].separator == "; "

    def test_expression(self, parser):
        node = parser.parse("Total: {{% amount * 2 %}}").nodes[1]
        assert isinstance(node, Expr)
        assert node.expression == "amount * 2"

    def test_empty_template(self, parser):
        assert len(parser.parse("")) == 0


class TestPositions:
    """Tests for source positions."""

    def test_binding_position(self, parser):
        """Bindings are located at their field name."""
        node = parser.parse("Hello {{name}}!").nodes[1]
        assert (node.line, node.column) == (1, 9)

    def test_second_line(self, parser):
        node = parser.parse("First line.\nSecond {{name}}").nodes[1]
        assert node.line == 2
        assert node.column == 10


class TestMalformed:
    """Tests for markup errors."""

    def test_unclosed_block(self, parser):
        with pytest.raises(ParseFailure):
            parser.parse("{{#if flag}}text")

    def test_unclosed_binding(self, parser):
        with pytest.raises(ParseFailure) as exc_info:
            parser.parse("Hello {{name", file_name="grammar.tem.md")
        assert exc_info.value.file_name == "grammar.tem.md"

    def test_mismatched_close(self, parser):
        with pytest.raises(ParseFailure):
            parser.parse("{{#with address}}{{city}}{{/ulist}}")
