"""Tests for text, markup and rendering conversions."""

import pytest

from clausegram.errors import StructuralError, UnsupportedFormatError
from clausegram.grammar import create_value_printer
from clausegram.markup import (
    MarkupNode,
    create_markup_transformer,
    normalize_text,
    parse_template,
)
from clausegram.vocabulary import DraftFormat, MarkupKind


@pytest.fixture
def transformer():
    return create_markup_transformer()


@pytest.fixture
def printer(scenario_manager):
    return create_value_printer(scenario_manager)


@pytest.fixture
def data():
    return {
        "amount": 42,
        "forceMajeure": True,
        "address": {"$class": "org.acme.scenario.Address", "city": "Paris", "zip": 75001},
        "tags": [
            {"$class": "org.acme.scenario.Tag", "label": "a"},
            {"$class": "org.acme.scenario.Tag", "label": "b"},
        ],
    }


def draft_text(transformer, printer, scenario_type, data, template):
    document = transformer.draft_markup(data, parse_template(template), scenario_type, printer)
    return transformer.markup_to_text(document)


def test_normalize_text():
    """Line endings become LF and blank-line runs collapse."""
    assert normalize_text("\r\na\r\n\r\n\r\nb\n") == "a\n\nb"
    assert normalize_text("a\rb") == "a\nb"
    assert normalize_text("") == ""


class TestTextToMarkup:
    """Tests for the parse direction."""

    def test_paragraphs(self, transformer):
        document = transformer.text_to_markup("First.\r\n\r\nSecond\nline.")
        assert document.kind == MarkupKind.DOCUMENT
        assert [c.kind for c in document.children] == [MarkupKind.PARAGRAPH, MarkupKind.PARAGRAPH]
        assert document.children[1].plain_text() == "Second\nline."

    def test_round_trip(self, transformer):
        """markup_to_text inverts text_to_markup on normalized text."""
        text = "First.\n\nSecond\nline."
        assert transformer.markup_to_text(transformer.text_to_markup(text)) == text

    def test_empty_text(self, transformer):
        assert transformer.text_to_markup("\n\n").children == []


class TestDraftMarkup:
    """Tests for drafting documents from data."""

    def test_variables(self, transformer, printer, scenario_type, data):
        text = draft_text(transformer, printer, scenario_type, data, "Pay {{amount}} to {{#with address}}{{city}}{{/with}}.")
        assert text == 'Pay 42 to "Paris".'

    def test_conditional(self, transformer, printer, scenario_type, data):
        template = "Delay{{#if forceMajeure}} except for Force Majeure{{/if}}."
        assert draft_text(transformer, printer, scenario_type, data, template) == "Delay except for Force Majeure."
        data["forceMajeure"] = False
        assert draft_text(transformer, printer, scenario_type, data, template) == "Delay."

    def test_if_else(self, transformer, printer, scenario_type, data):
        template = "{{#if forceMajeure}}yes{{else}}no{{/if}}"
        data["forceMajeure"] = False
        assert draft_text(transformer, printer, scenario_type, data, template) == "no"

    def test_ulist(self, transformer, printer, scenario_type, data):
        """Each list item starts with a bullet on its own line."""
        text = draft_text(transformer, printer, scenario_type, data, "Tags:\n{{#ulist tags}}{{label}}{{/ulist}}")
        assert text == 'Tags:\n- "a"\n- "b"'

    def test_olist(self, transformer, printer, scenario_type, data):
        text = draft_text(transformer, printer, scenario_type, data, "{{#olist tags}}{{label}}{{/olist}}")
        assert text == '1. "a"\n1. "b"'

    def test_join(self, transformer, printer, scenario_type, data):
        text = draft_text(transformer, printer, scenario_type, data, "{{#join tags}}{{label}}{{/join}}")
        assert text == '"a", "b"'

    def test_formula(self, transformer, printer, scenario_type, data):
        document = transformer.draft_markup(data, parse_template("Total {{% amount * 2 %}}"), scenario_type, printer)
        formula = document.children[1]
        assert formula.kind == MarkupKind.FORMULA
        assert formula.text == "{{% amount * 2 %}}"

    def test_undeclared_property(self, transformer, printer, scenario_type, data):
        with pytest.raises(StructuralError, match="not declared in the template model"):
            draft_text(transformer, printer, scenario_type, data, "{{missing}}")


class TestRendering:
    """Tests for rendering drafted documents."""

    def document(self, transformer, printer, scenario_type, data):
        template = "Ship to {{#with address}}{{city}}{{/with}}.\n\nTotal <{{amount}}>{{#if forceMajeure}} FM{{/if}}"
        return transformer.draft_markup(data, parse_template(template), scenario_type, printer)

    def test_paragraphs_split_on_blank_lines(self, transformer, printer, scenario_type, data):
        paragraphs = transformer.paragraphs(self.document(transformer, printer, scenario_type, data))
        assert len(paragraphs) == 2
        assert paragraphs[1][0].text == "Total <"

    def test_unquote(self, transformer, printer, scenario_type, data):
        """Unquoting copies the document."""
        document = self.document(transformer, printer, scenario_type, data)
        unquoted = transformer.unquote(document)
        assert transformer.markup_to_text(unquoted).startswith("Ship to Paris.")
        assert transformer.markup_to_text(document).startswith('Ship to "Paris".')

    def test_markdown(self, transformer, printer, scenario_type, data):
        document = self.document(transformer, printer, scenario_type, data)
        text = transformer.render(document, DraftFormat.MARKDOWN)
        assert text == 'Ship to "Paris".\n\nTotal <42> FM'
        assert transformer.render(document, DraftFormat.MARKDOWN, unquote_variables=True).startswith("Ship to Paris.")

    def test_markup_parsed_keeps_quotes(self, transformer, printer, scenario_type, data):
        document = self.document(transformer, printer, scenario_type, data)
        tree = transformer.render(document, DraftFormat.MARKUP_PARSED, unquote_variables=True)
        assert tree["kind"] == "document"
        with_node = tree["children"][1]
        assert with_node["kind"] == "with"
        assert with_node["children"][0]["text"] == '"Paris"'

    def test_html(self, transformer, printer, scenario_type, data):
        """HTML escapes text and tags bound values."""
        html = transformer.render(self.document(transformer, printer, scenario_type, data), DraftFormat.HTML)
        assert html.count("<p>") == 2
        assert "Total &lt;" in html
        assert 'data-name="amount"' in html
        assert '<div class="with" data-name="address">' in html

    def test_html_line_breaks(self, transformer):
        document = MarkupNode.document([MarkupNode.text_node("one\ntwo")])
        assert "one<br/>\ntwo" in transformer.to_html(document)

    def test_slate(self, transformer, printer, scenario_type, data):
        value = transformer.render(self.document(transformer, printer, scenario_type, data), DraftFormat.SLATE)
        assert value["object"] == "value"
        blocks = value["document"]["nodes"]
        assert len(blocks) == 2
        assert blocks[0]["type"] == "paragraph"
        variable = blocks[1]["nodes"][1]
        assert variable["type"] == "variable"
        assert variable["data"] == {"id": "amount", "type": "Integer"}
        assert variable["nodes"] == [{"object": "text", "text": "42"}]
        conditional = blocks[1]["nodes"][-1]
        assert conditional["data"]["value"] is True

    def test_unsupported_format(self, transformer):
        with pytest.raises(UnsupportedFormatError, match="Unsupported format"):
            transformer.render(MarkupNode.document(), "xml")
