"""Tests for the template grammar compiler."""

from dataclasses import dataclass

import pytest

from clausegram.compiler import TemplateGrammarCompiler
from clausegram.errors import FormatError, StructuralError
from clausegram.grammar import CompiledGrammar
from clausegram.markup import StaticChunk, TemplateAst, parse_template
from clausegram.vocabulary import NodeKind, RuleOrigin, SymbolKind

from conftest import SCENARIO_CLAUSE


EVERY_KIND_TEMPLATES = [
    'Start {{amount}} on {{startDate as "DD/MM/YYYY"}} end',
    "{{#if forceMajeure}}FM{{/if}} then {{#if forceMajeure}}yes{{else}}no{{/if}}",
    "{{#clause address}}{{city}} {{zip}}{{/clause}}",
    "{{#with address}}{{city}} {{zip}}{{/with}}",
    "{{#ulist tags}}{{label}}{{/ulist}}",
    "{{#olist tags}}{{label}}{{/olist}}",
    "{{#join tags}}{{label}}{{/join}}",
    "Total {{% amount * 2 %}}",
]


@dataclass
class Heading:
    text: str
    line: int
    column: int


def compile_text(compiler, text):
    return compiler.compile(parse_template(text), SCENARIO_CLAUSE)


def parse_text(compiler, template, text):
    return CompiledGrammar(compile_text(compiler, template)).get_parser().parse(text)


class TestRuleLayout:
    """Tests for the rules emitted for a template."""

    def test_node_rules(self, compiler):
        """One rule per node, then a container named by the prefix."""
        rule_set = compile_text(compiler, "Force Majeure: {{forceMajeure}} Amount: {{amount}}")
        assert rule_set.start == "rule"
        assert rule_set.names()[:5] == ["rule0", "rule1", "rule2", "rule3", "rule"]
        assert rule_set.get("rule0").alternatives[0][0].value == "Force Majeure: "
        assert rule_set.get("rule1").alternatives[0][0].value == "Boolean"
        assert rule_set.get("rule3").alternatives[0][0].value == "Integer"

    def test_container_action(self, compiler):
        """The container builds the object, with the identifier injected."""
        rule_set = compile_text(compiler, "Force Majeure: {{forceMajeure}} Amount: {{amount}}")
        action = rule_set.get("rule").action
        assert action.name == "object"
        assert action.get("$class").value == SCENARIO_CLAUSE
        assert action.get("clauseId").value == "fixed-id"
        assert action.get("forceMajeure").kind == "ref"
        assert action.get("forceMajeure").value == "rule1"
        assert action.get("amount").value == "rule3"

    def test_model_rules_merged(self, compiler):
        rule_set = compile_text(compiler, "Ship to {{address}}")
        assert rule_set.get("org.acme.scenario.Address").origin == RuleOrigin.MODEL
        assert rule_set.get("Integer").origin == RuleOrigin.BASE

    def test_formatted_binding(self, compiler):
        """A format adds its fragment and the binding refers to it."""
        rule_set = compile_text(compiler, 'Starts {{startDate as "DD MMMM YYYY"}}')
        target = rule_set.get("rule1").alternatives[0][0].value
        assert target.startswith("DateTime_")
        assert rule_set.get(target).origin == RuleOrigin.FORMAT

    def test_optional_property(self, compiler):
        rule_set = compile_text(compiler, "Note: {{note}}")
        assert rule_set.get("rule1").alternatives[0][0].cardinality.value == "?"

    def test_expression(self, compiler):
        rule_set = compile_text(compiler, "Total {{% amount * 2 %}}")
        assert rule_set.contains_expression
        assert rule_set.get("rule1").alternatives[0][0].value == "Any"

    def test_list_rules(self, compiler):
        """Lists compile a first-item level and a repeated level."""
        rule_set = compile_text(compiler, "{{#ulist tags}}{{label}}{{/ulist}}")
        assert rule_set.get("tagsFirst0").alternatives[0][0].value == "- "
        assert rule_set.get("tags0").alternatives[0][0].value == "\n- "
        symbols = rule_set.get("rule0").alternatives[0]
        assert [s.value for s in symbols] == ["tagsFirst", "tags"]
        assert symbols[1].cardinality.value == "*"

    def test_every_node_kind_compiles(self, compiler):
        """Templates covering every node kind compile."""
        kinds = set()
        for template in EVERY_KIND_TEMPLATES:
            ast = parse_template(template)
            compiler.compile(ast, SCENARIO_CLAUSE)
            kinds.update(node.kind for node in ast)
        assert kinds == set(NodeKind)

    def test_unrecognized_node(self, compiler):
        """Anything that is not a template node is rejected with its position."""
        ast = TemplateAst([StaticChunk("Amount: "), Heading("Title", 2, 5)])
        with pytest.raises(StructuralError, match="Unrecognized node type Heading") as exc_info:
            compiler.compile(ast, SCENARIO_CLAUSE)
        assert exc_info.value.location.line == 2
        assert exc_info.value.location.column == 5

    def test_random_identifier(self, scenario_manager):
        rule_set = TemplateGrammarCompiler(scenario_manager).compile(parse_template("{{amount}}"), SCENARIO_CLAUSE)
        identifier = rule_set.get("rule").action.get("clauseId").value
        assert isinstance(identifier, str)
        assert len(identifier) == 36


class TestCompiledTemplates:
    """Tests for parsing text with compiled templates."""

    def test_scalar_bindings(self, compiler):
        result = parse_text(compiler, "Force Majeure: {{forceMajeure}} Amount: {{amount}}", "Force Majeure: true Amount: 42")
        assert result == {
            "$class": SCENARIO_CLAUSE,
            "clauseId": "fixed-id",
            "forceMajeure": True,
            "amount": 42,
        }

    def test_if_block(self, compiler):
        template = "Delay{{#if forceMajeure}} except for Force Majeure{{/if}}."
        assert parse_text(compiler, template, "Delay except for Force Majeure.")["forceMajeure"] is True
        assert parse_text(compiler, template, "Delay.")["forceMajeure"] is False

    def test_if_else_block(self, compiler):
        template = "Shipping is {{#if forceMajeure}}suspended{{else}}on time{{/if}}."
        assert parse_text(compiler, template, "Shipping is suspended.")["forceMajeure"] is True
        assert parse_text(compiler, template, "Shipping is on time.")["forceMajeure"] is False

    def test_else_only(self, compiler):
        template = "Shipping{{#if forceMajeure}}{{else}} on time{{/if}}."
        assert parse_text(compiler, template, "Shipping.")["forceMajeure"] is True
        assert parse_text(compiler, template, "Shipping on time.")["forceMajeure"] is False

    def test_with_block(self, compiler):
        result = parse_text(compiler, "Ship to {{#with address}}{{city}} ({{zip}}){{/with}}.", 'Ship to "Paris" (75001).')
        assert result["address"] == {"$class": "org.acme.scenario.Address", "city": "Paris", "zip": 75001}

    def test_default_concept_layout(self, compiler):
        """Without a block a concept reads its properties separated by spaces."""
        result = parse_text(compiler, "Ship to {{address}}.", 'Ship to "Paris" 75001.')
        assert result["address"]["zip"] == 75001

    def test_join_keeps_order(self, compiler):
        result = parse_text(compiler, "Tags: {{#join tags}}{{label}}{{/join}}.", 'Tags: "a", "b", "c".')
        assert [t["label"] for t in result["tags"]] == ["a", "b", "c"]
        assert result["tags"][0]["$class"] == "org.acme.scenario.Tag"

    def test_ulist(self, compiler):
        result = parse_text(compiler, "Tags:\n{{#ulist tags}}{{label}}{{/ulist}}", 'Tags:\n- "a"\n- "b"')
        assert [t["label"] for t in result["tags"]] == ["a", "b"]

    def test_formats(self, compiler):
        template = 'From {{startDate as "DD MMMM YYYY"}} at {{rate as "0.000"}} for {{price as "0,0.00 CCC"}}'
        result = parse_text(compiler, template, "From 01 March 2024 at 1.500 for 1,250.50 EUR")
        assert result["startDate"] == "2024-03-01T00:00:00.000Z"
        assert result["rate"] == 1.5
        assert result["price"]["doubleValue"] == 1250.5

    def test_duration(self, compiler):
        result = parse_text(compiler, "Every {{period}}.", "Every 2 days.")
        assert result["period"] == {"$class": "org.clausegram.time.Duration", "amount": 2, "unit": "days"}

    def test_optional_absent(self, compiler):
        """An absent optional value is left out of the object."""
        assert "note" not in parse_text(compiler, "Note: {{note}}", "Note: ")


class TestStructuralErrors:
    """Tests for templates that do not fit the schema."""

    def test_undeclared_property(self, compiler):
        with pytest.raises(StructuralError, match="property 'missing' that is not declared") as exc_info:
            compile_text(compiler, "Hello {{missing}}")
        assert exc_info.value.line == 1
        assert exc_info.value.column == 9

    def test_if_on_non_boolean(self, compiler):
        with pytest.raises(StructuralError, match="Property amount has type Integer"):
            compile_text(compiler, "{{#if amount}}yes{{/if}}")

    def test_empty_if(self, compiler):
        with pytest.raises(StructuralError, match="contains no text"):
            compile_text(compiler, "{{#if forceMajeure}}{{/if}}")

    def test_identical_branches(self, compiler):
        with pytest.raises(StructuralError, match="must contain different text"):
            compile_text(compiler, "{{#if forceMajeure}}x{{else}}x{{/if}}")

    def test_format_on_unsupported_type(self, compiler):
        with pytest.raises(StructuralError, match="not currently supported for Integer"):
            compile_text(compiler, '{{amount as "0,0"}}')

    def test_bad_format(self, compiler):
        """Format errors point at the binding."""
        with pytest.raises(FormatError) as exc_info:
            compile_text(compiler, 'Rate {{rate as "abc"}}')
        assert exc_info.value.line == 1

    def test_with_on_primitive(self, compiler):
        with pytest.raises(StructuralError, match="A with block can only be used with a complex property"):
            compile_text(compiler, "{{#with amount}}{{city}}{{/with}}")

    def test_list_on_non_array(self, compiler):
        with pytest.raises(StructuralError, match="A list block can only be used with an array property"):
            compile_text(compiler, "{{#ulist address}}{{city}}{{/ulist}}")

    def test_nested_undeclared(self, compiler):
        """Nested levels check bindings against the nested type."""
        with pytest.raises(StructuralError, match="org.acme.scenario.Address"):
            compile_text(compiler, "{{#with address}}{{label}}{{/with}}")

    def test_empty_template(self, compiler):
        with pytest.raises(StructuralError, match="contains no text or bindings"):
            compiler.compile(TemplateAst(), SCENARIO_CLAUSE)

    def test_literal_kinds(self, compiler):
        rule_set = compile_text(compiler, "Amount: {{amount}}")
        assert rule_set.get("rule0").alternatives[0][0].kind == SymbolKind.LITERAL
