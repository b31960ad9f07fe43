"""Tests for the text form of grammars."""

import pytest

from clausegram.errors import GrammarSyntaxError
from clausegram.grammar import (
    Action,
    ActionParam,
    GrammarRule,
    GrammarRuleSet,
    Symbol,
    parse_grammar_source,
    render_grammar_source,
)
from clausegram.vocabulary import Cardinality


def sample_rule_set():
    rule_set = GrammarRuleSet(start="rule")
    rule_set.add(GrammarRule(name="rule0", alternatives=[[Symbol.literal('He said "hi"\nthen left. ')]]))
    rule_set.add(GrammarRule(
        name="rule1",
        alternatives=[[Symbol.literal(" except for Force Majeure", Cardinality.OPTIONAL)]],
        action=Action("present"),
        comment="org.acme.Late.forceMajeure",
    ))
    rule_set.add(GrammarRule(name="rule2", alternatives=[[Symbol.rule("Word", Cardinality.MANY)]]))
    rule_set.add(GrammarRule(
        name="Word",
        alternatives=[[Symbol.pattern("[a-z/]+")], [Symbol.literal("WORD")]],
        action=Action("text"),
        comment="a word\nover two lines",
    ))
    rule_set.add(GrammarRule(
        name="rule",
        alternatives=[[Symbol.rule("rule0"), Symbol.rule("rule1"), Symbol.rule("rule2")]],
        action=Action("object", (
            ActionParam.const("$class", "org.acme.Late"),
            ActionParam.ref("forceMajeure", "rule1"),
            ActionParam.index("words", 2),
        )),
        comment="org.acme.Late",
    ))
    return rule_set


class TestRender:
    """Tests for rendering grammar source."""

    def test_header_and_start(self):
        source = render_grammar_source(sample_rule_set())
        lines = source.splitlines()
        assert lines[0] == "# clausegram grammar"
        assert lines[1] == "@start rule"
        assert "@expressions" not in source

    def test_one_rule_per_line(self):
        """Literals are JSON strings, so a rule never spans lines."""
        source = render_grammar_source(sample_rule_set())
        rule_lines = [line for line in source.splitlines() if " -> " in line]
        assert len(rule_lines) == 5
        assert 'rule0 -> "He said \\"hi\\"\\nthen left. "' in source

    def test_action_and_comment(self):
        source = render_grammar_source(sample_rule_set())
        assert (
            'rule -> rule0 rule1 rule2 {% object $class="org.acme.Late" forceMajeure=rule1 words=2 %} # org.acme.Late'
            in source
        )
        assert "# a word over two lines" in source

    def test_pattern_slash_escaped(self):
        source = render_grammar_source(sample_rule_set())
        assert r'Word -> /[a-z\/]+/ | "WORD" {% text %}' in source

    def test_expressions_flag(self):
        rule_set = sample_rule_set()
        rule_set.contains_expression = True
        assert "@expressions" in render_grammar_source(rule_set).splitlines()

    def test_deterministic(self):
        assert render_grammar_source(sample_rule_set()) == render_grammar_source(sample_rule_set())

    def test_incomplete_rule_set(self):
        rule_set = GrammarRuleSet()
        with pytest.raises(GrammarSyntaxError):
            render_grammar_source(rule_set)


class TestParse:
    """Tests for parsing grammar source."""

    def test_round_trip(self):
        """Parsing rendered source gives back an equivalent rule set."""
        original = sample_rule_set()
        parsed = parse_grammar_source(render_grammar_source(original))

        assert parsed.start == "rule"
        assert parsed.names() == original.names()
        for rule in original:
            copy = parsed.get(rule.name)
            assert copy.alternatives == rule.alternatives
            assert copy.action == rule.action
        assert render_grammar_source(parsed) == render_grammar_source(original)

    def test_escaped_literal(self):
        parsed = parse_grammar_source(render_grammar_source(sample_rule_set()))
        assert parsed.get("rule0").alternatives[0][0].value == 'He said "hi"\nthen left. '

    def test_hand_written(self):
        source = "\n".join([
            "@start rule",
            "# greeting",
            'rule -> "Hello " Word {% object $class="org.acme.Greeting" name=Word %}',
            "Word -> /[a-z]+/ {% text %}",
        ])
        rule_set = parse_grammar_source(source)
        action = rule_set.get("rule").action
        assert action.name == "object"
        assert action.get("name").kind == "ref"
        assert action.get("$class").value == "org.acme.Greeting"

    def test_missing_start(self):
        with pytest.raises(GrammarSyntaxError, match="no start rule"):
            parse_grammar_source('rule -> "a"')

    def test_undefined_rule(self):
        with pytest.raises(GrammarSyntaxError, match="undefined rule"):
            parse_grammar_source('@start rule\nrule -> missing\n')

    def test_duplicate_rule(self):
        """Duplicates are reported at the second definition."""
        with pytest.raises(GrammarSyntaxError, match="defined more than once") as exc_info:
            parse_grammar_source('@start rule\nrule -> "a"\nrule -> "b"\n', "grammar.txt")
        assert exc_info.value.file_name == "grammar.txt"
        assert exc_info.value.line == 3

    def test_malformed(self):
        with pytest.raises(GrammarSyntaxError, match="Malformed grammar source") as exc_info:
            parse_grammar_source("@start rule\nrule -> {% object\n")
        assert exc_info.value.details
