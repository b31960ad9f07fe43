"""
Grammar Rules — The in-memory rule table produced by the compiler.

A GrammarRuleSet is an ordered mapping from rule name to alternatives.
Each alternative is a sequence of symbols; each rule carries at most one
declarative semantic action and an optional provenance comment.

Actions are data, never code: an Action names an entry of the action
table (see actions.py) and binds its parameters to constants or to the
values of symbols in the matched alternative.
"""

from dataclasses import dataclass, field
from typing import Iterator

from clausegram.errors import GrammarSyntaxError
from clausegram.vocabulary import Cardinality, RuleOrigin, SymbolKind


# =============================================================================
# SYMBOLS
# =============================================================================

@dataclass(frozen=True)
class Symbol:
    """One element of an alternative: a rule reference, a literal or a pattern."""
    kind: SymbolKind
    value: str
    cardinality: Cardinality = Cardinality.ONE

    @classmethod
    def rule(cls, name: str, cardinality: Cardinality = Cardinality.ONE) -> "Symbol":
        return cls(SymbolKind.RULE, name, cardinality)

    @classmethod
    def literal(cls, text: str, cardinality: Cardinality = Cardinality.ONE) -> "Symbol":
        return cls(SymbolKind.LITERAL, text, cardinality)

    @classmethod
    def pattern(cls, regex: str, cardinality: Cardinality = Cardinality.ONE) -> "Symbol":
        return cls(SymbolKind.PATTERN, regex, cardinality)

    def with_cardinality(self, cardinality: Cardinality) -> "Symbol":
        return Symbol(self.kind, self.value, cardinality)

    @property
    def is_rule(self) -> bool:
        return self.kind == SymbolKind.RULE


# =============================================================================
# ACTIONS
# =============================================================================

class ParamKind:
    """How an action parameter obtains its value."""
    CONST = "const"    # literal string
    REF = "ref"        # value of the first symbol referencing the named rule
    INDEX = "index"    # value of the symbol at a position of the alternative


@dataclass(frozen=True)
class ActionParam:
    key: str
    value: str | int
    kind: str = ParamKind.CONST

    @classmethod
    def const(cls, key: str, value: str) -> "ActionParam":
        return cls(key, value, ParamKind.CONST)

    @classmethod
    def ref(cls, key: str, rule_name: str) -> "ActionParam":
        return cls(key, rule_name, ParamKind.REF)

    @classmethod
    def index(cls, key: str, position: int) -> "ActionParam":
        return cls(key, position, ParamKind.INDEX)


@dataclass(frozen=True)
class Action:
    """A named semantic action with bound parameters."""
    name: str
    params: tuple[ActionParam, ...] = ()

    def get(self, key: str) -> ActionParam | None:
        for param in self.params:
            if param.key == key:
                return param
        return None


# =============================================================================
# RULES
# =============================================================================

@dataclass
class GrammarRule:
    """
    A named rule.

    Attributes:
        name: Unique rule name
        alternatives: Non-empty symbol sequences, tried as a choice
        action: Semantic action applied to the matched alternative
        comment: Field provenance, e.g. the schema property a rule binds
        origin: Which stage of grammar construction produced the rule
    """
    name: str
    alternatives: list[list[Symbol]]
    action: Action | None = None
    comment: str | None = None
    origin: RuleOrigin = RuleOrigin.TEMPLATE

    def references(self) -> Iterator[str]:
        for alternative in self.alternatives:
            for symbol in alternative:
                if symbol.is_rule:
                    yield symbol.value


@dataclass
class GrammarRuleSet:
    """
    Ordered collection of uniquely named rules.

    `start` names the rule a parse begins from. `contains_expression` is
    set when the template embeds free-form expressions.
    """
    start: str | None = None
    contains_expression: bool = False
    _rules: dict[str, GrammarRule] = field(default_factory=dict)

    def add(self, rule: GrammarRule) -> GrammarRule:
        """
        Add a rule.

        Raises:
            GrammarSyntaxError: duplicate name or an empty alternative
        """
        if rule.name in self._rules:
            raise GrammarSyntaxError(f"Rule {rule.name} is defined more than once")
        if not rule.alternatives:
            raise GrammarSyntaxError(f"Rule {rule.name} has no alternatives")
        if any(not alternative for alternative in rule.alternatives):
            raise GrammarSyntaxError(f"Rule {rule.name} has an empty alternative")
        self._rules[rule.name] = rule
        return rule

    def extend(self, other: "GrammarRuleSet", skip_existing: bool = False) -> None:
        """Append another rule set's rules, optionally ignoring names already present."""
        for rule in other:
            if skip_existing and rule.name in self._rules:
                continue
            self.add(rule)
        self.contains_expression = self.contains_expression or other.contains_expression

    def has(self, name: str) -> bool:
        return name in self._rules

    def get(self, name: str) -> GrammarRule:
        try:
            return self._rules[name]
        except KeyError:
            raise GrammarSyntaxError(f"Rule {name} is not defined") from None

    def names(self) -> list[str]:
        return list(self._rules)

    def __iter__(self) -> Iterator[GrammarRule]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def check(self) -> None:
        """
        Verify the rule set is complete.

        Raises:
            GrammarSyntaxError: missing start rule, undefined references or
                action parameters referencing rules absent from the alternative
        """
        if self.start is None:
            raise GrammarSyntaxError("Grammar has no start rule")
        if self.start not in self._rules:
            raise GrammarSyntaxError(f"Start rule {self.start} is not defined")
        for rule in self._rules.values():
            for ref in rule.references():
                if ref not in self._rules:
                    raise GrammarSyntaxError(f"Rule {rule.name} references undefined rule {ref}")
            if rule.action is None:
                continue
            for param in rule.action.params:
                if param.kind == ParamKind.REF:
                    for alternative in rule.alternatives:
                        if not any(s.is_rule and s.value == param.value for s in alternative):
                            raise GrammarSyntaxError(
                                f"Action of rule {rule.name} references {param.value} "
                                f"which does not appear in every alternative"
                            )
                elif param.kind == ParamKind.INDEX:
                    for alternative in rule.alternatives:
                        if not 0 <= int(param.value) < len(alternative):
                            raise GrammarSyntaxError(
                                f"Action of rule {rule.name} references position "
                                f"{param.value} outside its alternative"
                            )
