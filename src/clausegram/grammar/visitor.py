"""
Grammar Visitor — Grammar fragments for the types of a data schema.

Walks every type reachable from a template model and emits:

- base rules for the primitive types (String, Integer, Long, Double, Boolean, DateTime)
- one rule per enum, a choice between its values
- one rule per concept, its properties in declaration order separated by a space
- one rule per abstract type, a choice between its concrete subtypes

Rules are named after the type: primitives by their name, declared types
by their fully-qualified name.
"""

from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import ModelError
from clausegram.grammar.formats import DateTimeFormatParser, MonetaryAmountFormatParser
from clausegram.grammar.rules import (
    Action,
    ActionParam,
    GrammarRule,
    GrammarRuleSet,
    Symbol,
)
from clausegram.observability import get_logger
from clausegram.schemas import ClassDeclaration, ModelManager, Property
from clausegram.schemas.system import MONETARY_AMOUNT_TYPE
from clausegram.vocabulary import Cardinality, PrimitiveType, RuleOrigin


logger = get_logger("grammar")

STRING_PATTERN = r'"(?:[^"\\]|\\.)*"'
INTEGER_PATTERN = r"[+-]?[0-9]+"
DOUBLE_PATTERN = r"[+-]?[0-9]+(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?"
BOOLEAN_PATTERN = r"true|false"
ANY_PATTERN = r"[\s\S]+"

ANY_RULE = "Any"


def cardinality_of(prop: Property) -> Cardinality:
    """Repetition suffix for a property; array and optional together mean zero or more."""
    if prop.is_array:
        return Cardinality.MANY
    if prop.is_optional:
        return Cardinality.OPTIONAL
    return Cardinality.ONE


def type_rule_name(prop: Property) -> str:
    """Rule matching one value of a property's type."""
    if prop.is_relationship:
        return PrimitiveType.STRING.value
    return prop.fully_qualified_type_name


def _base(name: str, pattern: str, action: str) -> GrammarRule:
    return GrammarRule(
        name=name,
        alternatives=[[Symbol.pattern(pattern)]],
        action=Action(action),
        comment=f"{name} value",
        origin=RuleOrigin.BASE,
    )


class GrammarVisitor:
    """Emits grammar rules for a template model and every type it reaches."""

    def __init__(self, model_manager: ModelManager, config: ClausegramConfig = DEFAULT_CONFIG):
        self.model_manager = model_manager
        self.config = config
        self.dates = DateTimeFormatParser()
        self.monetary = MonetaryAmountFormatParser()

    def base_rules(self) -> list[GrammarRule]:
        """Primitive rules plus the catch-all rule used by embedded expressions."""
        date_format = self.dates.build_format_rule(self.config.default_datetime_format)
        return [
            _base(PrimitiveType.STRING.value, STRING_PATTERN, "string"),
            _base(PrimitiveType.INTEGER.value, INTEGER_PATTERN, "integer"),
            _base(PrimitiveType.LONG.value, INTEGER_PATTERN, "integer"),
            _base(PrimitiveType.DOUBLE.value, DOUBLE_PATTERN, "double"),
            _base(PrimitiveType.BOOLEAN.value, BOOLEAN_PATTERN, "boolean"),
            date_format,
            GrammarRule(
                name=PrimitiveType.DATETIME.value,
                alternatives=[[Symbol.rule(date_format.name)]],
                comment=f"DateTime value, default format {self.config.default_datetime_format}",
                origin=RuleOrigin.BASE,
            ),
            _base(ANY_RULE, ANY_PATTERN, "text"),
        ]

    def visit(self, root: str) -> GrammarRuleSet:
        """
        Rules for every type reachable from `root`, excluding `root` itself.

        Raises:
            ModelError: an abstract type has no concrete subtype
        """
        rule_set = GrammarRuleSet()
        for rule in self.base_rules():
            rule_set.add(rule)

        for decl in self._reachable(root):
            if decl.fully_qualified_name == root:
                continue
            for rule in self.visit_declaration(decl):
                if not rule_set.has(rule.name):
                    rule_set.add(rule)

        logger.debug(f"Visited model {root}: {len(rule_set)} rules")
        return rule_set

    def _reachable(self, root: str) -> list[ClassDeclaration]:
        seen: list[str] = []
        pending = [root]
        while pending:
            fqn = pending.pop(0)
            if fqn in seen:
                continue
            seen.append(fqn)
            decl = self.model_manager.get_type(fqn)
            if decl.abstract:
                pending.extend(d.fully_qualified_name for d in self.model_manager.find_concrete_subtypes(fqn))
            for prop in decl.properties:
                if not prop.is_primitive and not prop.is_relationship:
                    pending.append(prop.fully_qualified_type_name)
        return [self.model_manager.get_type(fqn) for fqn in seen]

    def visit_declaration(self, decl: ClassDeclaration) -> list[GrammarRule]:
        if decl.is_enum:
            return [self.visit_enum(decl)]
        if decl.fully_qualified_name == MONETARY_AMOUNT_TYPE:
            return self.visit_monetary_amount(decl)
        if decl.abstract:
            return [self.visit_abstract(decl)]
        return [self.visit_concept(decl)]

    def visit_enum(self, decl: ClassDeclaration) -> GrammarRule:
        return GrammarRule(
            name=decl.fully_qualified_name,
            alternatives=[[Symbol.literal(value)] for value in decl.values],
            action=Action("enum"),
            comment=decl.fully_qualified_name,
            origin=RuleOrigin.MODEL,
        )

    def visit_monetary_amount(self, decl: ClassDeclaration) -> list[GrammarRule]:
        fragment = self.monetary.build_format_rule(self.monetary.default_format)
        return [
            fragment,
            GrammarRule(
                name=decl.fully_qualified_name,
                alternatives=[[Symbol.rule(fragment.name)]],
                comment=f"{decl.fully_qualified_name}, default format {self.monetary.default_format}",
                origin=RuleOrigin.MODEL,
            ),
        ]

    def visit_abstract(self, decl: ClassDeclaration) -> GrammarRule:
        subtypes = self.model_manager.find_concrete_subtypes(decl.fully_qualified_name)
        if not subtypes:
            raise ModelError(f"Abstract type {decl.fully_qualified_name} has no concrete subtypes")
        return GrammarRule(
            name=decl.fully_qualified_name,
            alternatives=[[Symbol.rule(s.fully_qualified_name)] for s in subtypes],
            comment=decl.fully_qualified_name,
            origin=RuleOrigin.MODEL,
        )

    def visit_concept(self, decl: ClassDeclaration) -> GrammarRule:
        symbols: list[Symbol] = []
        params = [ActionParam.const("$class", decl.fully_qualified_name)]
        for prop in decl.properties:
            if symbols:
                symbols.append(Symbol.literal(" "))
            params.append(ActionParam.index(prop.name, len(symbols)))
            symbols.append(Symbol.rule(type_rule_name(prop), cardinality_of(prop)))
        if not symbols:
            symbols.append(Symbol.literal(decl.name))
        return GrammarRule(
            name=decl.fully_qualified_name,
            alternatives=[symbols],
            action=Action("object", tuple(params)),
            comment=decl.fully_qualified_name,
            origin=RuleOrigin.MODEL,
        )


def create_grammar_visitor(
    model_manager: ModelManager,
    config: ClausegramConfig = DEFAULT_CONFIG,
) -> GrammarVisitor:
    """Factory function for GrammarVisitor."""
    return GrammarVisitor(model_manager, config)
