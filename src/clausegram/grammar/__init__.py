"""
Grammar — Rule tables, format fragments, schema fragments and their execution.

- rules: the in-memory GrammarRuleSet
- formats: date, amount and monetary format fragments
- visitor: schema-driven fragments
- source: text form of a rule set
- engine: lark-backed execution and semantic actions
- printer: inverse of the grammar, used when drafting
"""

from clausegram.grammar.rules import (
    Symbol,
    ActionParam,
    ParamKind,
    Action,
    GrammarRule,
    GrammarRuleSet,
)

from clausegram.grammar.formats import (
    DateTimeFormatParser,
    AmountFormatParser,
    MonetaryAmountFormatParser,
    get_format_parser,
    to_iso_string,
)

from clausegram.grammar.actions import (
    ParseContext,
    ACTIONS,
    get_action,
)

from clausegram.grammar.visitor import (
    GrammarVisitor,
    cardinality_of,
    type_rule_name,
    create_grammar_visitor,
)

from clausegram.grammar.source import (
    render_grammar_source,
    parse_grammar_source,
)

from clausegram.grammar.engine import (
    CompiledGrammar,
    GrammarParser,
    parse_unambiguous,
    mangle,
)

from clausegram.grammar.printer import (
    ValuePrinter,
    create_value_printer,
)

__all__ = [
    # Rules
    "Symbol",
    "ActionParam",
    "ParamKind",
    "Action",
    "GrammarRule",
    "GrammarRuleSet",
    # Formats
    "DateTimeFormatParser",
    "AmountFormatParser",
    "MonetaryAmountFormatParser",
    "get_format_parser",
    "to_iso_string",
    # Actions
    "ParseContext",
    "ACTIONS",
    "get_action",
    # Visitor
    "GrammarVisitor",
    "cardinality_of",
    "type_rule_name",
    "create_grammar_visitor",
    # Source
    "render_grammar_source",
    "parse_grammar_source",
    # Engine
    "CompiledGrammar",
    "GrammarParser",
    "parse_unambiguous",
    "mangle",
    # Printer
    "ValuePrinter",
    "create_value_printer",
]
