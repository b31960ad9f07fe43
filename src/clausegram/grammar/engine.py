"""
Grammar Engine — Executes a GrammarRuleSet with lark.

The rule table is translated into a lark grammar as data:

- every rule becomes a lark rule, every alternative gets an alias so the
  parse tree tells which alternative matched
- literals and patterns become named regex terminals
- a symbol with a cardinality suffix goes through a helper rule, so an
  absent optional or an empty repetition still occupies its position

The Earley parser runs with the complete dynamic lexer and explicit
ambiguity; a parse with more than one interpretation is rejected.
Semantic actions are looked up in the action table and applied while
walking the resulting tree.
"""

import string
from dataclasses import dataclass
from typing import Any, Callable

from lark import Lark, Token, Tree
from lark.exceptions import GrammarError, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput

from clausegram.errors import (
    AmbiguousParse,
    FileLocation,
    GrammarSyntaxError,
    IllegalStateError,
    ParseFailure,
)
from clausegram.grammar.actions import ParseContext, default_action, get_action
from clausegram.grammar.rules import GrammarRule, GrammarRuleSet, ParamKind, Symbol
from clausegram.grammar.source import escape_pattern, render_symbol
from clausegram.observability import get_logger
from clausegram.vocabulary import Cardinality, SymbolKind


logger = get_logger("grammar")

AMBIGUOUS_NODES = ("_ambig", "_iambig")
_REGEX_SPECIAL = set("\\.^$*+?{}[]()|/")


# =============================================================================
# NAME AND TERMINAL TRANSLATION
# =============================================================================

def mangle(name: str) -> str:
    """
    Injective mapping of a rule name onto lark's lowercase rule names.

    "_" -> "__", uppercase X -> "_x", "." -> "_0", "$" -> "_1".
    """
    out = ["r_"]
    for ch in name:
        if ch == "_":
            out.append("__")
        elif ch in string.ascii_uppercase:
            out.append("_" + ch.lower())
        elif ch == ".":
            out.append("_0")
        elif ch == "$":
            out.append("_1")
        else:
            out.append(ch)
    return "".join(out)


def literal_to_lark(text: str) -> str:
    """Lark regex literal matching `text` exactly."""
    out = []
    for ch in text:
        if ch in _REGEX_SPECIAL:
            out.append("\\" + ch)
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ch == '"' or ord(ch) < 0x20:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return "/" + "".join(out) + "/"


def pattern_to_lark(regex: str) -> str:
    """Lark regex literal for a pattern symbol."""
    escaped = escape_pattern(regex)
    out = []
    i = 0
    while i < len(escaped):
        if escaped[i] == "\\" and i + 1 < len(escaped):
            out.append(escaped[i:i + 2])
            i += 2
            continue
        out.append("\\x22" if escaped[i] == '"' else escaped[i])
        i += 1
    return "/" + "".join(out) + "/"


# =============================================================================
# SHARED PARSE DRIVER
# =============================================================================

def _end_location(text: str) -> FileLocation:
    line = text.count("\n") + 1
    column = len(text) - (text.rfind("\n") + 1) + 1
    return FileLocation(line, column)


def _find_ambiguity(tree: Tree) -> Tree | None:
    for subtree in tree.iter_subtrees_topdown():
        if str(subtree.data) in AMBIGUOUS_NODES:
            return subtree
    return None


def _first_token(tree: Tree) -> Token | None:
    for value in tree.scan_values(lambda v: isinstance(v, Token)):
        return value
    return None


def parse_unambiguous(
    parser: Lark,
    text: str,
    file_name: str | None = None,
    describe_terminal: Callable[[str], str] | None = None,
) -> Tree:
    """
    Parse text and require exactly one interpretation.

    Raises:
        ParseFailure: no interpretation
        AmbiguousParse: more than one interpretation
    """
    describe = describe_terminal or (lambda name: name)
    try:
        tree = parser.parse(text)
    except UnexpectedCharacters as e:
        raise ParseFailure(
            f"Unexpected character {e.char!r}",
            file_name=file_name,
            location=FileLocation(e.line, e.column),
            expected=sorted(describe(name) for name in (e.allowed or ())),
        ) from None
    except UnexpectedEOF as e:
        raise ParseFailure(
            "Unexpected end of text",
            file_name=file_name,
            location=_end_location(text),
            expected=sorted(describe(str(name)) for name in (e.expected or ())),
        ) from None
    except UnexpectedInput as e:
        line = getattr(e, "line", None)
        raise ParseFailure(
            "Unexpected input",
            file_name=file_name,
            location=FileLocation(line, e.column) if line and line > 0 else _end_location(text),
        ) from None

    ambiguity = _find_ambiguity(tree)
    if ambiguity is not None:
        token = _first_token(ambiguity)
        count = len(ambiguity.children)
        raise AmbiguousParse(
            f"Ambiguous text. Got {count} ambiguous results",
            file_name=file_name,
            location=FileLocation(token.line, token.column) if token is not None and token.line else None,
            interpretations=count,
        )
    return tree


# =============================================================================
# COMPILED GRAMMAR
# =============================================================================

@dataclass(frozen=True)
class _Alternative:
    """An alternative of a rule with its action parameters bound to positions."""
    rule: GrammarRule
    index: int
    params: tuple[tuple[str, str, Any], ...]


class CompiledGrammar:
    """
    Executable form of a GrammarRuleSet.

    Immutable once built; get_parser() hands out a fresh parser per input.
    """

    def __init__(self, rule_set: GrammarRuleSet, source: str | None = None):
        rule_set.check()
        self.rule_set = rule_set
        self.source = source
        self._alternatives: dict[str, _Alternative] = {}
        self._helpers: dict[str, Symbol] = {}
        self._helper_names: dict[Symbol, str] = {}
        self._terminals: dict[tuple[SymbolKind, str], str] = {}
        self._terminal_display: dict[str, str] = {}
        self.lark_grammar = self._translate()
        try:
            self._lark = Lark(
                self.lark_grammar,
                parser="earley",
                lexer="dynamic_complete",
                ambiguity="explicit",
                keep_all_tokens=True,
                propagate_positions=True,
                start=mangle(rule_set.start),
            )
        except GrammarError as e:
            raise GrammarSyntaxError("Grammar could not be compiled", details=str(e)) from e

    @property
    def contains_expression(self) -> bool:
        return self.rule_set.contains_expression

    def _terminal(self, symbol: Symbol) -> str:
        key = (symbol.kind, symbol.value)
        if key not in self._terminals:
            prefix = "LIT" if symbol.kind == SymbolKind.LITERAL else "PAT"
            name = f"{prefix}{len(self._terminals)}"
            self._terminals[key] = name
            self._terminal_display[name] = render_symbol(Symbol(symbol.kind, symbol.value))
        return self._terminals[key]

    def _lark_symbol(self, symbol: Symbol) -> str:
        base = mangle(symbol.value) if symbol.is_rule else self._terminal(symbol)
        if symbol.cardinality == Cardinality.ONE:
            return base
        if symbol not in self._helper_names:
            name = f"h_{len(self._helper_names)}"
            self._helper_names[symbol] = name
            self._helpers[name] = symbol
        return self._helper_names[symbol]

    def _bind_params(self, rule: GrammarRule, alternative: list[Symbol]) -> tuple:
        if rule.action is None:
            return ()
        bound = []
        for param in rule.action.params:
            if param.kind == ParamKind.CONST:
                bound.append((param.key, ParamKind.CONST, param.value))
            elif param.kind == ParamKind.INDEX:
                bound.append((param.key, ParamKind.INDEX, int(param.value)))
            else:
                position = next(
                    i for i, s in enumerate(alternative) if s.is_rule and s.value == param.value
                )
                bound.append((param.key, ParamKind.INDEX, position))
        return tuple(bound)

    def _translate(self) -> str:
        lines = []
        for rule in self.rule_set:
            expansions = []
            for index, alternative in enumerate(rule.alternatives):
                alias = f"a{index}_{mangle(rule.name)}"
                self._alternatives[alias] = _Alternative(rule, index, self._bind_params(rule, alternative))
                symbols = " ".join(self._lark_symbol(s) for s in alternative)
                expansions.append(f"{symbols} -> {alias}")
            lines.append(f"{mangle(rule.name)}: " + "\n    | ".join(expansions))

        for name, symbol in self._helpers.items():
            base = mangle(symbol.value) if symbol.is_rule else self._terminal(symbol)
            lines.append(f"{name}: {base}{symbol.cardinality.value}")

        for (kind, value), name in self._terminals.items():
            regex = literal_to_lark(value) if kind == SymbolKind.LITERAL else pattern_to_lark(value)
            lines.append(f"{name}: {regex}")

        return "\n".join(lines) + "\n"

    def describe_terminal(self, name: str) -> str:
        return self._terminal_display.get(name, name)

    def get_parser(self) -> "GrammarParser":
        return GrammarParser(self)

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def parse_tree(self, text: str, file_name: str | None = None) -> Tree:
        return parse_unambiguous(self._lark, text, file_name, self.describe_terminal)

    def evaluate(self, node: Tree | Token, context: ParseContext) -> Any:
        """Apply the semantic actions of a parse tree bottom-up."""
        if isinstance(node, Token):
            return str(node)

        data = str(node.data)
        values = [self.evaluate(child, context) for child in node.children]
        if data in self._helpers:
            if self._helpers[data].cardinality == Cardinality.OPTIONAL:
                return values[0] if values else None
            return values

        alternative = self._alternatives[data]
        action = alternative.rule.action
        if action is None:
            return default_action(values)
        args = {
            key: (value if kind == ParamKind.CONST else values[value])
            for key, kind, value in alternative.params
        }
        return get_action(action.name)(values, args, context)


class GrammarParser:
    """
    Single-use parser over a CompiledGrammar.

    Text may be fed in pieces; finish() parses the accumulated input once.
    """

    def __init__(self, compiled: CompiledGrammar):
        self.compiled = compiled
        self._chunks: list[str] = []
        self._finished = False
        self.results: list[Any] = []

    def feed(self, text: str) -> "GrammarParser":
        if self._finished:
            raise IllegalStateError("Parser has already finished; create a new parser for new input")
        self._chunks.append(text)
        return self

    def finish(self, context: ParseContext | None = None, file_name: str | None = None) -> Any:
        """
        Parse the fed text and return its single interpretation.

        Raises:
            ParseFailure: the text has no interpretation
            AmbiguousParse: the text has more than one interpretation
        """
        if self._finished:
            raise IllegalStateError("Parser has already finished; create a new parser for new input")
        self._finished = True
        text = "".join(self._chunks)
        tree = self.compiled.parse_tree(text, file_name)
        result = self.compiled.evaluate(tree, context or ParseContext())
        self.results = [result]
        logger.debug(f"Parsed {len(text)} characters with start rule {self.compiled.rule_set.start}")
        return result

    def parse(self, text: str, context: ParseContext | None = None, file_name: str | None = None) -> Any:
        return self.feed(text).finish(context, file_name)
