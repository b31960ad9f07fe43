"""
Grammar Source — Text form of a GrammarRuleSet.

render_grammar_source() and parse_grammar_source() are inverses:
parsing rendered source yields an equivalent rule set. The text form is
what the registry accepts through set_grammar() and what the compiler
logs when it builds a grammar.

    # clausegram grammar
    @start rule
    rule0 -> "Force Majeure: " # Literal text
    rule1 -> Boolean # org.acme.Late.forceMajeure
    rule -> rule0 rule1 {% object $class="org.acme.Late" forceMajeure=rule1 %} # org.acme.Late

Literals are JSON strings, patterns are /regex/ with "/" escaped, action
parameters are rule names, JSON strings (constants) or positions.
"""

import json
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput, VisitError

from clausegram.errors import FileLocation, GrammarSyntaxError
from clausegram.grammar.rules import (
    Action,
    ActionParam,
    GrammarRule,
    GrammarRuleSet,
    ParamKind,
    Symbol,
)
from clausegram.vocabulary import Cardinality, SymbolKind


TEMPLATE_DIR = Path(__file__).parent / "templates"


# =============================================================================
# RENDERING
# =============================================================================

def escape_pattern(regex: str) -> str:
    """Escape unescaped slashes and raw line breaks of a regex for /.../ form."""
    out = []
    i = 0
    while i < len(regex):
        ch = regex[i]
        if ch == "\\" and i + 1 < len(regex):
            out.append(regex[i:i + 2])
            i += 2
            continue
        if ch == "/":
            out.append("\\/")
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def unescape_pattern(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        if body[i] == "\\" and i + 1 < len(body):
            pair = body[i:i + 2]
            out.append("/" if pair == "\\/" else pair)
            i += 2
            continue
        out.append(body[i])
        i += 1
    return "".join(out)


def render_symbol(symbol: Symbol) -> str:
    if symbol.kind == SymbolKind.LITERAL:
        text = json.dumps(symbol.value, ensure_ascii=False)
    elif symbol.kind == SymbolKind.PATTERN:
        text = f"/{escape_pattern(symbol.value)}/"
    else:
        text = symbol.value
    return text + symbol.cardinality.value


def render_alternative(alternative: list[Symbol]) -> str:
    return " ".join(render_symbol(s) for s in alternative)


def render_param(param: ActionParam) -> str:
    if param.kind == ParamKind.CONST:
        value = json.dumps(param.value, ensure_ascii=False)
    else:
        value = str(param.value)
    return f"{param.key}={value}"


def render_action(action: Action) -> str:
    parts = [action.name] + [render_param(p) for p in action.params]
    return "{% " + " ".join(parts) + " %}"


def render_comment(comment: str) -> str:
    return " ".join(comment.split())


def create_grammar_environment(template_dir: Path = TEMPLATE_DIR) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=False,
    )
    env.filters["alternative"] = render_alternative
    env.filters["action"] = render_action
    env.filters["comment"] = render_comment
    return env


def render_grammar_source(rule_set: GrammarRuleSet, template_dir: Path = TEMPLATE_DIR) -> str:
    """
    Serialize a complete rule set to grammar source text.

    Rendering is deterministic: the same rule set always yields the same text.

    Raises:
        GrammarSyntaxError: the rule set is incomplete
    """
    rule_set.check()
    template = create_grammar_environment(template_dir).get_template("grammar.j2")
    return template.render(
        start=rule_set.start,
        contains_expression=rule_set.contains_expression,
        rules=list(rule_set),
    )


# =============================================================================
# PARSING
# =============================================================================

GRAMMAR_SOURCE_GRAMMAR = r"""
start: _line*

_line: directive _NL
     | rule _NL
     | COMMENT _NL
     | _NL

directive: "@start" NAME       -> start_directive
         | "@expressions"      -> expressions_directive

rule: NAME "->" alternatives action? COMMENT?
alternatives: alternative ("|" alternative)*
alternative: symbol+
symbol: (NAME | STRING | REGEXP) CARDINALITY?

action: "{%" NAME param* "%}"
param: NAME "=" (NAME | STRING | INT)

CARDINALITY: "?" | "*"
NAME: /[A-Za-z_$][A-Za-z0-9_$.]*/
STRING: /"(?:[^"\\\n]|\\.)*"/
REGEXP: /\/(?:\\.|[^\\\/\n])+\//
INT: /[0-9]+/
COMMENT: /#[^\n]*/
_NL: /\r?\n/

%ignore /[ \t]+/
"""


class _GrammarSourceTransformer(Transformer):
    """Turns a grammar source parse tree into a GrammarRuleSet."""

    def start(self, items):
        rule_set = GrammarRuleSet()
        for item in items:
            if isinstance(item, Token):
                continue
            kind, value = item
            if kind == "start":
                rule_set.start = str(value)
            elif kind == "expressions":
                rule_set.contains_expression = True
            else:
                name_token, rule = value
                if rule_set.has(rule.name):
                    raise GrammarSyntaxError(
                        f"Rule {rule.name} is defined more than once",
                        location=FileLocation(name_token.line, name_token.column),
                    )
                rule_set.add(rule)
        return rule_set

    def start_directive(self, items):
        return ("start", items[0])

    def expressions_directive(self, items):
        return ("expressions", None)

    def rule(self, items):
        name = items[0]
        alternatives = items[1]
        action = None
        comment = None
        for item in items[2:]:
            if isinstance(item, Action):
                action = item
            elif isinstance(item, Token) and item.type == "COMMENT":
                comment = item[1:].strip() or None
        rule = GrammarRule(name=str(name), alternatives=alternatives, action=action, comment=comment)
        return ("rule", (name, rule))

    def alternatives(self, items):
        return list(items)

    def alternative(self, items):
        return list(items)

    def symbol(self, items):
        atom = items[0]
        cardinality = Cardinality(str(items[1])) if len(items) > 1 else Cardinality.ONE
        if atom.type == "STRING":
            return Symbol.literal(json.loads(atom), cardinality)
        if atom.type == "REGEXP":
            return Symbol.pattern(unescape_pattern(atom[1:-1]), cardinality)
        return Symbol.rule(str(atom), cardinality)

    def action(self, items):
        return Action(str(items[0]), tuple(items[1:]))

    def param(self, items):
        key, value = str(items[0]), items[1]
        if value.type == "STRING":
            return ActionParam.const(key, json.loads(value))
        if value.type == "INT":
            return ActionParam.index(key, int(value))
        return ActionParam.ref(key, str(value))


_source_parser: Lark | None = None


def _get_source_parser() -> Lark:
    global _source_parser
    if _source_parser is None:
        _source_parser = Lark(GRAMMAR_SOURCE_GRAMMAR, parser="lalr")
    return _source_parser


def parse_grammar_source(text: str, file_name: str | None = None) -> GrammarRuleSet:
    """
    Parse grammar source text into a checked GrammarRuleSet.

    Raises:
        GrammarSyntaxError: malformed source, duplicate rules or
            references to undefined rules
    """
    if not text.endswith("\n"):
        text += "\n"
    try:
        tree = _get_source_parser().parse(text)
    except UnexpectedInput as e:
        line = getattr(e, "line", None)
        raise GrammarSyntaxError(
            "Malformed grammar source",
            file_name=file_name,
            location=FileLocation(line, e.column) if line and line > 0 else None,
            details=str(e),
        ) from e

    try:
        rule_set = _GrammarSourceTransformer().transform(tree)
        rule_set.check()
    except VisitError as e:
        orig = e.orig_exc
        if isinstance(orig, GrammarSyntaxError):
            raise GrammarSyntaxError(orig.message, file_name=file_name, location=orig.location) from None
        if isinstance(orig, ValueError):
            raise GrammarSyntaxError(f"Malformed grammar source: {orig}", file_name=file_name) from orig
        raise
    except GrammarSyntaxError as e:
        raise GrammarSyntaxError(e.message, file_name=file_name, location=e.location) from None
    return rule_set
