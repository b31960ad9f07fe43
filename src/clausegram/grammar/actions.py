"""
Semantic Actions — The table of named actions a rule may apply.

An action receives the values of the matched alternative's symbols, the
action's resolved parameters and the parse context, and returns the
rule's value. Rules without an action pass a single value through, or
return the list of values of a longer alternative.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import GrammarSyntaxError
from clausegram.grammar.formats import (
    AmountFormatParser,
    DateTimeFormatParser,
    MonetaryAmountFormatParser,
)


@dataclass
class ParseContext:
    """Per-parse inputs that actions may depend on."""
    current_time: datetime | None = None
    config: ClausegramConfig = DEFAULT_CONFIG


ActionFunction = Callable[[list[Any], dict[str, Any], ParseContext], Any]


def _first(values: list[Any]) -> Any:
    return values[0] if values else None


def _text(values: list[Any]) -> str:
    out = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, list):
            out.append(_text(value))
        else:
            out.append(str(value))
    return "".join(out)


# =============================================================================
# PRIMITIVES
# =============================================================================

def string_action(values, args, context):
    return json.loads(_first(values))


def integer_action(values, args, context):
    return int(_first(values))


def double_action(values, args, context):
    return float(_first(values))


def boolean_action(values, args, context):
    return _first(values) == "true"


def enum_action(values, args, context):
    return _first(values)


def text_action(values, args, context):
    return _text(values)


# =============================================================================
# CONDITIONALS AND LISTS
# =============================================================================

def present_action(values, args, context):
    """True when the optional text was matched."""
    return _first(values) is not None


def absent_action(values, args, context):
    """True when the optional text was not matched."""
    return _first(values) is None


def equals_action(values, args, context):
    """True when the matched text equals the `value` parameter."""
    return _first(values) == args["value"]


def concat_action(values, args, context):
    """Prepend the `first` element to the `rest` elements."""
    rest = args.get("rest") or []
    return [args["first"]] + list(rest)


# =============================================================================
# STRUCTURES
# =============================================================================

def object_action(values, args, context):
    """
    Build a typed object from parameters.

    Parameters whose value is None (an absent optional property) are left out.
    """
    result = {}
    for key, value in args.items():
        if value is None:
            continue
        result[key] = value
    return result


# =============================================================================
# FORMATS
# =============================================================================

def datetime_action(values, args, context):
    return DateTimeFormatParser().parse(
        _text(values),
        args["format"],
        current_time=context.current_time,
        default_timezone=context.config.default_timezone,
    )


def amount_action(values, args, context):
    return AmountFormatParser().parse(_text(values), args["format"])


def monetary_action(values, args, context):
    return MonetaryAmountFormatParser().parse(_text(values), args["format"])


ACTIONS: dict[str, ActionFunction] = {
    "string": string_action,
    "integer": integer_action,
    "double": double_action,
    "boolean": boolean_action,
    "enum": enum_action,
    "text": text_action,
    "present": present_action,
    "absent": absent_action,
    "equals": equals_action,
    "concat": concat_action,
    "object": object_action,
    "datetime": datetime_action,
    "amount": amount_action,
    "monetary": monetary_action,
}


def get_action(name: str) -> ActionFunction:
    try:
        return ACTIONS[name]
    except KeyError:
        raise GrammarSyntaxError(f"Unknown action {name}") from None


def default_action(values: list[Any]) -> Any:
    """Value of a rule without an action."""
    if len(values) == 1:
        return values[0]
    return values
