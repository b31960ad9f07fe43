"""
Value Printer — Renders data values as the text their grammar rules match.

Drafting uses the printer where parsing uses the grammar, so that for
every value v of a property, parsing print(v) yields v again.
"""

import json
from typing import Any

from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import FormatError, StructuralError
from clausegram.grammar.formats import (
    DateTimeFormatParser,
    MonetaryAmountFormatParser,
    get_format_parser,
)
from clausegram.schemas import ModelManager, Property
from clausegram.schemas.system import MONETARY_AMOUNT_TYPE
from clausegram.vocabulary import PrimitiveType


def format_double(value: float) -> str:
    if isinstance(value, int) or float(value).is_integer():
        return str(int(value)) if abs(value) < 1e16 else repr(float(value))
    return repr(float(value))


class ValuePrinter:
    """Inverse of the grammar produced by GrammarVisitor and the format parsers."""

    def __init__(self, model_manager: ModelManager, config: ClausegramConfig = DEFAULT_CONFIG):
        self.model_manager = model_manager
        self.config = config

    def print_property(self, prop: Property, value: Any, format_string: str | None = None) -> str:
        """
        Text for a property value, honoring array and optional cardinality.

        Array elements are concatenated; an absent optional value prints as "".
        """
        if value is None:
            if prop.is_optional or prop.is_array:
                return ""
            raise StructuralError(f"Missing value for required property '{prop.name}'")
        if prop.is_array:
            return "".join(self.print_single(prop, item, format_string) for item in value)
        return self.print_single(prop, value, format_string)

    def print_single(self, prop: Property, value: Any, format_string: str | None = None) -> str:
        if prop.is_relationship:
            return json.dumps(str(value), ensure_ascii=False)
        if format_string is not None:
            parser = get_format_parser(prop.fully_qualified_type_name)
            if parser is None:
                raise FormatError(
                    f"Formatted types are not currently supported for "
                    f"{prop.fully_qualified_type_name} properties."
                )
            return parser.format_value(value, format_string)
        return self.print_type(prop.fully_qualified_type_name, value)

    def print_type(self, type_name: str, value: Any) -> str:
        """Text for a value of a primitive or declared type, without format."""
        if type_name == PrimitiveType.STRING.value:
            return json.dumps(value, ensure_ascii=False)
        if type_name == PrimitiveType.BOOLEAN.value:
            return "true" if value else "false"
        if type_name in (PrimitiveType.INTEGER.value, PrimitiveType.LONG.value):
            return str(int(value))
        if type_name == PrimitiveType.DOUBLE.value:
            return format_double(value)
        if type_name == PrimitiveType.DATETIME.value:
            return DateTimeFormatParser().format_value(value, self.config.default_datetime_format)
        if type_name == MONETARY_AMOUNT_TYPE:
            monetary = MonetaryAmountFormatParser()
            return monetary.format_value(value, monetary.default_format)

        decl = self.model_manager.get_type(type_name)
        if decl.is_enum:
            return str(value)
        if decl.abstract or (isinstance(value, dict) and value.get("$class", type_name) != type_name):
            decl = self.model_manager.get_type(value["$class"])
        if not decl.properties:
            return decl.name
        return " ".join(self.print_property(p, value.get(p.name)) for p in decl.properties)


def create_value_printer(
    model_manager: ModelManager,
    config: ClausegramConfig = DEFAULT_CONFIG,
) -> ValuePrinter:
    """Factory function for ValuePrinter."""
    return ValuePrinter(model_manager, config)
