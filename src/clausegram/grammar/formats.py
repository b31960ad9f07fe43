"""
Format Rule Parsers — Grammar fragments for human format strings.

A format string such as "DD MMMM YYYY" or "0,0.00 CCC" becomes one
grammar rule whose name is derived from the format itself, so the
compiler can share a fragment between every binding using it. Each
parser also carries the two directions of the format:

- parse(): text matched by the fragment -> data value
- format_value(): data value -> text the fragment would match
"""

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from dateutil import tz
from dateutil.parser import isoparse

from clausegram.errors import FormatError, ParseFailure
from clausegram.grammar.rules import Action, ActionParam, GrammarRule, Symbol
from clausegram.schemas.system import MONETARY_AMOUNT_TYPE
from clausegram.vocabulary import RuleOrigin


def _format_digest(format_string: str) -> str:
    return hashlib.sha256(format_string.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class FormatToken:
    """One piece of a tokenized format: a field placeholder or literal text."""
    text: str
    is_field: bool


# =============================================================================
# DATE AND TIME
# =============================================================================

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
MONTH_ABBREVIATIONS = [name[:3] for name in MONTH_NAMES]

# Longest tokens first so "MMMM" wins over "MM"
DATETIME_FIELDS: dict[str, str] = {
    "YYYY": r"[0-9]{4}",
    "MMMM": "(?:" + "|".join(MONTH_NAMES) + ")",
    "MMM": "(?:" + "|".join(MONTH_ABBREVIATIONS) + ")",
    "SSS": r"[0-9]{3}",
    "YY": r"[0-9]{2}",
    "MM": r"(?:0[1-9]|1[0-2])",
    "DD": r"(?:0[1-9]|[12][0-9]|3[01])",
    "HH": r"(?:[01][0-9]|2[0-3])",
    "mm": r"[0-5][0-9]",
    "ss": r"[0-5][0-9]",
    "M": r"(?:1[0-2]|[1-9])",
    "D": r"(?:3[01]|[12][0-9]|[1-9])",
    "H": r"(?:2[0-3]|1[0-9]|[0-9])",
    "Z": r"(?:Z|[+-][0-9]{2}:?[0-9]{2})",
}


class DateTimeFormatParser:
    """
    Date formats built from the tokens YYYY YY MMMM MMM MM M DD D HH H mm ss SSS Z.

    Any other character is literal; text inside [brackets] is always literal.
    Parsed values are ISO-8601 strings with millisecond precision.
    """

    type_name = "DateTime"
    action_name = "datetime"

    def tokenize(self, format_string: str) -> list[FormatToken]:
        if not format_string:
            raise FormatError("Date format cannot be empty")
        tokens: list[FormatToken] = []
        literal = ""
        i = 0
        while i < len(format_string):
            if format_string[i] == "[":
                end = format_string.find("]", i)
                if end < 0:
                    raise FormatError(f"Unterminated literal in date format '{format_string}'")
                literal += format_string[i + 1:end]
                i = end + 1
                continue
            for field_token in DATETIME_FIELDS:
                if format_string.startswith(field_token, i):
                    if literal:
                        tokens.append(FormatToken(literal, False))
                        literal = ""
                    tokens.append(FormatToken(field_token, True))
                    i += len(field_token)
                    break
            else:
                literal += format_string[i]
                i += 1
        if literal:
            tokens.append(FormatToken(literal, False))
        if not any(t.is_field for t in tokens):
            raise FormatError(f"Date format '{format_string}' contains no date or time fields")
        return tokens

    def rule_name(self, format_string: str) -> str:
        return f"{self.type_name}_{_format_digest(format_string)}"

    def build_format_rule(self, format_string: str) -> GrammarRule:
        symbols = [
            Symbol.pattern(DATETIME_FIELDS[t.text]) if t.is_field else Symbol.literal(t.text)
            for t in self.tokenize(format_string)
        ]
        return GrammarRule(
            name=self.rule_name(format_string),
            alternatives=[symbols],
            action=Action(self.action_name, (ActionParam.const("format", format_string),)),
            comment=f"{self.type_name} format {format_string}",
            origin=RuleOrigin.FORMAT,
        )

    def _full_pattern(self, tokens: list[FormatToken]) -> re.Pattern:
        parts = []
        for index, token in enumerate(tokens):
            if token.is_field:
                parts.append(f"(?P<g{index}>{DATETIME_FIELDS[token.text]})")
            else:
                parts.append(re.escape(token.text))
        return re.compile("".join(parts))

    def parse(
        self,
        text: str,
        format_string: str,
        current_time: datetime | None = None,
        default_timezone: str = "UTC",
    ) -> str:
        """
        Convert matched text into an ISO-8601 string.

        The offset comes from a Z field, else from current_time, else
        from default_timezone.
        """
        tokens = self.tokenize(format_string)
        match = self._full_pattern(tokens).fullmatch(text)
        if match is None:
            raise ParseFailure(f"Text '{text}' does not match date format '{format_string}'")

        parts = {"year": 1970, "month": 1, "day": 1, "hour": 0, "minute": 0, "second": 0, "ms": 0}
        offset = None
        for index, token in enumerate(tokens):
            if not token.is_field:
                continue
            value = match.group(f"g{index}")
            if token.text == "YYYY":
                parts["year"] = int(value)
            elif token.text == "YY":
                parts["year"] = int(value) + (1900 if int(value) > 68 else 2000)
            elif token.text == "MMMM":
                parts["month"] = MONTH_NAMES.index(value) + 1
            elif token.text == "MMM":
                parts["month"] = MONTH_ABBREVIATIONS.index(value) + 1
            elif token.text in ("MM", "M"):
                parts["month"] = int(value)
            elif token.text in ("DD", "D"):
                parts["day"] = int(value)
            elif token.text in ("HH", "H"):
                parts["hour"] = int(value)
            elif token.text == "mm":
                parts["minute"] = int(value)
            elif token.text == "ss":
                parts["second"] = int(value)
            elif token.text == "SSS":
                parts["ms"] = int(value)
            elif token.text == "Z":
                offset = self._parse_offset(value)

        if offset is None:
            if current_time is not None and current_time.tzinfo is not None:
                offset = tz.tzoffset(None, int(current_time.utcoffset().total_seconds()))
            else:
                offset = tz.gettz(default_timezone) or tz.UTC

        try:
            result = datetime(
                parts["year"], parts["month"], parts["day"],
                parts["hour"], parts["minute"], parts["second"],
                parts["ms"] * 1000, tzinfo=offset,
            )
        except ValueError as e:
            raise ParseFailure(f"Invalid date '{text}' for format '{format_string}': {e}") from e
        return to_iso_string(result)

    @staticmethod
    def _parse_offset(value: str) -> tz.tzoffset:
        if value == "Z":
            return tz.UTC
        sign = -1 if value[0] == "-" else 1
        digits = value[1:].replace(":", "")
        seconds = sign * (int(digits[:2]) * 3600 + int(digits[2:]) * 60)
        return tz.tzoffset(None, seconds)

    def format_value(self, value: str, format_string: str) -> str:
        """Render an ISO-8601 string in the given format."""
        try:
            moment = isoparse(value)
        except (ValueError, TypeError) as e:
            raise FormatError(f"Value '{value}' is not an ISO-8601 date") from e

        out = []
        for token in self.tokenize(format_string):
            if not token.is_field:
                out.append(token.text)
            elif token.text == "YYYY":
                out.append(f"{moment.year:04d}")
            elif token.text == "YY":
                out.append(f"{moment.year % 100:02d}")
            elif token.text == "MMMM":
                out.append(MONTH_NAMES[moment.month - 1])
            elif token.text == "MMM":
                out.append(MONTH_ABBREVIATIONS[moment.month - 1])
            elif token.text == "MM":
                out.append(f"{moment.month:02d}")
            elif token.text == "M":
                out.append(str(moment.month))
            elif token.text == "DD":
                out.append(f"{moment.day:02d}")
            elif token.text == "D":
                out.append(str(moment.day))
            elif token.text == "HH":
                out.append(f"{moment.hour:02d}")
            elif token.text == "H":
                out.append(str(moment.hour))
            elif token.text == "mm":
                out.append(f"{moment.minute:02d}")
            elif token.text == "ss":
                out.append(f"{moment.second:02d}")
            elif token.text == "SSS":
                out.append(f"{moment.microsecond // 1000:03d}")
            elif token.text == "Z":
                out.append(self._format_offset(moment))
        return "".join(out)

    @staticmethod
    def _format_offset(moment: datetime) -> str:
        offset = moment.utcoffset()
        seconds = int(offset.total_seconds()) if offset is not None else 0
        sign = "-" if seconds < 0 else "+"
        seconds = abs(seconds)
        return f"{sign}{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}"


def to_iso_string(moment: datetime) -> str:
    """ISO-8601 with milliseconds; a zero offset is written as Z."""
    text = moment.isoformat(timespec="milliseconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


# =============================================================================
# AMOUNTS
# =============================================================================

_AMOUNT_WITH_THOUSANDS = re.compile(
    r"^(?P<prefix>[^0]*)0(?P<thousands>[^0-9])0"
    r"(?:(?P<decimal>[^0-9])(?P<digits>0+))?(?P<suffix>[^0]*)$"
)
_AMOUNT_DECIMAL_ONLY = re.compile(
    r"^(?P<prefix>[^0]*)0(?:(?P<decimal>[^0-9])(?P<digits>0+))?(?P<suffix>[^0]*)$"
)


@dataclass(frozen=True)
class AmountFormat:
    """Decoded amount format such as "0,0.00" or "0.000"."""
    prefix: str
    suffix: str
    thousands: str | None
    decimal: str | None
    digits: int

    def number_pattern(self) -> str:
        if self.thousands:
            sep = re.escape(self.thousands)
            integer = rf"(?:[0-9]{{1,3}}(?:{sep}[0-9]{{3}})+|[0-9]+)"
        else:
            integer = r"[0-9]+"
        fraction = rf"{re.escape(self.decimal)}[0-9]{{{self.digits}}}" if self.digits else ""
        return rf"-?{integer}{fraction}"

    def to_number(self, text: str) -> float:
        if self.thousands:
            text = text.replace(self.thousands, "")
        if self.decimal:
            text = text.replace(self.decimal, ".")
        return float(text)

    def render_number(self, value: float) -> str:
        sign = "-" if value < 0 else ""
        rendered = f"{abs(value):.{self.digits}f}"
        integer, _, fraction = rendered.partition(".")
        if self.thousands:
            groups = []
            while len(integer) > 3:
                groups.insert(0, integer[-3:])
                integer = integer[:-3]
            groups.insert(0, integer)
            integer = self.thousands.join(groups)
        if self.digits:
            return f"{sign}{integer}{self.decimal}{fraction}"
        return f"{sign}{integer}"


class AmountFormatParser:
    """Number formats for Double fields, e.g. "0,0.00", "0 0,000", "0.0" or "$0,0"."""

    type_name = "Double"
    action_name = "amount"

    def decode(self, format_string: str) -> AmountFormat:
        match = _AMOUNT_WITH_THOUSANDS.match(format_string)
        thousands = None
        if match is not None:
            thousands = match.group("thousands")
        else:
            match = _AMOUNT_DECIMAL_ONLY.match(format_string)
        if match is None:
            raise FormatError(f"Invalid amount format '{format_string}'")
        decimal = match.group("decimal")
        if decimal is not None and decimal == thousands:
            raise FormatError(
                f"Amount format '{format_string}' uses the same thousands and decimal separator"
            )
        return AmountFormat(
            prefix=match.group("prefix"),
            suffix=match.group("suffix"),
            thousands=thousands,
            decimal=decimal,
            digits=len(match.group("digits") or ""),
        )

    def rule_name(self, format_string: str) -> str:
        return f"{self.type_name}_{_format_digest(format_string)}"

    def _symbols(self, decoded: AmountFormat) -> list[Symbol]:
        symbols = []
        if decoded.prefix:
            symbols.append(Symbol.literal(decoded.prefix))
        symbols.append(Symbol.pattern(decoded.number_pattern()))
        if decoded.suffix:
            symbols.append(Symbol.literal(decoded.suffix))
        return symbols

    def build_format_rule(self, format_string: str) -> GrammarRule:
        return GrammarRule(
            name=self.rule_name(format_string),
            alternatives=[self._symbols(self.decode(format_string))],
            action=Action(self.action_name, (ActionParam.const("format", format_string),)),
            comment=f"{self.type_name} format {format_string}",
            origin=RuleOrigin.FORMAT,
        )

    def parse(self, text: str, format_string: str) -> float:
        decoded = self.decode(format_string)
        pattern = re.escape(decoded.prefix) + f"({decoded.number_pattern()})" + re.escape(decoded.suffix)
        match = re.fullmatch(pattern, text)
        if match is None:
            raise ParseFailure(f"Text '{text}' does not match amount format '{format_string}'")
        return decoded.to_number(match.group(1))

    def format_value(self, value: float, format_string: str) -> str:
        decoded = self.decode(format_string)
        return f"{decoded.prefix}{decoded.render_number(float(value))}{decoded.suffix}"


# =============================================================================
# MONETARY AMOUNTS
# =============================================================================

CURRENCY_SYMBOLS: dict[str, str] = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
}
CODE_PATTERN = r"[A-Z]{3}"
SYMBOL_PATTERN = "[" + "".join(re.escape(s) for s in CURRENCY_SYMBOLS) + "]"
_CURRENCY_PLACEHOLDER = re.compile(r"CCC|K")


class MonetaryAmountFormatParser:
    """
    Formats for MonetaryAmount values: an amount format whose prefix or
    suffix holds a CCC (ISO currency code) or K (currency symbol) placeholder.
    """

    type_name = "MonetaryAmount"
    action_name = "monetary"
    default_format = "0,0.00 CCC"

    def __init__(self):
        self.amounts = AmountFormatParser()

    def decode(self, format_string: str) -> tuple[AmountFormat, str]:
        decoded = self.amounts.decode(format_string)
        placeholders = _CURRENCY_PLACEHOLDER.findall(decoded.prefix) + _CURRENCY_PLACEHOLDER.findall(decoded.suffix)
        if len(placeholders) != 1:
            raise FormatError(
                f"Monetary format '{format_string}' must contain exactly one CCC or K placeholder"
            )
        return decoded, placeholders[0]

    def rule_name(self, format_string: str) -> str:
        return f"{self.type_name}_{_format_digest(format_string)}"

    def _affix_symbols(self, affix: str, placeholder: str) -> list[Symbol]:
        symbols = []
        for index, piece in enumerate(_CURRENCY_PLACEHOLDER.split(affix)):
            if index > 0:
                symbols.append(Symbol.pattern(CODE_PATTERN if placeholder == "CCC" else SYMBOL_PATTERN))
            if piece:
                symbols.append(Symbol.literal(piece))
        return symbols

    def build_format_rule(self, format_string: str) -> GrammarRule:
        decoded, placeholder = self.decode(format_string)
        symbols = (
            self._affix_symbols(decoded.prefix, placeholder)
            + [Symbol.pattern(decoded.number_pattern())]
            + self._affix_symbols(decoded.suffix, placeholder)
        )
        return GrammarRule(
            name=self.rule_name(format_string),
            alternatives=[symbols],
            action=Action(self.action_name, (ActionParam.const("format", format_string),)),
            comment=f"{self.type_name} format {format_string}",
            origin=RuleOrigin.FORMAT,
        )

    def _affix_regex(self, affix: str, placeholder: str) -> str:
        currency = f"(?P<currency>{CODE_PATTERN if placeholder == 'CCC' else SYMBOL_PATTERN})"
        return currency.join(re.escape(piece) for piece in _CURRENCY_PLACEHOLDER.split(affix))

    def parse(self, text: str, format_string: str) -> dict[str, Any]:
        decoded, placeholder = self.decode(format_string)
        pattern = (
            self._affix_regex(decoded.prefix, placeholder)
            + f"(?P<number>{decoded.number_pattern()})"
            + self._affix_regex(decoded.suffix, placeholder)
        )
        match = re.fullmatch(pattern, text)
        if match is None:
            raise ParseFailure(f"Text '{text}' does not match monetary format '{format_string}'")
        currency = match.group("currency")
        return {
            "$class": MONETARY_AMOUNT_TYPE,
            "doubleValue": decoded.to_number(match.group("number")),
            "currencyCode": CURRENCY_SYMBOLS.get(currency, currency),
        }

    def format_value(self, value: dict[str, Any], format_string: str) -> str:
        decoded, placeholder = self.decode(format_string)
        code = value["currencyCode"]
        if placeholder == "K":
            symbols = {c: s for s, c in CURRENCY_SYMBOLS.items()}
            if code not in symbols:
                raise FormatError(f"Currency {code} has no symbol for format '{format_string}'")
            currency = symbols[code]
        else:
            currency = code
        prefix = _CURRENCY_PLACEHOLDER.sub(currency, decoded.prefix)
        suffix = _CURRENCY_PLACEHOLDER.sub(currency, decoded.suffix)
        return f"{prefix}{decoded.render_number(float(value['doubleValue']))}{suffix}"


# =============================================================================
# LOOKUP
# =============================================================================

FormatParser = DateTimeFormatParser | AmountFormatParser | MonetaryAmountFormatParser


def get_format_parser(type_name: str) -> FormatParser | None:
    """Format parser for a primitive or fully-qualified type name, if one exists."""
    if type_name == DateTimeFormatParser.type_name:
        return DateTimeFormatParser()
    if type_name == AmountFormatParser.type_name:
        return AmountFormatParser()
    if type_name == MONETARY_AMOUNT_TYPE:
        return MonetaryAmountFormatParser()
    return None
