"""Tests for date, amount and monetary formats."""

from datetime import datetime, timedelta, timezone

import pytest

from clausegram.errors import FormatError, ParseFailure
from clausegram.grammar import (
    AmountFormatParser,
    DateTimeFormatParser,
    MonetaryAmountFormatParser,
    get_format_parser,
    to_iso_string,
)
from clausegram.grammar.formats import FormatToken
from clausegram.schemas import MONETARY_AMOUNT_TYPE
from clausegram.vocabulary import RuleOrigin, SymbolKind


class TestDateTimeFormat:
    """Tests for date formats."""

    def test_tokenize_longest_first(self):
        """MMMM is one field, not two MM fields."""
        tokens = DateTimeFormatParser().tokenize("DD MMMM YYYY")
        assert tokens == [
            FormatToken("DD", True),
            FormatToken(" ", False),
            FormatToken("MMMM", True),
            FormatToken(" ", False),
            FormatToken("YYYY", True),
        ]

    def test_bracketed_literal(self):
        tokens = DateTimeFormatParser().tokenize("[Day] D")
        assert tokens == [FormatToken("Day ", False), FormatToken("D", True)]

    def test_empty_format(self):
        with pytest.raises(FormatError, match="cannot be empty"):
            DateTimeFormatParser().tokenize("")

    def test_no_fields(self):
        with pytest.raises(FormatError, match="contains no date or time fields"):
            DateTimeFormatParser().tokenize("abc")

    def test_unterminated_literal(self):
        with pytest.raises(FormatError, match="Unterminated literal"):
            DateTimeFormatParser().tokenize("[Day D")

    def test_rule(self):
        """A format becomes one rule named after the format."""
        parser = DateTimeFormatParser()
        rule = parser.build_format_rule("DD/MM/YYYY")
        assert rule.name == parser.rule_name("DD/MM/YYYY")
        assert rule.name.startswith("DateTime_")
        assert rule.name != parser.rule_name("MM/DD/YYYY")
        assert rule.origin == RuleOrigin.FORMAT
        assert [s.kind for s in rule.alternatives[0]] == [
            SymbolKind.PATTERN, SymbolKind.LITERAL, SymbolKind.PATTERN, SymbolKind.LITERAL, SymbolKind.PATTERN,
        ]
        assert rule.action.name == "datetime"
        assert rule.action.get("format").value == "DD/MM/YYYY"

    def test_parse_default_timezone(self):
        """Without an offset the date is read in the default timezone."""
        assert DateTimeFormatParser().parse("01 March 2024", "DD MMMM YYYY") == "2024-03-01T00:00:00.000Z"

    def test_parse_with_offset(self):
        value = DateTimeFormatParser().parse("2024-03-01 10:30 +02:00", "YYYY-MM-DD HH:mm Z")
        assert value == "2024-03-01T10:30:00.000+02:00"

    def test_parse_current_time_offset(self):
        """The offset of the current time applies when the text has none."""
        now = datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=-5)))
        value = DateTimeFormatParser().parse("01/02/2024", "MM/DD/YYYY", current_time=now)
        assert value == "2024-01-02T00:00:00.000-05:00"

    def test_parse_two_digit_year(self):
        assert DateTimeFormatParser().parse("3/4/99", "M/D/YY").startswith("1999-03-04")
        assert DateTimeFormatParser().parse("3/4/24", "M/D/YY").startswith("2024-03-04")

    def test_parse_invalid_date(self):
        """Text matching the format but naming no real date fails."""
        with pytest.raises(ParseFailure, match="Invalid date"):
            DateTimeFormatParser().parse("02/30/2024", "MM/DD/YYYY")

    def test_parse_mismatch(self):
        with pytest.raises(ParseFailure):
            DateTimeFormatParser().parse("March 1", "DD MMMM YYYY")

    def test_format_value(self):
        """format_value is the inverse of parse."""
        parser = DateTimeFormatParser()
        assert parser.format_value("2024-03-01T00:00:00.000Z", "DD MMMM YYYY") == "01 March 2024"
        assert parser.format_value("2024-03-01T10:30:05.250+02:00", "D MMM YY HH:mm:ss.SSS Z") == "1 Mar 24 10:30:05.250 +02:00"

    def test_format_value_not_iso(self):
        with pytest.raises(FormatError, match="not an ISO-8601 date"):
            DateTimeFormatParser().format_value("yesterday", "DD/MM/YYYY")

    def test_to_iso_string(self):
        moment = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert to_iso_string(moment) == "2024-03-01T12:00:00.000Z"


class TestAmountFormat:
    """Tests for Double formats."""

    def test_decode_thousands(self):
        decoded = AmountFormatParser().decode("0,0.00")
        assert decoded.thousands == ","
        assert decoded.decimal == "."
        assert decoded.digits == 2

    def test_decode_decimal_only(self):
        decoded = AmountFormatParser().decode("0.000")
        assert decoded.thousands is None
        assert decoded.digits == 3

    def test_decode_affixes(self):
        decoded = AmountFormatParser().decode("$0,0 per unit")
        assert decoded.prefix == "$"
        assert decoded.suffix == " per unit"
        assert decoded.digits == 0

    def test_same_separators(self):
        with pytest.raises(FormatError, match="same thousands and decimal separator"):
            AmountFormatParser().decode("0,0,00")

    def test_invalid(self):
        with pytest.raises(FormatError, match="Invalid amount format"):
            AmountFormatParser().decode("abc")

    def test_parse(self):
        assert AmountFormatParser().parse("1,234.56", "0,0.00") == 1234.56
        assert AmountFormatParser().parse("1 234,5", "0 0,0") == 1234.5
        assert AmountFormatParser().parse("-12", "0") == -12.0

    def test_parse_mismatch(self):
        with pytest.raises(ParseFailure):
            AmountFormatParser().parse("1234.5", "0,0.00")

    def test_format_value(self):
        parser = AmountFormatParser()
        assert parser.format_value(1234.5, "0 0,000") == "1 234,500"
        assert parser.format_value(1234567.891, "0,0.00") == "1,234,567.89"
        assert parser.format_value(-5, "$0.00") == "$-5.00"

    def test_single_separator_is_thousands(self):
        """A lone separator between two zeros groups thousands."""
        decoded = AmountFormatParser().decode("0.0")
        assert decoded.thousands == "."
        assert decoded.digits == 0

    def test_rule(self):
        rule = AmountFormatParser().build_format_rule("0,0.00%")
        assert rule.name.startswith("Double_")
        assert [s.kind for s in rule.alternatives[0]] == [SymbolKind.PATTERN, SymbolKind.LITERAL]


class TestMonetaryAmountFormat:
    """Tests for MonetaryAmount formats."""

    def test_code_suffix(self):
        value = MonetaryAmountFormatParser().parse("1,250.50 EUR", "0,0.00 CCC")
        assert value == {"$class": MONETARY_AMOUNT_TYPE, "doubleValue": 1250.5, "currencyCode": "EUR"}

    def test_symbol_prefix(self):
        """Currency symbols map to ISO codes."""
        value = MonetaryAmountFormatParser().parse("€1,000.00", "K0,0.00")
        assert value["currencyCode"] == "EUR"
        assert value["doubleValue"] == 1000.0

    def test_format_value(self):
        parser = MonetaryAmountFormatParser()
        value = {"$class": MONETARY_AMOUNT_TYPE, "doubleValue": 1000.0, "currencyCode": "GBP"}
        assert parser.format_value(value, "K0,0.00") == "£1,000.00"
        assert parser.format_value(value, "0,0.00 CCC") == "1,000.00 GBP"

    def test_unknown_symbol(self):
        value = {"$class": MONETARY_AMOUNT_TYPE, "doubleValue": 1.0, "currencyCode": "CHF"}
        with pytest.raises(FormatError, match="has no symbol"):
            MonetaryAmountFormatParser().format_value(value, "K0.00")

    def test_placeholder_required(self):
        with pytest.raises(FormatError, match="exactly one CCC or K placeholder"):
            MonetaryAmountFormatParser().decode("0,0.00")

    def test_rule(self):
        rule = MonetaryAmountFormatParser().build_format_rule("0,0.00 CCC")
        assert rule.name.startswith("MonetaryAmount_")
        kinds = [s.kind for s in rule.alternatives[0]]
        assert kinds == [SymbolKind.PATTERN, SymbolKind.LITERAL, SymbolKind.PATTERN]


class TestGetFormatParser:
    """Tests for the format parser lookup."""

    def test_supported_types(self):
        assert isinstance(get_format_parser("DateTime"), DateTimeFormatParser)
        assert isinstance(get_format_parser("Double"), AmountFormatParser)
        assert isinstance(get_format_parser(MONETARY_AMOUNT_TYPE), MonetaryAmountFormatParser)

    def test_unsupported_types(self):
        """Only dates, doubles and monetary amounts take formats."""
        assert get_format_parser("Integer") is None
        assert get_format_parser("String") is None
