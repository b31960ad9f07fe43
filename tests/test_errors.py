"""Tests for errors and configuration."""

import pytest

from clausegram import (
    ClausegramConfig,
    DEFAULT_CONFIG,
    ClausegramError,
    StructuralError,
    FormatError,
    ParseFailure,
    AmbiguousParse,
    ValidationError,
)
from clausegram.errors import FileLocation


class TestFileLocation:
    """Tests for source locations."""

    def test_end_defaults_to_start(self):
        """A point location ends where it starts."""
        location = FileLocation(3, 7)
        assert location.to_dict() == {
            "start": {"line": 3, "column": 7},
            "end": {"line": 3, "column": 7},
        }

    def test_span(self):
        location = FileLocation(1, 9, 1, 16)
        assert location.to_dict()["end"] == {"line": 1, "column": 16}


class TestClausegramError:
    """Tests for the error base class."""

    def test_message_only(self):
        """Without location the message is the string form."""
        error = ClausegramError("Something broke")
        assert str(error) == "Something broke"
        assert error.line is None

    def test_message_with_location(self):
        """File and position are appended to the string form."""
        error = StructuralError("Bad binding", file_name="text/grammar.tem.md", location=FileLocation(2, 5))
        assert str(error) == "Bad binding (at file text/grammar.tem.md line 2 col 5)"
        assert error.line == 2
        assert error.column == 5

    def test_to_dict(self):
        error = StructuralError("Bad binding", location=FileLocation(2, 5))
        d = error.to_dict()
        assert d["error_type"] == "StructuralError"
        assert d["message"] == "Bad binding"
        assert d["location"]["start"] == {"line": 2, "column": 5}

    def test_format_error_is_structural(self):
        """Format errors are template structure errors."""
        assert issubclass(FormatError, StructuralError)

    def test_all_errors_share_base(self):
        for cls in (StructuralError, ParseFailure, AmbiguousParse, ValidationError):
            assert issubclass(cls, ClausegramError)


class TestSpecificErrors:
    """Tests for errors carrying extra data."""

    def test_parse_failure_expected(self):
        error = ParseFailure("Unexpected character 'x'", expected=['"true"', '"false"'])
        assert error.expected == ['"true"', '"false"']

    def test_ambiguous_parse_count(self):
        error = AmbiguousParse("Ambiguous text. Got 3 ambiguous results", interpretations=3)
        assert error.interpretations == 3

    def test_validation_error_to_dict(self):
        """Validation errors carry the offending data."""
        error = ValidationError("Invalid", data={"a": 1}, errors=["root: bad"])
        d = error.to_dict()
        assert d["data"] == {"a": 1}
        assert d["errors"] == ["root: bad"]


class TestClausegramConfig:
    """Tests for configuration."""

    def test_defaults(self):
        """Defaults match the documented values."""
        assert DEFAULT_CONFIG.ulist_bullet == "- "
        assert DEFAULT_CONFIG.olist_marker == "1. "
        assert DEFAULT_CONFIG.join_separator == ", "
        assert DEFAULT_CONFIG.grammar_file == "text/grammar.tem.md"
        assert DEFAULT_CONFIG.default_timezone == "UTC"

    def test_from_env(self):
        """CLAUSEGRAM_* variables override defaults."""
        config = ClausegramConfig.from_env({
            "CLAUSEGRAM_ULIST_BULLET": "* ",
            "CLAUSEGRAM_DEFAULT_TIMEZONE": "Europe/Paris",
            "UNRELATED": "x",
        })
        assert config.ulist_bullet == "* "
        assert config.default_timezone == "Europe/Paris"
        assert config.olist_marker == "1. "

    def test_with_overrides(self):
        """Overrides copy the configuration."""
        config = DEFAULT_CONFIG.with_overrides(join_separator=" and ")
        assert config.join_separator == " and "
        assert DEFAULT_CONFIG.join_separator == ", "

    def test_frozen(self):
        with pytest.raises(Exception):
            DEFAULT_CONFIG.ulist_bullet = "* "
