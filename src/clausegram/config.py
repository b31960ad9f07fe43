"""
Configuration — Defaults shared by the compiler, the drafting pipeline and loaders.

Values fall back to CLAUSEGRAM_* environment variables when built with from_env().
"""

import os
from dataclasses import dataclass, replace


ENV_PREFIX = "CLAUSEGRAM_"


@dataclass(frozen=True)
class ClausegramConfig:
    """Configuration for grammar building, parsing and drafting."""
    default_datetime_format: str = "MM/DD/YYYY"
    ulist_bullet: str = "- "
    olist_marker: str = "1. "
    join_separator: str = ", "
    grammar_file: str = "text/grammar.tem.md"
    default_timezone: str = "UTC"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ClausegramConfig":
        """Build a configuration, overriding defaults from CLAUSEGRAM_* variables."""
        env = os.environ if environ is None else environ
        overrides = {}
        for name in cls.__dataclass_fields__:
            key = ENV_PREFIX + name.upper()
            if key in env:
                overrides[name] = env[key]
        return cls(**overrides)

    def with_overrides(self, **kwargs) -> "ClausegramConfig":
        """Copy of this configuration with some fields replaced."""
        return replace(self, **kwargs)


DEFAULT_CONFIG = ClausegramConfig()
