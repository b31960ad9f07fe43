"""
Template Models — Metadata of a template package and drafting options.

package.json:

    {
        "name": "latedeliveryandpenalty",
        "version": "0.1.0",
        "description": "Late delivery and penalty clause",
        "keywords": ["delivery"],
        "clausegram": {"template": "clause", "runtime": "ergo"}
    }
"""

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator

from clausegram.vocabulary import DraftFormat, LogicLanguage, TemplateKind


DEFAULT_LOCALE = "default"

# IETF BCP 47 language tag: language, optional script, region and variants
IETF_LOCALE = re.compile(r"^[a-zA-Z]{2,3}(?:-[a-zA-Z]{4})?(?:-(?:[a-zA-Z]{2}|[0-9]{3}))?(?:-[a-zA-Z0-9]{5,8})*$")


class PackageSettings(BaseModel):
    """The clausegram section of package.json."""
    template: TemplateKind = Field(
        default=TemplateKind.CONTRACT,
        description="Whether the template models a clause or a whole contract",
    )
    runtime: LogicLanguage | None = Field(
        default=None,
        description="Language of the template's logic, if any",
    )
    logic_omitted: bool = Field(
        default=False,
        description="Logic was left out when the package was exported",
    )


class PackageInfo(BaseModel):
    """
    The parts of package.json a template depends on.

    Unknown package.json fields are ignored.
    """
    name: str = Field(..., description="Template name")
    version: str = Field(..., description="Template version")
    description: str = Field(default="", description="One-line description")
    keywords: list[str] = Field(default_factory=list)
    clausegram: PackageSettings = Field(default_factory=PackageSettings)

    @field_validator("name", "version")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v


class TemplateMetadata(BaseModel):
    """
    Everything about a template except its models, grammar and logic.

    Samples are keyed by locale; the sample.txt file is the "default" locale.
    """
    package: PackageInfo
    readme: str | None = None
    samples: dict[str, str]
    request: dict[str, Any] | None = None
    response: dict[str, Any] | None = None

    @field_validator("samples")
    @classmethod
    def default_sample_required(cls, v: dict[str, str]) -> dict[str, str]:
        if DEFAULT_LOCALE not in v:
            raise ValueError("sample.txt is required")
        for locale in v:
            if locale != DEFAULT_LOCALE and not IETF_LOCALE.match(locale):
                raise ValueError(f"Invalid locale {locale}. Locales should be IETF language tags")
        return v

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def version(self) -> str:
        return self.package.version

    @property
    def identifier(self) -> str:
        return f"{self.package.name}@{self.package.version}"

    @property
    def template_kind(self) -> TemplateKind:
        return self.package.clausegram.template

    @property
    def runtime(self) -> LogicLanguage | None:
        return self.package.clausegram.runtime

    def get_sample(self, locale: str = DEFAULT_LOCALE) -> str | None:
        return self.samples.get(locale)


class DraftOptions(BaseModel):
    """Options for drafting text from data."""
    format: str = Field(
        default=DraftFormat.MARKDOWN.value,
        description="markdown, markup_parsed, html or slate",
    )
    unquote_variables: bool = Field(
        default=False,
        description="Print string values without their quotes",
    )
