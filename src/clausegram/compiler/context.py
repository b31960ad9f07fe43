"""
Compilation Context — State carried through one template compilation.

A context names the nesting level being compiled: its rule-name prefix
and schema type. Nested levels share the rule set and the identifier
factory of the level that encloses them.
"""

from dataclasses import dataclass, field, replace
from typing import Callable
from uuid import uuid4

from clausegram.grammar.rules import GrammarRuleSet
from clausegram.schemas import ClassDeclaration


TOP_PREFIX = "rule"


def random_identifier() -> str:
    return str(uuid4())


@dataclass
class CompilationContext:
    """
    Where the compiler is inside a template.

    Attributes:
        schema_type: Type the current level's container rule builds
        prefix: Rule-name prefix of the current level; the container rule is named by it
        rule_set: Rules emitted so far, shared by every level
        file_name: Template file reported in errors
        identifier_factory: Source of the token injected for identifier properties
    """
    schema_type: ClassDeclaration
    prefix: str = TOP_PREFIX
    rule_set: GrammarRuleSet = field(default_factory=GrammarRuleSet)
    file_name: str | None = None
    identifier_factory: Callable[[], str] = random_identifier

    def nested(self, prefix: str, schema_type: ClassDeclaration) -> "CompilationContext":
        """Context for a nested block, sharing this context's rule set."""
        return replace(self, prefix=prefix, schema_type=schema_type)

    def rule_name(self, index: int) -> str:
        return f"{self.prefix}{index}"


def create_context(
    schema_type: ClassDeclaration,
    file_name: str | None = None,
    identifier_factory: Callable[[], str] | None = None,
) -> CompilationContext:
    """Factory for the top-level context of a compilation."""
    return CompilationContext(
        schema_type=schema_type,
        file_name=file_name,
        identifier_factory=identifier_factory or random_identifier,
    )
