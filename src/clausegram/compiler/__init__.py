"""
Compiler — Annotated templates to compiled grammars.

Compiles a template AST against its schema type into a GrammarRuleSet,
and keeps the compiled grammar of a template in a GrammarRegistry.
"""

from clausegram.compiler.context import (
    TOP_PREFIX,
    CompilationContext,
    create_context,
    random_identifier,
)
from clausegram.compiler.compiler import (
    TemplateGrammarCompiler,
    create_compiler,
)
from clausegram.compiler.registry import (
    GrammarRegistry,
    create_registry,
)

__all__ = [
    # Context
    "TOP_PREFIX",
    "CompilationContext",
    "create_context",
    "random_identifier",
    # Compiler
    "TemplateGrammarCompiler",
    "create_compiler",
    # Registry
    "GrammarRegistry",
    "create_registry",
]
