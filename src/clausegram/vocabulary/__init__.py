"""
Vocabulary — shared enums for the template AST, schemas, grammars and drafting.
"""

from clausegram.vocabulary.enums import (
    NodeKind,
    BINDING_KINDS,
    LIST_KINDS,
    PrimitiveType,
    DeclarationKind,
    SymbolKind,
    Cardinality,
    RuleOrigin,
    RegistryState,
    TemplateKind,
    LogicLanguage,
    DraftFormat,
    MarkupKind,
)

__all__ = [
    # Template AST
    "NodeKind",
    "BINDING_KINDS",
    "LIST_KINDS",
    # Schema
    "PrimitiveType",
    "DeclarationKind",
    # Grammar
    "SymbolKind",
    "Cardinality",
    "RuleOrigin",
    "RegistryState",
    # Templates
    "TemplateKind",
    "LogicLanguage",
    "DraftFormat",
    "MarkupKind",
]
