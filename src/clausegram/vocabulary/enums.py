"""
Vocabulary enums — the shared language of clausegram.

All enumerated types referenced by the template AST, the schema layer,
the grammar rule table and the drafting pipeline.
"""

from enum import Enum


# =============================================================================
# TEMPLATE AST
# =============================================================================

class NodeKind(str, Enum):
    """
    Tag of an annotated-template node.

    Every node produced by the template markup parser is exactly one of these.
    """
    STATIC_CHUNK = "StaticChunk"
    LAST_CHUNK = "LastChunk"
    BINDING = "Binding"
    FORMATTED_BINDING = "FormattedBinding"
    IF_BINDING = "IfBinding"
    IF_ELSE_BINDING = "IfElseBinding"
    CLAUSE_BINDING = "ClauseBinding"
    WITH_BINDING = "WithBinding"
    ULIST_BINDING = "UListBinding"
    OLIST_BINDING = "OListBinding"
    JOIN_BINDING = "JoinBinding"
    EXPR = "Expr"


# Nodes that reference a schema property through their field name
BINDING_KINDS = frozenset({
    NodeKind.BINDING,
    NodeKind.FORMATTED_BINDING,
    NodeKind.IF_BINDING,
    NodeKind.IF_ELSE_BINDING,
    NodeKind.CLAUSE_BINDING,
    NodeKind.WITH_BINDING,
    NodeKind.ULIST_BINDING,
    NodeKind.OLIST_BINDING,
    NodeKind.JOIN_BINDING,
})

LIST_KINDS = frozenset({
    NodeKind.ULIST_BINDING,
    NodeKind.OLIST_BINDING,
    NodeKind.JOIN_BINDING,
})


# =============================================================================
# SCHEMA
# =============================================================================

class PrimitiveType(str, Enum):
    """Primitive property types understood by the grammar compiler."""
    STRING = "String"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    LONG = "Long"
    DOUBLE = "Double"
    DATETIME = "DateTime"

    @classmethod
    def names(cls) -> frozenset[str]:
        return frozenset(p.value for p in cls)


class DeclarationKind(str, Enum):
    """Kinds of type declarations in a model file."""
    CONCEPT = "concept"
    ASSET = "asset"
    PARTICIPANT = "participant"
    TRANSACTION = "transaction"
    EVENT = "event"
    ENUM = "enum"


# =============================================================================
# GRAMMAR
# =============================================================================

class SymbolKind(str, Enum):
    """What a grammar symbol matches."""
    RULE = "rule"          # Reference to another rule
    LITERAL = "literal"    # Exact text
    PATTERN = "pattern"    # Regular expression terminal


class Cardinality(str, Enum):
    """Repetition suffix applied to a grammar symbol."""
    ONE = ""
    OPTIONAL = "?"
    MANY = "*"


class RuleOrigin(str, Enum):
    """Section of the combined grammar a rule belongs to."""
    TEMPLATE = "template"
    MODEL = "model"
    FORMAT = "format"
    BASE = "base"


class RegistryState(str, Enum):
    """Lifecycle of a compiled grammar registry."""
    UNINITIALIZED = "UNINITIALIZED"
    BUILT = "BUILT"


# =============================================================================
# TEMPLATES & DRAFTING
# =============================================================================

class TemplateKind(str, Enum):
    """Whether a template describes a whole contract or a single clause."""
    CONTRACT = "contract"
    CLAUSE = "clause"


class LogicLanguage(str, Enum):
    """Languages a template's logic may be written in."""
    ERGO = "ergo"
    JAVASCRIPT = "javascript"


class DraftFormat(str, Enum):
    """Output renderings supported by draft()."""
    MARKDOWN = "markdown"
    MARKUP_PARSED = "markup_parsed"
    HTML = "html"
    SLATE = "slate"


class MarkupKind(str, Enum):
    """Node kinds of the markup document tree."""
    DOCUMENT = "document"
    PARAGRAPH = "paragraph"
    TEXT = "text"
    VARIABLE = "variable"
    CONDITIONAL = "conditional"
    CLAUSE = "clause"
    WITH = "with"
    LIST = "list"
    LIST_ITEM = "list_item"
    FORMULA = "formula"
