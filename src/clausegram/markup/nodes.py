"""
Template AST — Nodes of an annotated template.

One dataclass per node kind. Every node records the 1-based line and
column of its field-name token (or of its text, for chunks) so compile
errors can point at the template source. Block nodes own their nested
TemplateAst outright.
"""

from dataclasses import dataclass, field
from typing import ClassVar, Union

from clausegram.vocabulary import NodeKind


@dataclass
class StaticChunk:
    text: str
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.STATIC_CHUNK


@dataclass
class LastChunk:
    """Trailing text of a template or block."""
    text: str
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.LAST_CHUNK


@dataclass
class Binding:
    field: str
    format_spec: str | None = None
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.BINDING


@dataclass
class FormattedBinding:
    field: str
    format: str
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.FORMATTED_BINDING

    @property
    def format_spec(self) -> str:
        return self.format


@dataclass
class IfBinding:
    """Text present exactly when a boolean field is true."""
    field: str
    when_true: str
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.IF_BINDING


@dataclass
class IfElseBinding:
    field: str
    when_true: str
    when_false: str
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.IF_ELSE_BINDING


@dataclass
class ClauseBinding:
    field: str
    nested: "TemplateAst"
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.CLAUSE_BINDING


@dataclass
class WithBinding:
    field: str
    nested: "TemplateAst"
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.WITH_BINDING


@dataclass
class UListBinding:
    field: str
    nested: "TemplateAst"
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.ULIST_BINDING


@dataclass
class OListBinding:
    field: str
    nested: "TemplateAst"
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.OLIST_BINDING


@dataclass
class JoinBinding:
    field: str
    separator: str
    nested: "TemplateAst"
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.JOIN_BINDING


@dataclass
class Expr:
    """Embedded free-form expression, evaluated by the logic engine."""
    expression: str
    line: int = 1
    column: int = 1
    kind: ClassVar[NodeKind] = NodeKind.EXPR


TemplateNode = Union[
    StaticChunk,
    LastChunk,
    Binding,
    FormattedBinding,
    IfBinding,
    IfElseBinding,
    ClauseBinding,
    WithBinding,
    UListBinding,
    OListBinding,
    JoinBinding,
    Expr,
]

TEXT_NODES = (StaticChunk, LastChunk)
BLOCK_NODES = (ClauseBinding, WithBinding, UListBinding, OListBinding, JoinBinding)


@dataclass
class TemplateAst:
    """Ordered nodes of one nesting level of a template."""
    nodes: list[TemplateNode] = field(default_factory=list)

    def __iter__(self):
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def with_prefix(self, prefix: str) -> "TemplateAst":
        """
        Copy whose first text chunk starts with `prefix`.

        A chunk holding only the prefix is inserted when the level does
        not start with text.
        """
        if not prefix:
            return TemplateAst(list(self.nodes))
        nodes = list(self.nodes)
        if nodes and isinstance(nodes[0], TEXT_NODES):
            first = nodes[0]
            nodes[0] = type(first)(prefix + first.text, first.line, first.column)
        else:
            line, column = (nodes[0].line, nodes[0].column) if nodes else (1, 1)
            nodes.insert(0, StaticChunk(prefix, line, column))
        return TemplateAst(nodes)


def list_prefixes(node: UListBinding | OListBinding | JoinBinding, config) -> tuple[str, str]:
    """
    Leading text of the first item and of every later item of a list block.

    Bullets and markers start each later item on a new line; a join puts
    its separator between items.
    """
    if isinstance(node, UListBinding):
        return config.ulist_bullet, "\n" + config.ulist_bullet
    if isinstance(node, OListBinding):
        return config.olist_marker, "\n" + config.olist_marker
    return "", node.separator
