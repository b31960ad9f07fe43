"""
Markup Document — The tree exchanged between text and data.

Parsing turns text into a document of paragraphs; drafting turns data
and a template into a document of text, variable, conditional, clause,
list and formula nodes. Both render back to text the same way.
"""

from dataclasses import dataclass, field
from typing import Any

from clausegram.vocabulary import MarkupKind


@dataclass
class MarkupNode:
    """
    One node of a markup document.

    Attributes:
        kind: Node kind
        text: Rendered text of a leaf node
        name: Schema property a variable, conditional, clause or list binds
        value: Data value behind a variable or conditional
        children: Child nodes of containers
        attrs: Extra rendering hints, e.g. a variable's format
    """
    kind: MarkupKind
    text: str | None = None
    name: str | None = None
    value: Any = None
    children: list["MarkupNode"] = field(default_factory=list)
    attrs: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def document(cls, children: list["MarkupNode"] | None = None) -> "MarkupNode":
        return cls(MarkupKind.DOCUMENT, children=children or [])

    @classmethod
    def text_node(cls, text: str) -> "MarkupNode":
        return cls(MarkupKind.TEXT, text=text)

    @property
    def is_leaf(self) -> bool:
        return self.kind in (MarkupKind.TEXT, MarkupKind.VARIABLE, MarkupKind.CONDITIONAL, MarkupKind.FORMULA)

    def plain_text(self) -> str:
        """Concatenated text of this node and its descendants."""
        if self.is_leaf:
            return self.text or ""
        if self.kind == MarkupKind.DOCUMENT and all(c.kind == MarkupKind.PARAGRAPH for c in self.children):
            return "\n\n".join(c.plain_text() for c in self.children)
        return "".join(c.plain_text() for c in self.children)

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind.value}
        if self.text is not None:
            result["text"] = self.text
        if self.name is not None:
            result["name"] = self.name
        if self.value is not None:
            result["value"] = self.value
        if self.attrs:
            result["attrs"] = dict(self.attrs)
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result
