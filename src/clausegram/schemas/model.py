"""
Schema Models — Declarations read from model files.

A model file declares one namespace of types. These pydantic models are
the raw, unresolved form; ModelManager resolves type references and
inheritance into ClassDeclaration views.
"""

import re
from dataclasses import dataclass, field

from pydantic import BaseModel, Field, field_validator, model_validator

from clausegram.vocabulary import DeclarationKind, PrimitiveType


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
NAMESPACE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class PropertyDeclaration(BaseModel):
    """Single property of a declared type."""
    name: str = Field(..., description="Property name, unique within its type")
    type: str = Field(..., description="Primitive name, short type name or fully-qualified name")
    array: bool = False
    optional: bool = False
    identifier: bool = Field(default=False, description="Property identifies instances of its type")
    relationship: bool = Field(default=False, description="Reference to another entity by identifier")

    @field_validator("name")
    @classmethod
    def name_is_identifier(cls, v: str) -> str:
        if not IDENTIFIER_PATTERN.match(v):
            raise ValueError(f"Invalid property name '{v}'")
        return v

    @field_validator("type")
    @classmethod
    def type_not_empty(cls, v: str) -> str:
        if not NAMESPACE_PATTERN.match(v):
            raise ValueError(f"Invalid type name '{v}'")
        return v


class TypeDeclaration(BaseModel):
    """A concept, asset, participant, transaction, event or enum."""
    kind: DeclarationKind
    name: str
    extends: str | None = None
    abstract: bool = False
    properties: list[PropertyDeclaration] = Field(default_factory=list)
    values: list[str] = Field(default_factory=list, description="Enum values")

    @field_validator("name")
    @classmethod
    def name_is_identifier(cls, v: str) -> str:
        if not IDENTIFIER_PATTERN.match(v):
            raise ValueError(f"Invalid type name '{v}'")
        if v in PrimitiveType.names():
            raise ValueError(f"Type name '{v}' shadows a primitive type")
        return v

    @model_validator(mode="after")
    def check_shape(self) -> "TypeDeclaration":
        if self.kind == DeclarationKind.ENUM:
            if self.properties:
                raise ValueError(f"Enum {self.name} cannot declare properties")
            if not self.values:
                raise ValueError(f"Enum {self.name} must declare at least one value")
            if len(set(self.values)) != len(self.values):
                raise ValueError(f"Enum {self.name} declares duplicate values")
        elif self.values:
            raise ValueError(f"Only enums can declare values, {self.name} is a {self.kind.value}")

        names = [p.name for p in self.properties]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Type {self.name} declares duplicate properties: {sorted(duplicates)}")
        return self


class ModelFile(BaseModel):
    """Contents of one model file."""
    namespace: str
    imports: list[str] = Field(default_factory=list)
    declarations: list[TypeDeclaration] = Field(default_factory=list)

    @field_validator("namespace")
    @classmethod
    def namespace_is_dotted(cls, v: str) -> str:
        if not NAMESPACE_PATTERN.match(v):
            raise ValueError(f"Invalid namespace '{v}'")
        return v


# =============================================================================
# RESOLVED VIEWS
# =============================================================================

@dataclass(frozen=True)
class Property:
    """A property with its type resolved to a fully-qualified name."""
    name: str
    type_name: str
    fully_qualified_type_name: str
    is_array: bool = False
    is_optional: bool = False
    is_identifier: bool = False
    is_relationship: bool = False

    @property
    def is_primitive(self) -> bool:
        return self.fully_qualified_type_name in PrimitiveType.names()


@dataclass
class ClassDeclaration:
    """
    A type declaration with inheritance and type references resolved.

    `properties` includes inherited properties, supertype properties first.
    """
    fully_qualified_name: str
    namespace: str
    name: str
    kind: DeclarationKind
    abstract: bool = False
    super_type: str | None = None
    properties: list[Property] = field(default_factory=list)
    values: list[str] = field(default_factory=list)

    @property
    def is_enum(self) -> bool:
        return self.kind == DeclarationKind.ENUM

    @property
    def identifier_field_name(self) -> str | None:
        for prop in self.properties:
            if prop.is_identifier:
                return prop.name
        return None

    def get_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def get_property_names(self) -> list[str]:
        return [p.name for p in self.properties]
