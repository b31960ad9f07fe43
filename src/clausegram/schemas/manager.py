"""
Model Manager — Resolves model files into fully-qualified type declarations.

The manager is the only place that knows how short type names map to
fully-qualified names. Everything downstream (the grammar visitor, the
compiler, data validation) works with ClassDeclaration views.
"""

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from clausegram.errors import ModelError
from clausegram.observability import get_logger
from clausegram.schemas.model import (
    ClassDeclaration,
    ModelFile,
    Property,
    TypeDeclaration,
)
from clausegram.schemas.system import (
    SYSTEM_MODELS,
    TEMPLATE_BASE_TYPES,
    is_system_namespace,
)
from clausegram.vocabulary import PrimitiveType, TemplateKind


logger = get_logger("schemas")

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"

PRIMITIVE_JSON_SCHEMAS: dict[str, dict[str, Any]] = {
    PrimitiveType.STRING.value: {"type": "string"},
    PrimitiveType.BOOLEAN.value: {"type": "boolean"},
    PrimitiveType.INTEGER.value: {"type": "integer"},
    PrimitiveType.LONG.value: {"type": "integer"},
    PrimitiveType.DOUBLE.value: {"type": "number"},
    PrimitiveType.DATETIME.value: {"type": "string", "format": "date-time"},
}


class ModelManager:
    """
    Registry of model files and their resolved declarations.

    Model files may be added in any order; type references are resolved
    after every addition so forward references across files work.
    """

    def __init__(self, include_system_models: bool = True):
        self._files: dict[str, ModelFile] = {}
        self._file_names: dict[str, str | None] = {}
        self._types: dict[str, ClassDeclaration] = {}
        if include_system_models:
            for model in SYSTEM_MODELS:
                self._add(ModelFile.model_validate(model), None)
            self._resolve()

    # =========================================================================
    # LOADING
    # =========================================================================

    def add_model_file(
        self,
        model: ModelFile | dict[str, Any] | str,
        file_name: str | None = None,
    ) -> ModelFile:
        """
        Add a model file given as a ModelFile, a dict or JSON text.

        Raises:
            ModelError: malformed file, duplicate namespace or unresolvable types
        """
        if isinstance(model, str):
            try:
                model = json.loads(model)
            except json.JSONDecodeError as e:
                raise ModelError(f"Model file is not valid JSON: {e.msg}", file_name=file_name) from e
        if not isinstance(model, ModelFile):
            try:
                model = ModelFile.model_validate(model)
            except PydanticValidationError as e:
                raise ModelError(f"Invalid model file: {e}", file_name=file_name) from e

        if is_system_namespace(model.namespace) and model.namespace in self._files:
            raise ModelError(
                f"Namespace {model.namespace} is reserved for system models",
                file_name=file_name,
            )

        self._add(model, file_name)
        try:
            self._resolve()
        except ModelError:
            self._remove(model.namespace)
            self._resolve()
            raise
        logger.debug(f"Added model file for namespace {model.namespace}")
        return model

    def add_model_files(self, models: list[ModelFile | dict[str, Any] | str]) -> None:
        for model in models:
            self.add_model_file(model)

    def _add(self, model: ModelFile, file_name: str | None) -> None:
        if model.namespace in self._files:
            raise ModelError(f"Namespace {model.namespace} is already declared", file_name=file_name)
        self._files[model.namespace] = model
        self._file_names[model.namespace] = file_name

    def _remove(self, namespace: str) -> None:
        self._files.pop(namespace, None)
        self._file_names.pop(namespace, None)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def _resolve(self) -> None:
        declared: dict[str, tuple[ModelFile, TypeDeclaration]] = {}
        for namespace, model in self._files.items():
            for decl in model.declarations:
                declared[f"{namespace}.{decl.name}"] = (model, decl)

        types: dict[str, ClassDeclaration] = {}
        for fqn, (model, decl) in declared.items():
            super_type = None
            if decl.extends:
                super_type = self._resolve_name(decl.extends, model, declared, f"supertype of {fqn}")
            own = [
                Property(
                    name=p.name,
                    type_name=p.type,
                    fully_qualified_type_name=self._resolve_name(
                        p.type, model, declared, f"property {fqn}.{p.name}"
                    ),
                    is_array=p.array,
                    is_optional=p.optional,
                    is_identifier=p.identifier,
                    is_relationship=p.relationship,
                )
                for p in decl.properties
            ]
            types[fqn] = ClassDeclaration(
                fully_qualified_name=fqn,
                namespace=model.namespace,
                name=decl.name,
                kind=decl.kind,
                abstract=decl.abstract,
                super_type=super_type,
                properties=own,
                values=list(decl.values),
            )

        own_properties = {fqn: list(decl.properties) for fqn, decl in types.items()}
        for fqn, decl in types.items():
            properties: list[Property] = []
            for ancestor in reversed(self._super_chain(fqn, types)):
                properties.extend(own_properties[ancestor])
            decl.properties = properties

        for fqn, decl in types.items():
            names = decl.get_property_names()
            duplicates = sorted({n for n in names if names.count(n) > 1})
            if duplicates:
                raise ModelError(
                    f"Type {fqn} redeclares inherited properties: {duplicates}",
                    file_name=self._file_names.get(decl.namespace),
                )
            identifiers = [p.name for p in decl.properties if p.is_identifier]
            if len(identifiers) > 1:
                raise ModelError(
                    f"Type {fqn} declares more than one identifier property: {identifiers}",
                    file_name=self._file_names.get(decl.namespace),
                )

        self._types = types

    def _resolve_name(
        self,
        name: str,
        model: ModelFile,
        declared: dict[str, tuple[ModelFile, TypeDeclaration]],
        where: str,
    ) -> str:
        if name in PrimitiveType.names():
            return name
        if "." in name:
            if name in declared:
                return name
        else:
            local = f"{model.namespace}.{name}"
            if local in declared:
                return local
            for imported in model.imports:
                if imported.endswith(f".{name}") and imported in declared:
                    return imported
                if imported.endswith(".*") and f"{imported[:-2]}.{name}" in declared:
                    return f"{imported[:-2]}.{name}"
            system_matches = [
                fqn for fqn in declared
                if is_system_namespace(fqn.rsplit(".", 1)[0]) and fqn.rsplit(".", 1)[1] == name
            ]
            if len(system_matches) == 1:
                return system_matches[0]
        raise ModelError(
            f"Undeclared type {name} in {where}",
            file_name=self._file_names.get(model.namespace),
        )

    def _super_chain(self, fqn: str, types: dict[str, ClassDeclaration]) -> list[str]:
        """Type followed by its ancestors, nearest first."""
        chain = [fqn]
        current = types[fqn].super_type
        while current is not None:
            if current in chain:
                raise ModelError(f"Type {fqn} has a circular inheritance chain: {chain + [current]}")
            chain.append(current)
            current = types[current].super_type
        return chain

    # =========================================================================
    # LOOKUP
    # =========================================================================

    @property
    def model_files(self) -> list[ModelFile]:
        """User model files in insertion order, system models excluded."""
        return [m for ns, m in self._files.items() if not is_system_namespace(ns)]

    def get_model_file(self, namespace: str) -> ModelFile:
        try:
            return self._files[namespace]
        except KeyError:
            raise ModelError(f"Namespace {namespace} is not declared") from None

    def get_type(self, fully_qualified_name: str) -> ClassDeclaration:
        """
        Look up a declaration by fully-qualified name.

        Raises:
            ModelError: no such type
        """
        try:
            return self._types[fully_qualified_name]
        except KeyError:
            raise ModelError(f"Type {fully_qualified_name} is not declared") from None

    def has_type(self, fully_qualified_name: str) -> bool:
        return fully_qualified_name in self._types

    def get_types(self) -> list[ClassDeclaration]:
        return list(self._types.values())

    def is_subtype(self, fully_qualified_name: str, base: str) -> bool:
        return base in self._super_chain(fully_qualified_name, self._types)

    def find_concrete_subtypes(self, base: str) -> list[ClassDeclaration]:
        """Non-abstract types extending `base`, directly or transitively."""
        self.get_type(base)
        return [
            decl for fqn, decl in self._types.items()
            if fqn != base and not decl.abstract and self.is_subtype(fqn, base)
        ]

    def find_template_model(self, kind: TemplateKind) -> ClassDeclaration:
        """
        Find the single concrete type that models a clause or contract.

        Raises:
            ModelError: none or more than one candidate
        """
        base = TEMPLATE_BASE_TYPES[kind]
        candidates = self.find_concrete_subtypes(base)
        if not candidates:
            raise ModelError(f"Failed to find an asset that extends {base}.")
        if len(candidates) > 1:
            names = ", ".join(c.fully_qualified_name for c in candidates)
            raise ModelError(f"Found multiple instances of {base}. The model for the template must contain a single asset that extends {base}. Found: {names}")
        return candidates[0]

    def reachable_types(self, fully_qualified_name: str) -> list[ClassDeclaration]:
        """The type and every non-primitive type its properties reach, in discovery order."""
        seen: list[str] = []
        pending = [fully_qualified_name]
        while pending:
            fqn = pending.pop(0)
            if fqn in seen:
                continue
            seen.append(fqn)
            for prop in self.get_type(fqn).properties:
                if not prop.is_primitive and not prop.is_relationship:
                    pending.append(prop.fully_qualified_type_name)
        return [self._types[fqn] for fqn in seen]

    # =========================================================================
    # JSON SCHEMA
    # =========================================================================

    def to_json_schema(self, fully_qualified_name: str) -> dict[str, Any]:
        """
        JSON Schema (draft 2020-12) describing instances of a type.

        Every reachable type is emitted under $defs keyed by its
        fully-qualified name. Optional properties may be absent or null.
        """
        defs: dict[str, Any] = {}
        self._add_schema_definition(fully_qualified_name, defs)
        return {
            "$schema": JSON_SCHEMA_DIALECT,
            "$ref": f"#/$defs/{fully_qualified_name}",
            "$defs": defs,
        }

    def _add_schema_definition(self, fqn: str, defs: dict[str, Any]) -> None:
        if fqn in defs:
            return
        decl = self.get_type(fqn)
        if decl.is_enum:
            defs[fqn] = {"enum": list(decl.values)}
            return

        defs[fqn] = {}
        properties: dict[str, Any] = {"$class": {"const": fqn}}
        required = ["$class"]
        for prop in decl.properties:
            schema = self._property_schema(prop, defs)
            if prop.is_optional:
                schema = {"anyOf": [schema, {"type": "null"}]}
            else:
                required.append(prop.name)
            properties[prop.name] = schema

        defs[fqn] = {
            "type": "object",
            "properties": properties,
            "required": required,
            "additionalProperties": False,
        }

    def _property_schema(self, prop: Property, defs: dict[str, Any]) -> dict[str, Any]:
        if prop.is_relationship:
            item: dict[str, Any] = {"type": "string"}
        elif prop.is_primitive:
            item = dict(PRIMITIVE_JSON_SCHEMAS[prop.fully_qualified_type_name])
        else:
            self._add_schema_definition(prop.fully_qualified_type_name, defs)
            item = {"$ref": f"#/$defs/{prop.fully_qualified_type_name}"}
        if prop.is_array:
            return {"type": "array", "items": item}
        return item


def create_model_manager(models: list[ModelFile | dict[str, Any] | str] | None = None) -> ModelManager:
    """Factory function for ModelManager with user models preloaded."""
    manager = ModelManager()
    if models:
        manager.add_model_files(models)
    return manager
