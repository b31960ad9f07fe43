"""
Data Validator — Checks instance data against schema types.

Types are compiled to JSON Schema by the ModelManager and checked with
jsonschema. Validators are cached per type.
"""

from dataclasses import dataclass
from typing import Any

from jsonschema import Draft202012Validator

from clausegram.errors import ValidationError
from clausegram.schemas import ModelManager


@dataclass
class ValidationResult:
    """Result of a validation check."""
    valid: bool
    errors: list[str]

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(valid=True, errors=[])

    @classmethod
    def failure(cls, errors: list[str]) -> "ValidationResult":
        return cls(valid=False, errors=errors)

    def __bool__(self) -> bool:
        return self.valid


class DataValidator:
    """Validates instance data for the types of one ModelManager."""

    def __init__(self, model_manager: ModelManager):
        self.model_manager = model_manager
        self._validators: dict[str, Draft202012Validator] = {}

    def _get_validator(self, fully_qualified_name: str) -> Draft202012Validator:
        if fully_qualified_name not in self._validators:
            schema = self.model_manager.to_json_schema(fully_qualified_name)
            Draft202012Validator.check_schema(schema)
            self._validators[fully_qualified_name] = Draft202012Validator(schema)
        return self._validators[fully_qualified_name]

    def validate(self, data: Any, fully_qualified_name: str | None = None) -> ValidationResult:
        """
        Validate data against a type, by default the type named by its $class.
        """
        if fully_qualified_name is None:
            if not isinstance(data, dict) or "$class" not in data:
                return ValidationResult.failure(["root: data does not declare a $class"])
            fully_qualified_name = data["$class"]
            if not self.model_manager.has_type(fully_qualified_name):
                return ValidationResult.failure([f"root: $class {fully_qualified_name} is not declared"])

        errors = []
        validator = self._get_validator(fully_qualified_name)
        for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]):
            path = ".".join(str(p) for p in error.path) if error.path else "root"
            errors.append(f"{path}: {error.message}")

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success()

    def check(self, data: Any, fully_qualified_name: str | None = None) -> None:
        """
        Validate and raise on failure.

        Raises:
            ValidationError: with the offending data and every violation
        """
        result = self.validate(data, fully_qualified_name)
        if not result:
            target = fully_qualified_name or (data.get("$class") if isinstance(data, dict) else None)
            raise ValidationError(
                f"Instance does not conform to {target}: {result.errors[0]}",
                data=data,
                errors=result.errors,
            )


def create_data_validator(model_manager: ModelManager) -> DataValidator:
    """Factory function for DataValidator."""
    return DataValidator(model_manager)
