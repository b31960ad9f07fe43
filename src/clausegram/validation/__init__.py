"""
Validation — Instance data checked against schema types.
"""

from clausegram.validation.data_validator import (
    DataValidator,
    ValidationResult,
    create_data_validator,
)

__all__ = [
    "DataValidator",
    "ValidationResult",
    "create_data_validator",
]
