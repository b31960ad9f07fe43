"""
Schemas — Model files, resolved type declarations and system models.
"""

from clausegram.schemas.model import (
    PropertyDeclaration,
    TypeDeclaration,
    ModelFile,
    Property,
    ClassDeclaration,
)

from clausegram.schemas.system import (
    SYSTEM_MODELS,
    TEMPLATE_NAMESPACE,
    MONEY_NAMESPACE,
    TIME_NAMESPACE,
    CLAUSE_TYPE,
    CONTRACT_TYPE,
    PARTY_TYPE,
    MONETARY_AMOUNT_TYPE,
    DURATION_TYPE,
    TEMPLATE_BASE_TYPES,
    is_system_namespace,
)

from clausegram.schemas.manager import (
    ModelManager,
    create_model_manager,
)

__all__ = [
    # Declarations
    "PropertyDeclaration",
    "TypeDeclaration",
    "ModelFile",
    "Property",
    "ClassDeclaration",
    # System models
    "SYSTEM_MODELS",
    "TEMPLATE_NAMESPACE",
    "MONEY_NAMESPACE",
    "TIME_NAMESPACE",
    "CLAUSE_TYPE",
    "CONTRACT_TYPE",
    "PARTY_TYPE",
    "MONETARY_AMOUNT_TYPE",
    "DURATION_TYPE",
    "TEMPLATE_BASE_TYPES",
    "is_system_namespace",
    # Manager
    "ModelManager",
    "create_model_manager",
]
