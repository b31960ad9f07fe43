"""
Shared fixtures.

Template packages live under tests/data; the scenario model is small
enough to build grammars from inline template text.
"""

from pathlib import Path

import pytest

from clausegram.compiler import create_compiler
from clausegram.schemas import create_model_manager
from clausegram.templates import Template


DATA_DIR = Path(__file__).parent / "data"

SCENARIO_CLAUSE = "org.acme.scenario.ScenarioClause"

SCENARIO_MODEL = {
    "namespace": "org.acme.scenario",
    "declarations": [
        {
            "kind": "concept",
            "name": "Address",
            "properties": [
                {"name": "city", "type": "String"},
                {"name": "zip", "type": "Integer"},
            ],
        },
        {
            "kind": "concept",
            "name": "Tag",
            "properties": [
                {"name": "label", "type": "String"},
            ],
        },
        {
            "kind": "asset",
            "name": "ScenarioClause",
            "extends": "Clause",
            "properties": [
                {"name": "forceMajeure", "type": "Boolean"},
                {"name": "amount", "type": "Integer"},
                {"name": "rate", "type": "Double"},
                {"name": "note", "type": "String", "optional": True},
                {"name": "startDate", "type": "DateTime"},
                {"name": "price", "type": "MonetaryAmount"},
                {"name": "period", "type": "Duration"},
                {"name": "address", "type": "Address"},
                {"name": "tags", "type": "Tag", "array": True},
            ],
        },
    ],
}


def fixed_identifier() -> str:
    return "fixed-id"


@pytest.fixture
def scenario_manager():
    """Model manager holding the scenario model."""
    return create_model_manager([SCENARIO_MODEL])


@pytest.fixture
def scenario_type(scenario_manager):
    return scenario_manager.get_type(SCENARIO_CLAUSE)


@pytest.fixture
def compiler(scenario_manager):
    """Compiler with a deterministic identifier."""
    return create_compiler(scenario_manager, identifier_factory=fixed_identifier)


@pytest.fixture
def late_delivery():
    """Clause template with an ergo runtime."""
    return Template.from_directory(DATA_DIR / "latedeliveryandpenalty", identifier_factory=fixed_identifier)


@pytest.fixture
def supply_agreement():
    """Contract template with a list, a with block and formatted values."""
    return Template.from_directory(DATA_DIR / "supplyagreement", identifier_factory=fixed_identifier)
