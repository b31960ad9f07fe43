"""
System Models — Types every template can rely on.

Template models extend Clause or Contract; MonetaryAmount and Duration
are the common value types of contract templates.
"""

from clausegram.vocabulary import TemplateKind


TEMPLATE_NAMESPACE = "org.clausegram.template"
MONEY_NAMESPACE = "org.clausegram.money"
TIME_NAMESPACE = "org.clausegram.time"

CLAUSE_TYPE = f"{TEMPLATE_NAMESPACE}.Clause"
CONTRACT_TYPE = f"{TEMPLATE_NAMESPACE}.Contract"
PARTY_TYPE = f"{TEMPLATE_NAMESPACE}.Party"
MONETARY_AMOUNT_TYPE = f"{MONEY_NAMESPACE}.MonetaryAmount"
DURATION_TYPE = f"{TIME_NAMESPACE}.Duration"

TEMPLATE_BASE_TYPES: dict[TemplateKind, str] = {
    TemplateKind.CLAUSE: CLAUSE_TYPE,
    TemplateKind.CONTRACT: CONTRACT_TYPE,
}


SYSTEM_MODELS: list[dict] = [
    {
        "namespace": TEMPLATE_NAMESPACE,
        "declarations": [
            {
                "kind": "asset",
                "name": "Clause",
                "abstract": True,
                "properties": [
                    {"name": "clauseId", "type": "String", "identifier": True},
                ],
            },
            {
                "kind": "asset",
                "name": "Contract",
                "abstract": True,
                "properties": [
                    {"name": "contractId", "type": "String", "identifier": True},
                ],
            },
            {
                "kind": "participant",
                "name": "Party",
                "properties": [
                    {"name": "partyId", "type": "String", "identifier": True},
                ],
            },
        ],
    },
    {
        "namespace": MONEY_NAMESPACE,
        "declarations": [
            {
                "kind": "concept",
                "name": "MonetaryAmount",
                "properties": [
                    {"name": "doubleValue", "type": "Double"},
                    {"name": "currencyCode", "type": "String"},
                ],
            },
        ],
    },
    {
        "namespace": TIME_NAMESPACE,
        "declarations": [
            {
                "kind": "enum",
                "name": "TemporalUnit",
                "values": ["seconds", "minutes", "hours", "days", "weeks"],
            },
            {
                "kind": "concept",
                "name": "Duration",
                "properties": [
                    {"name": "amount", "type": "Long"},
                    {"name": "unit", "type": "TemporalUnit"},
                ],
            },
        ],
    },
]


def is_system_namespace(namespace: str) -> bool:
    return namespace in {TEMPLATE_NAMESPACE, MONEY_NAMESPACE, TIME_NAMESPACE}
