"""
Template Identity — Content hash of a template.

The hash is SHA-256 over the canonical JSON of the template's content:
models, templatized grammar, logic (or the fact it was omitted) and
metadata. Canonical JSON sorts keys and uses compact separators, so the
layout of the source JSON files does not matter while every value does.
"""

import hashlib
import json
from typing import Any

from clausegram.templates.logic import Script
from clausegram.templates.models import TemplateMetadata


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_components(
    models: list[dict[str, Any]],
    grammar: str | None,
    scripts: list[Script] | None,
    metadata: TemplateMetadata,
) -> dict[str, Any]:
    """The structure that compute_hash digests."""
    return {
        "models": sorted(models, key=canonical_json),
        "grammar": grammar,
        "logic": [s.to_dict() for s in sorted(scripts, key=lambda s: s.identifier)] if scripts is not None else None,
        "logicOmitted": scripts is None,
        "metadata": {
            "name": metadata.package.name,
            "version": metadata.package.version,
            "description": metadata.package.description,
            "keywords": metadata.package.keywords,
            "template": metadata.package.clausegram.template.value,
            "runtime": metadata.runtime.value if metadata.runtime is not None else None,
            "readme": metadata.readme,
            "samples": metadata.samples,
            "request": metadata.request,
            "response": metadata.response,
        },
    }


def compute_hash(
    models: list[dict[str, Any]],
    grammar: str | None,
    scripts: list[Script] | None,
    metadata: TemplateMetadata,
) -> str:
    """
    Hex SHA-256 of a template's content.

    `scripts` is None when logic was omitted, which hashes differently
    from a template that has no logic files.
    """
    components = hash_components(models, grammar, scripts, metadata)
    return hashlib.sha256(canonical_json(components).encode("utf-8")).hexdigest()
