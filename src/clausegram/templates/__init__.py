"""
Templates — Template packages and their instances.

Loading from directories and archives, deterministic archive export,
identity hashing, and the Clause/Contract instances that parse and draft.
"""

from clausegram.templates.models import (
    DEFAULT_LOCALE,
    PackageSettings,
    PackageInfo,
    TemplateMetadata,
    DraftOptions,
)

from clausegram.templates.logic import (
    Script,
    language_for_file,
    load_scripts,
)

from clausegram.templates.validator import (
    PackageValidationError,
    PackageValidationResult,
    PackageValidator,
    sample_locale,
    create_package_validator,
)

from clausegram.templates.identity import (
    canonical_json,
    compute_hash,
)

from clausegram.templates.archive import (
    read_archive,
    write_archive,
)

from clausegram.templates.template import Template

from clausegram.templates.instance import (
    TemplateInstance,
    Clause,
    Contract,
)

__all__ = [
    # Metadata
    "DEFAULT_LOCALE",
    "PackageSettings",
    "PackageInfo",
    "TemplateMetadata",
    "DraftOptions",
    # Logic
    "Script",
    "language_for_file",
    "load_scripts",
    # Validation
    "PackageValidationError",
    "PackageValidationResult",
    "PackageValidator",
    "sample_locale",
    "create_package_validator",
    # Identity
    "canonical_json",
    "compute_hash",
    # Archives
    "read_archive",
    "write_archive",
    # Templates
    "Template",
    "TemplateInstance",
    "Clause",
    "Contract",
]
