"""
Package Validator — Checks a template package before it is loaded.

Works on the flat file map of a package (path -> text), so directory and
archive sources are checked identically.

Checks:
- package.json is present
- at least one sample, every sample locale an IETF language tag
- every logic file is written in the declared runtime
"""

import re
from dataclasses import dataclass, field

from clausegram.templates.logic import language_for_file
from clausegram.templates.models import DEFAULT_LOCALE, IETF_LOCALE


PACKAGE_FILE = "package.json"
README_FILE = "README.md"
REQUEST_FILE = "request.json"
RESPONSE_FILE = "response.json"
MODEL_DIR = "model/"
LOGIC_DIR = "logic/"

SAMPLE_FILE = re.compile(r"^sample(?:_(?P<locale>[^/]+))?\.txt$")


def sample_locale(path: str) -> str | None:
    """Locale of a sample file path, "default" for sample.txt, None for other files."""
    match = SAMPLE_FILE.match(path)
    if match is None:
        return None
    return match.group("locale") or DEFAULT_LOCALE


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class PackageValidationError:
    """Single validation error."""
    rule: str
    file_name: str | None
    message: str


@dataclass
class PackageValidationResult:
    """Result of package validation."""
    valid: bool
    errors: list[PackageValidationError] = field(default_factory=list)
    warnings: list[PackageValidationError] = field(default_factory=list)


# =============================================================================
# PACKAGE VALIDATOR
# =============================================================================

class PackageValidator:
    """Validates the files of a template package."""

    def validate(self, files: dict[str, str], runtime: str | None = None) -> PackageValidationResult:
        errors: list[PackageValidationError] = []
        warnings: list[PackageValidationError] = []

        if PACKAGE_FILE not in files:
            errors.append(PackageValidationError("package", None, "Failed to find package.json"))

        errors.extend(self._check_samples(files))
        errors.extend(self._check_logic(files, runtime))

        if REQUEST_FILE not in files:
            warnings.append(PackageValidationError("request", REQUEST_FILE, "Template has no request.json"))

        return PackageValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)

    def _check_samples(self, files: dict[str, str]) -> list[PackageValidationError]:
        errors = []
        samples = [path for path in sorted(files) if sample_locale(path) is not None]
        if not samples:
            return [PackageValidationError(
                "samples", None, "Failed to find any sample files. e.g. sample.txt, sample_fr.txt"
            )]
        for path in samples:
            locale = sample_locale(path)
            if locale != DEFAULT_LOCALE and not IETF_LOCALE.match(locale):
                errors.append(PackageValidationError(
                    "samples",
                    path,
                    f"Invalid locale used in sample file, {path}. "
                    f"Locales should be IETF language tags, e.g. sample_fr.txt",
                ))
        return errors

    def _check_logic(self, files: dict[str, str], runtime: str | None) -> list[PackageValidationError]:
        errors = []
        for path in sorted(files):
            if not path.startswith(LOGIC_DIR):
                continue
            language = language_for_file(path)
            if language is None:
                continue
            if runtime is None:
                errors.append(PackageValidationError(
                    "logic", path, f"Template declares no runtime but contains logic file {path}"
                ))
            elif language.value != runtime:
                errors.append(PackageValidationError(
                    "logic",
                    path,
                    f"Template runtime is '{runtime}' but logic file {path} is written in '{language.value}'",
                ))
        return errors


def create_package_validator() -> PackageValidator:
    """Factory function for PackageValidator."""
    return PackageValidator()
