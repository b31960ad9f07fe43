"""
Template — A template package: metadata, models, grammar and logic.

A template is loaded from a directory or an archive. Both sources go
through the same file-map loader, so the same content yields the same
identity hash whichever way it was read.

    template = Template.from_directory("templates/latedeliveryandpenalty")
    clause = Clause(template)
    clause.parse(template.samples["default"])
    text = clause.draft()

The grammar is built on first use from text/grammar.tem.md, or
explicitly with build_grammar() or set_grammar().
"""

import json
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from clausegram.compiler import GrammarRegistry
from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import IllegalStateError, TemplateLoadError
from clausegram.grammar.engine import GrammarParser
from clausegram.grammar.printer import ValuePrinter
from clausegram.markup import DefaultMarkupTransformer, MarkupTransformer, TemplateAst
from clausegram.observability import LogContext, get_logger
from clausegram.schemas import ClassDeclaration, ModelManager
from clausegram.templates.archive import read_archive, write_archive
from clausegram.templates.identity import compute_hash
from clausegram.templates.logic import Script, load_scripts
from clausegram.templates.models import DEFAULT_LOCALE, PackageInfo, TemplateMetadata
from clausegram.templates.validator import (
    LOGIC_DIR,
    MODEL_DIR,
    PACKAGE_FILE,
    README_FILE,
    REQUEST_FILE,
    RESPONSE_FILE,
    PackageValidator,
    sample_locale,
)
from clausegram.validation import DataValidator
from clausegram.vocabulary import LogicLanguage, RegistryState, TemplateKind


logger = get_logger("templates")


def _describe(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    message = first["msg"].removeprefix("Value error, ")
    if first["type"] == "value_error":
        return message
    location = ".".join(str(p) for p in first["loc"])
    return f"{location}: {message}" if location else message


def _load_json(files: dict[str, str], path: str) -> Any:
    try:
        return json.loads(files[path])
    except json.JSONDecodeError as e:
        raise TemplateLoadError(f"Invalid JSON: {e.msg}", file_name=path) from e


def _dump_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False) + "\n"


def _sample_file(locale: str) -> str:
    return "sample.txt" if locale == DEFAULT_LOCALE else f"sample_{locale}.txt"


class Template:
    """
    A loaded template package.

    Not safe for concurrent mutation; the compiled grammar and the cached
    hash belong to this instance alone.
    """

    def __init__(
        self,
        package: PackageInfo | dict[str, Any],
        readme: str | None = None,
        samples: dict[str, str] | None = None,
        request: dict[str, Any] | None = None,
        models: list[tuple[str, dict[str, Any]]] | None = None,
        grammar: str | None = None,
        scripts: list[Script] | None = None,
        response: dict[str, Any] | None = None,
        config: ClausegramConfig = DEFAULT_CONFIG,
        identifier_factory: Callable[[], str] | None = None,
        markup: MarkupTransformer | None = None,
    ):
        try:
            self._metadata = TemplateMetadata(
                package=package,
                readme=readme,
                samples=samples if samples is not None else {},
                request=request,
                response=response,
            )
        except PydanticValidationError as e:
            raise TemplateLoadError(_describe(e), file_name=PACKAGE_FILE) from e

        self.config = config
        self.identifier_factory = identifier_factory
        self.markup = markup or DefaultMarkupTransformer(config)
        self._models = list(models or [])
        self._templatized_grammar = grammar
        self._scripts = scripts if scripts is not None or self._metadata.package.clausegram.logic_omitted else []

        self.model_manager = ModelManager()
        for file_name, model in self._models:
            self.model_manager.add_model_file(model, file_name)
        self.data_validator = DataValidator(self.model_manager)
        self.printer = ValuePrinter(self.model_manager, config)

        self._template_model: ClassDeclaration | None = None
        self._registry: GrammarRegistry | None = None
        self._hash: str | None = None

    # =========================================================================
    # LOADING
    # =========================================================================

    @classmethod
    def from_directory(cls, path: str | Path, config: ClausegramConfig = DEFAULT_CONFIG, **kwargs) -> "Template":
        """
        Load a template package from a directory.

        Raises:
            TemplateLoadError: missing or malformed package files
            ModelError: malformed model files
        """
        root = Path(path)
        if not root.is_dir():
            raise TemplateLoadError(f"Template directory {root} does not exist")
        files = {}
        for file_path in sorted(root.rglob("*")):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(root).as_posix()
            if relative.split("/")[0].startswith(".") or relative.startswith("node_modules/"):
                continue
            try:
                files[relative] = file_path.read_text(encoding="utf-8")
            except UnicodeDecodeError as e:
                raise TemplateLoadError(f"File is not UTF-8 text: {e}", file_name=relative) from e
        logger.debug(f"Loading template from directory {root}: {len(files)} files")
        return cls.from_files(files, config, **kwargs)

    @classmethod
    def from_archive(cls, data: bytes, config: ClausegramConfig = DEFAULT_CONFIG, **kwargs) -> "Template":
        """
        Load a template package from archive bytes.

        Raises:
            TemplateLoadError: not an archive, or missing or malformed package files
        """
        files = read_archive(data)
        logger.debug(f"Loading template from archive: {len(files)} files")
        return cls.from_files(files, config, **kwargs)

    @classmethod
    def from_files(cls, files: dict[str, str], config: ClausegramConfig = DEFAULT_CONFIG, **kwargs) -> "Template":
        """Load a template package from its files (path -> text)."""
        package = None
        if PACKAGE_FILE in files:
            try:
                package = PackageInfo.model_validate(_load_json(files, PACKAGE_FILE))
            except PydanticValidationError as e:
                raise TemplateLoadError(_describe(e), file_name=PACKAGE_FILE) from e

        runtime = package.clausegram.runtime if package is not None else None
        result = PackageValidator().validate(files, runtime.value if runtime is not None else None)
        for warning in result.warnings:
            logger.warning(warning.message)
        if not result.valid:
            first = result.errors[0]
            raise TemplateLoadError(first.message, file_name=first.file_name)

        samples = {}
        for path in sorted(files):
            locale = sample_locale(path)
            if locale is not None:
                samples[locale] = files[path]

        models = [
            (path, _load_json(files, path))
            for path in sorted(files)
            if path.startswith(MODEL_DIR) and path.endswith(".json")
        ]

        scripts = None
        if not package.clausegram.logic_omitted:
            scripts = load_scripts({p: t for p, t in files.items() if p.startswith(LOGIC_DIR)})

        return cls(
            package=package,
            readme=files.get(README_FILE),
            samples=samples,
            request=_load_json(files, REQUEST_FILE) if REQUEST_FILE in files else None,
            response=_load_json(files, RESPONSE_FILE) if RESPONSE_FILE in files else None,
            models=models,
            grammar=files.get(config.grammar_file),
            scripts=scripts,
            config=config,
            **kwargs,
        )

    def to_files(self, include_logic: bool = True, runtime: LogicLanguage | None = None) -> dict[str, str]:
        """The package's files (path -> text) as an archive stores them."""
        settings = self._metadata.package.clausegram.model_copy(update={
            "runtime": runtime if runtime is not None else self.runtime,
            "logic_omitted": not include_logic or self._scripts is None,
        })
        package = self._metadata.package.model_copy(update={"clausegram": settings})

        files = {PACKAGE_FILE: _dump_json(package.model_dump(mode="json"))}
        if self.readme is not None:
            files[README_FILE] = self.readme
        for locale, text in self.samples.items():
            files[_sample_file(locale)] = text
        if self.request is not None:
            files[REQUEST_FILE] = _dump_json(self.request)
        if self._metadata.response is not None:
            files[RESPONSE_FILE] = _dump_json(self._metadata.response)
        for file_name, model in self._models:
            files[file_name] = _dump_json(model)
        if self._templatized_grammar is not None:
            files[self.config.grammar_file] = self._templatized_grammar
        if include_logic:
            for script in self._scripts or []:
                files[script.identifier] = script.contents
        return files

    def to_archive(self, language: str | None = None, include_logic: bool = True) -> bytes:
        """
        Deterministic archive of the package for a logic runtime.

        Raises:
            ValueError: unknown language, or logic that cannot be exported to it
        """
        if not isinstance(language, str):
            raise ValueError("language is required and must be a string")
        if language not in (LogicLanguage.ERGO.value, LogicLanguage.JAVASCRIPT.value):
            raise ValueError(f"language should be either 'ergo' or 'javascript' but is '{language}'")
        target = LogicLanguage(language)
        if self.runtime == LogicLanguage.JAVASCRIPT and target == LogicLanguage.ERGO:
            raise ValueError("Cannot export JavaScript archive to Ergo")
        if include_logic and self._scripts and self.runtime != target:
            raise ValueError(
                f"Cannot export {self.runtime.value if self.runtime else 'untyped'} logic to {language}; "
                f"export with include_logic=False"
            )
        with LogContext(self.identifier):
            logger.info(f"Exporting archive for {language}, logic {'included' if include_logic else 'omitted'}")
            # A template without a runtime keeps none unless exported logic needs one
            declared = self.runtime is not None or (include_logic and bool(self._scripts))
            return write_archive(self.to_files(include_logic, target if declared else None))

    # =========================================================================
    # METADATA
    # =========================================================================

    @property
    def metadata(self) -> TemplateMetadata:
        return self._metadata

    @property
    def identifier(self) -> str:
        """name@version"""
        return self._metadata.identifier

    @property
    def name(self) -> str:
        return self._metadata.name

    @property
    def version(self) -> str:
        return self._metadata.version

    @property
    def description(self) -> str:
        return self._metadata.package.description

    @property
    def template_kind(self) -> TemplateKind:
        return self._metadata.template_kind

    @property
    def runtime(self) -> LogicLanguage | None:
        return self._metadata.runtime

    @property
    def readme(self) -> str | None:
        return self._metadata.readme

    def set_readme(self, readme: str) -> None:
        self._metadata = self._metadata.model_copy(update={"readme": readme})
        self._hash = None

    @property
    def samples(self) -> dict[str, str]:
        return dict(self._metadata.samples)

    def set_samples(self, samples: dict[str, str] | None) -> None:
        """
        Replace every sample.

        Raises:
            TemplateLoadError: no default sample, or a locale that is not an IETF tag
        """
        if samples is None:
            raise TemplateLoadError("sample.txt is required")
        try:
            self._metadata = TemplateMetadata(**{**self._metadata.model_dump(), "samples": samples})
        except PydanticValidationError as e:
            raise TemplateLoadError(_describe(e)) from e
        self._hash = None

    def set_sample(self, text: str, locale: str = DEFAULT_LOCALE) -> None:
        self.set_samples({**self._metadata.samples, locale: text})

    @property
    def request(self) -> dict[str, Any] | None:
        return self._metadata.request

    def set_request(self, request: dict[str, Any]) -> None:
        self._metadata = self._metadata.model_copy(update={"request": request})
        self._hash = None

    @property
    def keywords(self) -> list[str]:
        return list(self._metadata.package.keywords)

    def set_keywords(self, keywords: list[str]) -> None:
        package = self._metadata.package.model_copy(update={"keywords": list(keywords)})
        self._metadata = self._metadata.model_copy(update={"package": package})
        self._hash = None

    # =========================================================================
    # MODELS AND LOGIC
    # =========================================================================

    @property
    def models(self) -> list[dict[str, Any]]:
        return [model for _, model in self._models]

    @property
    def template_model(self) -> ClassDeclaration:
        """
        The single concrete type extending the clause or contract base.

        Raises:
            ModelError: none or more than one
        """
        if self._template_model is None:
            self._template_model = self.model_manager.find_template_model(self.template_kind)
        return self._template_model

    @property
    def scripts(self) -> list[Script] | None:
        """Logic scripts; None when the package was exported without logic."""
        return list(self._scripts) if self._scripts is not None else None

    # =========================================================================
    # GRAMMAR
    # =========================================================================

    @property
    def registry(self) -> GrammarRegistry:
        if self._registry is None:
            self._registry = GrammarRegistry(
                self.model_manager,
                self.template_model,
                markup=self.markup,
                config=self.config,
                identifier_factory=self.identifier_factory,
            )
        return self._registry

    @property
    def templatized_grammar(self) -> str | None:
        return self._templatized_grammar

    @property
    def grammar(self) -> str | None:
        """Grammar source of the built grammar, None before the first build."""
        return self._registry.grammar if self._registry is not None else None

    @property
    def has_expressions(self) -> bool:
        return self.registry.has_expressions

    def build_grammar(self, templatized_text: str | None = None) -> None:
        """
        Build the grammar from template markup, by default the package's own.

        Raises:
            IllegalStateError: no markup given and the package has none
            StructuralError: the markup does not fit the template model
        """
        text = templatized_text if templatized_text is not None else self._templatized_grammar
        if text is None:
            raise IllegalStateError(f"Template has no {self.config.grammar_file} to build a grammar from")
        with LogContext(self.identifier, self.config.grammar_file):
            self.registry.build_grammar(text)
        if text != self._templatized_grammar:
            self._templatized_grammar = text
            self._hash = None

    def set_grammar(self, source: str) -> None:
        """Use hand-written grammar source; drafting still needs template markup."""
        with LogContext(self.identifier):
            self.registry.set_grammar(source)

    def _ensure_grammar(self) -> GrammarRegistry:
        if self._registry is None or self._registry.state == RegistryState.UNINITIALIZED:
            if self._templatized_grammar is None:
                raise IllegalStateError("Must call set_grammar or build_grammar before calling get_parser")
            self.build_grammar()
        return self._registry

    def get_parser(self) -> GrammarParser:
        """
        Fresh single-use parser, building the grammar on first use.

        Raises:
            IllegalStateError: no grammar set and no template markup to build one from
        """
        return self._ensure_grammar().get_parser()

    @property
    def template_ast(self) -> TemplateAst:
        registry = self._ensure_grammar()
        if registry.template_ast is None:
            if self._templatized_grammar is None:
                raise IllegalStateError("Drafting requires a grammar built from template markup")
            self.build_grammar()
        return registry.template_ast

    # =========================================================================
    # IDENTITY
    # =========================================================================

    def get_hash(self) -> str:
        """SHA-256 identity hash, cached until the content changes."""
        if self._hash is None:
            self._hash = compute_hash(self.models, self._templatized_grammar, self._scripts, self._metadata)
        return self._hash

    def validate_data(self, data: Any) -> None:
        """
        Raises:
            ValidationError: data is not an instance of the template model
        """
        self.data_validator.check(data, self.template_model.fully_qualified_name)
