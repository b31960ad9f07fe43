"""
Grammar Registry — Holds the compiled grammar of one template.

    UNINITIALIZED --set_grammar/build_grammar--> BUILT --set_grammar/build_grammar--> BUILT

get_parser() before the first successful build raises IllegalStateError.
A failed build leaves the previous grammar, and state, in place.
"""

from typing import Callable

from clausegram.compiler.compiler import TemplateGrammarCompiler
from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import ClausegramError, IllegalStateError
from clausegram.grammar.engine import CompiledGrammar, GrammarParser
from clausegram.grammar.source import parse_grammar_source, render_grammar_source
from clausegram.markup.nodes import TemplateAst
from clausegram.markup.template_parser import TemplateParser
from clausegram.markup.transformer import DefaultMarkupTransformer, MarkupTransformer
from clausegram.observability import get_logger
from clausegram.schemas import ClassDeclaration, ModelManager
from clausegram.vocabulary import RegistryState


logger = get_logger("registry")


class GrammarRegistry:
    """
    Compiled grammar slot of a template.

    Not safe for concurrent builds; callers serialize writes.
    """

    def __init__(
        self,
        model_manager: ModelManager,
        template_model: ClassDeclaration | str,
        markup: MarkupTransformer | None = None,
        config: ClausegramConfig = DEFAULT_CONFIG,
        identifier_factory: Callable[[], str] | None = None,
    ):
        self.model_manager = model_manager
        self.template_model = (
            model_manager.get_type(template_model) if isinstance(template_model, str) else template_model
        )
        self.config = config
        self.markup = markup or DefaultMarkupTransformer(config)
        self.compiler = TemplateGrammarCompiler(model_manager, config, identifier_factory)
        self.template_parser = TemplateParser(config.join_separator)

        self.state = RegistryState.UNINITIALIZED
        self._compiled: CompiledGrammar | None = None
        self._templatized_grammar: str | None = None
        self._template_ast: TemplateAst | None = None

    @property
    def grammar(self) -> str | None:
        """Grammar source of the compiled grammar."""
        return self._compiled.source if self._compiled is not None else None

    @property
    def templatized_grammar(self) -> str | None:
        """Normalized template markup the grammar was built from."""
        return self._templatized_grammar

    @property
    def template_ast(self) -> TemplateAst | None:
        return self._template_ast

    @property
    def compiled(self) -> CompiledGrammar:
        if self._compiled is None:
            raise IllegalStateError("Must call set_grammar or build_grammar before calling get_parser")
        return self._compiled

    @property
    def has_expressions(self) -> bool:
        return self._compiled is not None and self._compiled.contains_expression

    def set_grammar(self, source: str) -> CompiledGrammar:
        """
        Compile grammar source and replace the current grammar.

        Raises:
            GrammarSyntaxError: malformed source
        """
        try:
            rule_set = parse_grammar_source(source, self.config.grammar_file)
            compiled = CompiledGrammar(rule_set, source)
        except ClausegramError as e:
            logger.error(f"Grammar compilation failed: {e}", extra={"error": e})
            raise
        self._compiled = compiled
        self.state = RegistryState.BUILT
        logger.debug(f"Grammar set: {len(rule_set)} rules")
        return compiled

    def build_grammar(self, templatized_text: str) -> CompiledGrammar:
        """
        Compile annotated template markup against the template model.

        Raises:
            ParseFailure, AmbiguousParse: malformed template markup
            StructuralError: the template does not fit the model
            GrammarSyntaxError: the generated grammar does not compile
        """
        normalized = self.markup.markup_to_text(self.markup.text_to_markup(templatized_text))
        logger.debug(f"Building grammar from template markup:\n{normalized}")
        try:
            ast = self.template_parser.parse(normalized, self.config.grammar_file)
            rule_set = self.compiler.compile(ast, self.template_model, self.config.grammar_file)
            source = render_grammar_source(rule_set)
        except ClausegramError as e:
            logger.error(f"Grammar build failed: {e}", extra={"error": e})
            raise
        logger.debug(f"Generated grammar:\n{source}")

        compiled = self.set_grammar(source)
        self._templatized_grammar = normalized
        self._template_ast = ast
        return compiled

    def get_parser(self) -> GrammarParser:
        """
        Fresh single-use parser for the current grammar.

        Raises:
            IllegalStateError: no grammar has been set or built
        """
        return self.compiled.get_parser()


def create_registry(
    model_manager: ModelManager,
    template_model: ClassDeclaration | str,
    config: ClausegramConfig = DEFAULT_CONFIG,
    identifier_factory: Callable[[], str] | None = None,
) -> GrammarRegistry:
    """Factory function for GrammarRegistry."""
    return GrammarRegistry(model_manager, template_model, config=config, identifier_factory=identifier_factory)
