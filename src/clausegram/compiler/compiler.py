"""
Template Grammar Compiler — Turns an annotated template into grammar rules.

Each nesting level of the template compiles to one rule per node, named
`{prefix}{index}`, and a container rule named by the prefix which
sequences them and builds the level's object:

    rule0 -> "Force Majeure: "
    rule1 -> Boolean
    rule2 -> " Amount: "
    rule3 -> Integer
    rule  -> rule0 rule1 rule2 rule3 {% object $class="org.acme.Clause" forceMajeure=rule1 amount=rule3 %}

The top level uses the prefix "rule"; nested blocks use the field name.
Rules for the schema types the template reaches are merged in last.
"""

from typing import Callable

from clausegram.compiler.context import TOP_PREFIX, CompilationContext, create_context
from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import FileLocation, FormatError, GrammarSyntaxError, StructuralError
from clausegram.grammar.formats import get_format_parser
from clausegram.grammar.rules import Action, ActionParam, GrammarRule, GrammarRuleSet, Symbol
from clausegram.grammar.visitor import ANY_RULE, GrammarVisitor, cardinality_of, type_rule_name
from clausegram.markup.nodes import (
    TEXT_NODES,
    Binding,
    ClauseBinding,
    Expr,
    FormattedBinding,
    IfBinding,
    IfElseBinding,
    JoinBinding,
    LastChunk,
    OListBinding,
    StaticChunk,
    TemplateAst,
    TemplateNode,
    UListBinding,
    WithBinding,
    list_prefixes,
)
from clausegram.observability import get_logger
from clausegram.schemas import ClassDeclaration, ModelManager, Property
from clausegram.vocabulary import Cardinality, PrimitiveType, RuleOrigin


logger = get_logger("compiler")

NodeHandler = Callable[[TemplateNode, str, CompilationContext], GrammarRule]


class TemplateGrammarCompiler:
    """
    Compiles annotated templates against a schema.

    Every binding is checked against the schema type of its level; any
    mismatch raises StructuralError located at the binding's field name.
    """

    def __init__(
        self,
        model_manager: ModelManager,
        config: ClausegramConfig = DEFAULT_CONFIG,
        identifier_factory: Callable[[], str] | None = None,
    ):
        self.model_manager = model_manager
        self.config = config
        self.identifier_factory = identifier_factory
        self.visitor = GrammarVisitor(model_manager, config)

    def compile(
        self,
        ast: TemplateAst,
        schema_type: ClassDeclaration | str,
        file_name: str | None = None,
    ) -> GrammarRuleSet:
        """
        Compile a template AST into a complete rule set starting at "rule".

        Raises:
            StructuralError: a binding does not fit the schema
            ModelError: the schema references an abstract type with no subtypes
        """
        if isinstance(schema_type, str):
            schema_type = self.model_manager.get_type(schema_type)
        context = create_context(
            schema_type,
            file_name=file_name or self.config.grammar_file,
            identifier_factory=self.identifier_factory,
        )
        self._compile_level(ast, context)

        rule_set = context.rule_set
        rule_set.start = TOP_PREFIX
        for rule in self.visitor.visit(schema_type.fully_qualified_name):
            if rule_set.has(rule.name):
                if rule_set.get(rule.name).origin == RuleOrigin.TEMPLATE:
                    raise StructuralError(
                        f"Template rule {rule.name} clashes with the rule for type {rule.name}",
                        file_name=context.file_name,
                    )
                continue
            rule_set.add(rule)
        rule_set.check()

        logger.debug(f"Compiled template for {schema_type.fully_qualified_name}: {len(rule_set)} rules")
        return rule_set

    # =========================================================================
    # LEVELS
    # =========================================================================

    def _compile_level(self, ast: TemplateAst, context: CompilationContext) -> GrammarRule:
        """Emit the node rules and the container rule of one nesting level."""
        decl = context.schema_type
        symbols: list[Symbol] = []
        bound: dict[str, str] = {}

        for index, node in enumerate(ast):
            if isinstance(node, TEXT_NODES) and not node.text:
                continue
            name = context.rule_name(index)
            rule = self._dispatch(node, context)(node, name, context)
            self._add(context, rule, node)
            symbols.append(Symbol.rule(name))
            field_name = getattr(node, "field", None)
            if field_name is not None and field_name not in bound:
                bound[field_name] = name

        if not symbols:
            raise StructuralError(
                f"Template for {decl.fully_qualified_name} contains no text or bindings",
                file_name=context.file_name,
            )

        identifier = decl.identifier_field_name
        params = [ActionParam.const("$class", decl.fully_qualified_name)]
        if identifier is not None:
            params.append(ActionParam.const(identifier, context.identifier_factory()))
        for prop in decl.properties:
            if prop.name != identifier and prop.name in bound:
                params.append(ActionParam.ref(prop.name, bound[prop.name]))

        container = GrammarRule(
            name=context.prefix,
            alternatives=[symbols],
            action=Action("object", tuple(params)),
            comment=decl.fully_qualified_name,
        )
        self._add(context, container, None)
        return container

    def _dispatch(self, node: TemplateNode, context: CompilationContext) -> NodeHandler:
        match node:
            case StaticChunk() | LastChunk():
                return self._compile_chunk
            case Binding() | FormattedBinding():
                return self._compile_binding
            case IfBinding():
                return self._compile_if
            case IfElseBinding():
                return self._compile_if_else
            case ClauseBinding() | WithBinding():
                return self._compile_nested
            case UListBinding() | OListBinding() | JoinBinding():
                return self._compile_list
            case Expr():
                return self._compile_expr
            case _:
                raise self._error(node, context, f"Unrecognized node type {type(node).__name__}")

    def _add(self, context: CompilationContext, rule: GrammarRule, node: TemplateNode | None) -> None:
        try:
            context.rule_set.add(rule)
        except GrammarSyntaxError as e:
            raise StructuralError(
                e.message,
                file_name=context.file_name,
                location=self._location(node) if node is not None else None,
            ) from e

    # =========================================================================
    # SCHEMA CHECKS
    # =========================================================================

    @staticmethod
    def _location(node) -> FileLocation | None:
        line = getattr(node, "line", None)
        if line is None:
            return None
        return FileLocation(line, node.column, line, node.column + len(getattr(node, "field", "") or ""))

    def _error(self, node, context: CompilationContext, message: str) -> StructuralError:
        return StructuralError(message, file_name=context.file_name, location=self._location(node))

    def _property(self, node, context: CompilationContext) -> Property:
        prop = context.schema_type.get_property(node.field)
        if prop is None:
            raise self._error(
                node,
                context,
                f"Template references a property '{node.field}' that is not declared "
                f"in the template model '{context.schema_type.fully_qualified_name}'",
            )
        return prop

    def _boolean_property(self, node, context: CompilationContext) -> Property:
        prop = self._property(node, context)
        if prop.fully_qualified_type_name != PrimitiveType.BOOLEAN.value or prop.is_array:
            raise self._error(
                node,
                context,
                f"An if block can only be used with a boolean property. "
                f"Property {node.field} has type {prop.type_name}",
            )
        return prop

    def _complex_type(self, node, prop: Property, context: CompilationContext) -> ClassDeclaration:
        block = node.kind.value.replace("Binding", "").lower()
        if prop.is_primitive or prop.is_relationship:
            raise self._error(
                node,
                context,
                f"A {block} block can only be used with a complex property. "
                f"Property {node.field} has type {prop.type_name}",
            )
        decl = self.model_manager.get_type(prop.fully_qualified_type_name)
        if decl.is_enum or decl.abstract:
            raise self._error(
                node,
                context,
                f"A {block} block can only be used with a concrete complex property. "
                f"Property {node.field} has type {prop.type_name}",
            )
        return decl

    def _comment(self, node, context: CompilationContext) -> str:
        return f"{context.schema_type.fully_qualified_name}.{node.field}"

    # =========================================================================
    # NODE HANDLERS
    # =========================================================================

    def _compile_chunk(self, node, name: str, context: CompilationContext) -> GrammarRule:
        return GrammarRule(name=name, alternatives=[[Symbol.literal(node.text)]])

    def _compile_if(self, node, name: str, context: CompilationContext) -> GrammarRule:
        self._boolean_property(node, context)
        if not node.when_true:
            raise self._error(node, context, f"The if block for {node.field} contains no text")
        return GrammarRule(
            name=name,
            alternatives=[[Symbol.literal(node.when_true, Cardinality.OPTIONAL)]],
            action=Action("present"),
            comment=self._comment(node, context),
        )

    def _compile_if_else(self, node, name: str, context: CompilationContext) -> GrammarRule:
        self._boolean_property(node, context)
        if node.when_true == node.when_false:
            raise self._error(
                node,
                context,
                f"The if and else branches for {node.field} must contain different text",
            )
        if not node.when_false:
            alternatives = [[Symbol.literal(node.when_true, Cardinality.OPTIONAL)]]
            action = Action("present")
        elif not node.when_true:
            alternatives = [[Symbol.literal(node.when_false, Cardinality.OPTIONAL)]]
            action = Action("absent")
        else:
            alternatives = [[Symbol.literal(node.when_true)], [Symbol.literal(node.when_false)]]
            action = Action("equals", (ActionParam.const("value", node.when_true),))
        return GrammarRule(name=name, alternatives=alternatives, action=action, comment=self._comment(node, context))

    def _compile_binding(self, node, name: str, context: CompilationContext) -> GrammarRule:
        prop = self._property(node, context)
        format_string = node.format_spec
        if format_string is None:
            target = type_rule_name(prop)
        else:
            parser = None if prop.is_relationship else get_format_parser(prop.fully_qualified_type_name)
            if parser is None:
                raise self._error(
                    node,
                    context,
                    f"Formatted types are not currently supported for {prop.type_name} properties.",
                )
            try:
                fragment = parser.build_format_rule(format_string)
            except FormatError as e:
                raise FormatError(e.message, file_name=context.file_name, location=self._location(node)) from e
            if not context.rule_set.has(fragment.name):
                context.rule_set.add(fragment)
            target = fragment.name
        return GrammarRule(
            name=name,
            alternatives=[[Symbol.rule(target, cardinality_of(prop))]],
            comment=self._comment(node, context),
        )

    def _compile_nested(self, node, name: str, context: CompilationContext) -> GrammarRule:
        prop = self._property(node, context)
        nested_type = self._complex_type(node, prop, context)
        self._compile_level(node.nested, context.nested(node.field, nested_type))
        kind = "clause" if isinstance(node, ClauseBinding) else "with"
        return GrammarRule(
            name=name,
            alternatives=[[Symbol.rule(node.field, cardinality_of(prop))]],
            comment=f"{self._comment(node, context)} ({kind})",
        )

    def _compile_list(self, node, name: str, context: CompilationContext) -> GrammarRule:
        prop = self._property(node, context)
        if not prop.is_array:
            raise self._error(
                node,
                context,
                f"A list block can only be used with an array property. "
                f"Property {node.field} has type {prop.type_name}",
            )
        item_type = self._complex_type(node, prop, context)
        first_prefix, rest_prefix = list_prefixes(node, self.config)
        first_name = f"{node.field}First"
        self._compile_level(node.nested.with_prefix(first_prefix), context.nested(first_name, item_type))
        self._compile_level(node.nested.with_prefix(rest_prefix), context.nested(node.field, item_type))
        return GrammarRule(
            name=name,
            alternatives=[[Symbol.rule(first_name), Symbol.rule(node.field, Cardinality.MANY)]],
            action=Action("concat", (ActionParam.ref("first", first_name), ActionParam.ref("rest", node.field))),
            comment=self._comment(node, context),
        )

    def _compile_expr(self, node, name: str, context: CompilationContext) -> GrammarRule:
        context.rule_set.contains_expression = True
        return GrammarRule(
            name=name,
            alternatives=[[Symbol.rule(ANY_RULE)]],
            comment=f"expression {node.expression}",
        )


def create_compiler(
    model_manager: ModelManager,
    config: ClausegramConfig = DEFAULT_CONFIG,
    identifier_factory: Callable[[], str] | None = None,
) -> TemplateGrammarCompiler:
    """Factory function for TemplateGrammarCompiler."""
    return TemplateGrammarCompiler(model_manager, config, identifier_factory)
