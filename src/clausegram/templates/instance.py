"""
Template Instances — A template together with the data of one use of it.

    clause = Clause(template)
    clause.parse("Late delivery of \"widgets\" ...")   # text -> data
    clause.draft({"format": "html"})                   # data -> text
"""

import hashlib
import json
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from clausegram.errors import IllegalStateError, UnsupportedFormatError, ValidationError
from clausegram.grammar.actions import ParseContext
from clausegram.markup import MarkupNode
from clausegram.observability import LogContext, get_logger
from clausegram.templates.models import DraftOptions
from clausegram.templates.template import Template
from clausegram.vocabulary import DraftFormat


logger = get_logger("templates")


class TemplateInstance:
    """
    Base class of Clause and Contract.

    Holds validated data for a template; parse() fills it from text and
    draft() renders it back.
    """

    def __init__(self, template: Template):
        if type(self) is TemplateInstance:
            raise TypeError('Abstract class "TemplateInstance" cannot be instantiated directly.')
        self.template = template
        self.data: dict[str, Any] | None = None

    def set_data(self, data: dict[str, Any]) -> None:
        """
        Set the instance data after validating it against the template model.

        Raises:
            ValidationError: not an instance of the template model
        """
        fqn = self.template.template_model.fully_qualified_name
        if not isinstance(data, dict) or data.get("$class") != fqn:
            raise ValidationError(
                f"Invalid data, must be a valid instance of the template model {fqn} "
                f"but got: {json.dumps(data, default=str)}",
                data=data,
            )
        logger.debug(f"Setting data: {json.dumps(data, default=str)}")
        self.template.validate_data(data)
        self.data = data

    def get_data(self) -> dict[str, Any] | None:
        return self.data

    def parse(
        self,
        text: str,
        current_time: datetime | None = None,
        source_name: str | None = None,
    ) -> dict[str, Any]:
        """
        Read data from text and set it.

        Raises:
            ParseFailure: the text does not match the template
            AmbiguousParse: the text matches the template in more than one way
            ValidationError: the data read does not conform to the template model
        """
        template = self.template
        with LogContext(template.identifier, source_name):
            template.get_parser()
            document = template.markup.text_to_markup(text)
            data = template.markup.extract_data(
                document,
                template.registry.compiled,
                template.template_model,
                ParseContext(current_time=current_time, config=template.config),
                source_name,
            )
            self.set_data(data)
        return data

    def draft(self, options: DraftOptions | dict[str, Any] | None = None, current_time: datetime | None = None) -> Any:
        """
        Render the instance data as text, a markup tree, HTML or slate.

        Raises:
            IllegalStateError: no data has been set
            UnsupportedFormatError: unknown format option
        """
        if self.data is None:
            raise IllegalStateError("Data has not been set. Call set_data or parse before calling this method.")
        options = self._options(options)
        template = self.template
        with LogContext(template.identifier):
            document = template.markup.draft_markup(
                self.data,
                template.template_ast,
                template.template_model,
                template.printer,
            )
            return self.format_markup(document, options)

    def format_markup(self, document: MarkupNode, options: DraftOptions | dict[str, Any] | None = None) -> Any:
        """
        Render a drafted document.

        Raises:
            UnsupportedFormatError: unknown format option
        """
        options = self._options(options)
        try:
            draft_format = DraftFormat(options.format)
        except ValueError:
            raise UnsupportedFormatError(f"Unsupported format: {options.format}") from None
        return self.template.markup.render(document, draft_format, options.unquote_variables)

    @staticmethod
    def _options(options: DraftOptions | dict[str, Any] | None) -> DraftOptions:
        if isinstance(options, DraftOptions):
            return options
        try:
            return DraftOptions.model_validate(options or {})
        except PydanticValidationError as e:
            raise UnsupportedFormatError(f"Invalid draft options: {e.errors()[0]['msg']}") from e

    def get_identifier(self) -> str:
        """Template identifier, followed by the SHA-256 of the data once set."""
        identifier = self.template.identifier
        if self.data is not None:
            text = json.dumps(self.data, separators=(",", ":"), ensure_ascii=False)
            identifier += "-" + hashlib.sha256(text.encode("utf-8")).hexdigest()
        return identifier

    def to_json(self) -> dict[str, Any]:
        return {"template": self.template.identifier, "data": self.data}


class Clause(TemplateInstance):
    """An instance of a clause template."""
    pass


class Contract(TemplateInstance):
    """An instance of a contract template."""
    pass
