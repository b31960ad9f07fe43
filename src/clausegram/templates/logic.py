"""
Logic Scripts — Opaque logic files carried by a template.

Logic is never executed here; scripts are kept so they can be hashed,
checked against the declared runtime and written back to archives.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath

from clausegram.errors import TemplateLoadError
from clausegram.vocabulary import LogicLanguage


LOGIC_EXTENSIONS: dict[str, LogicLanguage] = {
    ".ergo": LogicLanguage.ERGO,
    ".js": LogicLanguage.JAVASCRIPT,
}


def language_for_file(file_name: str) -> LogicLanguage | None:
    """Logic language of a file by extension; None for files that are not logic."""
    return LOGIC_EXTENSIONS.get(PurePosixPath(file_name).suffix.lower())


@dataclass(frozen=True)
class Script:
    """
    One logic file.

    Attributes:
        identifier: Path of the file inside the template, e.g. logic/logic.ergo
        language: Language the file is written in
        contents: Source text
    """
    identifier: str
    language: LogicLanguage
    contents: str

    def __post_init__(self):
        if not self.contents:
            raise TemplateLoadError("Empty script contents", file_name=self.identifier)

    def to_dict(self) -> dict[str, str]:
        return {"identifier": self.identifier, "language": self.language.value, "contents": self.contents}


def load_scripts(files: dict[str, str]) -> list[Script]:
    """Scripts for the logic files among `files`, ordered by path."""
    scripts = []
    for path in sorted(files):
        language = language_for_file(path)
        if language is not None:
            scripts.append(Script(path, language, files[path]))
    return scripts
