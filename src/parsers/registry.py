"""Immutable registry of the parsers the import pipeline can run."""

from types import MappingProxyType
from typing import Iterable

from src.parsers.base import Parser
from src.parsers.json_parser import JsonParser
from src.parsers.strings import StringsParser
from src.parsers.xib import Xib3Parser
from src.parsers.yaml_parser import YamlParser


class ParserRegistry:
    """Ordered mapping of parser identifiers to parser classes."""

    def __init__(self, parser_classes: Iterable[type[Parser]]):
        classes = {}
        for parser_class in parser_classes:
            if parser_class.ident in classes:
                raise ValueError(f"Duplicate parser identifier: {parser_class.ident}")
            classes[parser_class.ident] = parser_class
        self._classes = MappingProxyType(classes)

    @property
    def idents(self) -> tuple[str, ...]:
        return tuple(self._classes)

    def get(self, ident: str) -> type[Parser]:
        try:
            return self._classes[ident]
        except KeyError:
            raise KeyError(f"Unknown parser: {ident}") from None

    def __iter__(self):
        return iter(self._classes.values())

    def __len__(self):
        return len(self._classes)

    def enabled_for(self, project) -> list[Parser]:
        """Instantiate every parser the project has not disabled, in registry order."""
        skipped = set(project.skip_imports or [])
        return [
            parser_class(project.base_rfc5646_locale)
            for ident, parser_class in self._classes.items()
            if ident not in skipped
        ]


default_registry = ParserRegistry((YamlParser, JsonParser, StringsParser, Xib3Parser))
