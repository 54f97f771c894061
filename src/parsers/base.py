"""Parser contract shared by every string extractor."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Optional


@dataclass(frozen=True)
class TranslatableUnit:
    """A piece of source copy found in a file."""

    key: str
    source_copy: str
    locale: str
    original_key: Optional[str] = None
    context: Optional[str] = None
    other_data: dict = field(default_factory=dict)

    @property
    def exclusion_key(self) -> str:
        """Identifier that exclusion globs are matched against."""
        return self.original_key if self.original_key is not None else self.key


class Parser(ABC):
    """
    Base class for extractors.

    Subclasses set ``ident`` and implement ``claims`` and ``extract``.
    Instances are bound to the project's base locale so path matching can
    pick the source-language files only.
    """

    ident: ClassVar[str]
    description: ClassVar[str] = ""

    def __init__(self, base_locale: str):
        self.base_locale = base_locale

    @abstractmethod
    def claims(self, path: str) -> bool:
        """Whether this parser should run on the file at ``path``."""

    @abstractmethod
    def extract(self, path: str, content: bytes) -> list[TranslatableUnit]:
        """Extract units from file content. Raise on malformed input."""

    def skip(self, path: str, content: bytes) -> bool:
        """Extraction-time veto. A skipped file is neither an error nor a success."""
        return False

    def unit(self, key: str, source_copy: str, **kwargs) -> TranslatableUnit:
        return TranslatableUnit(key=key, source_copy=source_copy, locale=self.base_locale, **kwargs)

    def _lproj_pattern(self, extension: str) -> re.Pattern:
        return re.compile(
            rf"(?:^|/){re.escape(self.base_locale)}\.lproj/[^/]+\.{re.escape(extension)}$"
        )


def decode(content: bytes) -> str:
    """Decode file content, honoring UTF-16 byte order marks."""
    if content.startswith((b"\xff\xfe", b"\xfe\xff")):
        return content.decode("utf-16")
    return content.decode("utf-8-sig")


def flatten(data, prefix: str = ""):
    """Yield (dotted_key, value) pairs for the string leaves of nested data."""
    if isinstance(data, dict):
        for name, value in data.items():
            child = f"{prefix}.{name}" if prefix else str(name)
            yield from flatten(value, child)
    elif isinstance(data, list):
        for index, value in enumerate(data):
            yield from flatten(value, f"{prefix}[{index}]")
    elif isinstance(data, str):
        yield prefix, data
