"""Rails-style YAML locale files."""

import re

import yaml

from src.parsers.base import Parser, TranslatableUnit, decode, flatten


class YamlParser(Parser):
    """
    Parses ``<locale>.yml`` and ``*.<locale>.yml`` files.

    The document root is keyed by locale (``en: {...}``); keys are the dotted
    paths below it, so ``en: {root: "Hi"}`` yields the key ``root``.
    """

    ident = "yaml"
    description = "Rails YAML locale files"

    def claims(self, path: str) -> bool:
        locale = re.escape(self.base_locale)
        return re.search(rf"(?:^|/|\.){locale}\.ya?ml$", path) is not None

    def extract(self, path: str, content: bytes) -> list[TranslatableUnit]:
        data = yaml.safe_load(decode(content))
        if not isinstance(data, dict):
            return []
        root = data.get(self.base_locale)
        if not isinstance(root, dict):
            return []

        return [
            self.unit(key, copy, original_key=key, other_data={"file": path})
            for key, copy in flatten(root)
        ]
