"""Nested JSON locale files (``locales/en.json``)."""

import json
import re

from src.parsers.base import Parser, TranslatableUnit, decode, flatten


class JsonParser(Parser):
    ident = "json"
    description = "Nested JSON locale files"

    def claims(self, path: str) -> bool:
        return re.search(rf"(?:^|/){re.escape(self.base_locale)}\.json$", path) is not None

    def extract(self, path: str, content: bytes) -> list[TranslatableUnit]:
        data = json.loads(decode(content))
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value must be an object")

        return [
            self.unit(key, copy, original_key=key, other_data={"file": path})
            for key, copy in flatten(data)
        ]
