"""Apple ``.strings`` files inside ``<locale>.lproj`` directories."""

import re

from src.parsers.base import Parser, TranslatableUnit, decode

# "key" = "value";  with an optional /* comment */ directly above it
ENTRY = re.compile(
    r'(?:/\*(?P<comment>.*?)\*/\s*)?'
    r'"(?P<key>(?:[^"\\]|\\.)*)"\s*=\s*"(?P<value>(?:[^"\\]|\\.)*)"\s*;',
    re.DOTALL,
)
ESCAPES = {'\\"': '"', "\\\\": "\\", "\\n": "\n", "\\t": "\t", "\\r": "\r"}


def unescape(value: str) -> str:
    return re.sub(r"\\[\"\\ntr]", lambda m: ESCAPES[m.group(0)], value)


class StringsParser(Parser):
    ident = "strings"
    description = "Apple .strings files"

    def claims(self, path: str) -> bool:
        return self._lproj_pattern("strings").search(path) is not None

    def extract(self, path: str, content: bytes) -> list[TranslatableUnit]:
        text = decode(content)
        units = []
        position = 0
        for match in ENTRY.finditer(text):
            gap = text[position:match.start()]
            position = match.end()
            if gap.strip() and not gap.strip().startswith(("//", "/*")):
                raise ValueError(f"unparseable content near offset {match.start()}")

            original_key = unescape(match.group("key"))
            comment = match.group("comment")
            units.append(
                self.unit(
                    f"{path}:{original_key}",
                    unescape(match.group("value")),
                    original_key=original_key,
                    context=comment.strip() if comment else None,
                    other_data={"file": path},
                )
            )
        return units
