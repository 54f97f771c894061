"""Apple Xib files generated by Xcode 5 and up (document format version 3)."""

import xml.etree.ElementTree as ET

from src.parsers.base import Parser, TranslatableUnit

# Element paths to extract, with the attributes that carry user-visible copy.
XPATHS = (
    (".//accessibility", ("label", "hint")),
    (".//label", ("text",)),
    (".//segments/segment", ("title",)),
    (".//state[@key='disabled']", ("title",)),
    (".//state[@key='highlighted']", ("title",)),
    (".//state[@key='normal']", ("title",)),
    (".//state[@key='selected']", ("title",)),
    (".//textField", ("text", "placeholder")),
)


class Xib3Parser(Parser):
    ident = "xib3"
    description = "Apple Xib files (Xcode 5+)"

    def claims(self, path: str) -> bool:
        return self._lproj_pattern("xib").search(path) is not None

    def skip(self, path: str, content: bytes) -> bool:
        # Older Xib formats use an <archive> root; only <document> is handled here
        return ET.fromstring(content).tag != "document"

    def extract(self, path: str, content: bytes) -> list[TranslatableUnit]:
        root = ET.fromstring(content)
        parents = {child: parent for parent in root.iter() for child in parent}
        units = []
        seen = set()

        for xpath, attributes in XPATHS:
            for element in root.findall(xpath):
                owner_id = self._owner_id(element, parents)
                for attribute in attributes:
                    copy = element.get(attribute)
                    if not copy:
                        continue
                    original_key = f"{owner_id}.{self._qualifier(element)}{attribute}"
                    if original_key in seen:
                        continue
                    seen.add(original_key)
                    units.append(
                        self.unit(
                            f"{path}:{original_key}",
                            copy,
                            original_key=original_key,
                            other_data={"file": path, "element": element.tag},
                        )
                    )
        return units

    @staticmethod
    def _owner_id(element, parents) -> str:
        node = element
        while node is not None:
            if node.get("id"):
                return node.get("id")
            node = parents.get(node)
        return "document"

    @staticmethod
    def _qualifier(element) -> str:
        if element.tag == "state":
            return f"{element.get('key')}."
        if element.tag in ("segment", "accessibility"):
            return f"{element.tag}."
        return ""
