import ast
import logging
import re
from typing import List, Optional

import griffe
from griffe import Docstring, DocstringSection, DocstringSectionReturns, Parser

log = logging.getLogger(__name__)

# First inline-code span; double backticks are tolerated.
_CODE_SPAN = re.compile(r"`+([^`]+)`+")


def _section_title(section: DocstringSection) -> str:
    if section.title:
        return section.title.strip()
    return str(section.kind.value).title()


def _field_name(name: str) -> str:
    return name.strip().lstrip("*")


class DocstringSignalExtractor:
    """
    Pulls type signals out of numpy-style docstrings.

    Nothing here raises on malformed input: an unreadable docstring simply
    carries no signal.
    """

    def __init__(self, style: str = "numpy"):
        self.style = Parser(style)

    def parse_sections(self, docstring: Optional[str]) -> List[DocstringSection]:
        if not docstring:
            return []
        try:
            return list(griffe.parse(Docstring(docstring), self.style))
        except Exception as e:
            log.debug(f"Unparsable docstring ignored: {e}")
            return []

    def referenced_type_name(
        self, docstring: Optional[str], section_title: str, field_name: str
    ) -> Optional[str]:
        wanted = _field_name(field_name)
        for section in self.parse_sections(docstring):
            if _section_title(section) != section_title:
                continue
            if not isinstance(section.value, list):
                continue
            for item in section.value:
                name = getattr(item, "name", None)
                if name is None or _field_name(str(name)) != wanted:
                    continue
                annotation = getattr(item, "annotation", None)
                text = str(annotation) if annotation else item.description
                return self._extract_reference(text)
        return None

    def returns_type(self, docstring: Optional[str]) -> Optional[str]:
        """Type of the first Returns entry, when it is a valid expression."""
        for section in self.parse_sections(docstring):
            if not isinstance(section, DocstringSectionReturns) or not section.value:
                continue
            first = section.value[0]
            annotation = str(first.annotation).strip() if first.annotation else ""
            if not annotation and first.name:
                # "float" alone on the line may be read as a name.
                annotation = str(first.name).strip()
            if annotation and _is_expression(annotation):
                return annotation
            return None
        return None

    @staticmethod
    def _extract_reference(text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        match = _CODE_SPAN.search(text)
        if not match:
            return None
        trailing = match.group(1).strip().rpartition(".")[2]
        trailing = trailing.lstrip("~").strip()
        return trailing or None


def _is_expression(text: str) -> bool:
    try:
        ast.parse(text, mode="eval")
    except SyntaxError:
        return False
    return True
