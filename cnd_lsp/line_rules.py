"""Line classification rules for the lexical symbol scanner.

The resolver never parses Concordia; it looks at one line at a time and
asks a `LineRules` object what kind of line it is. Swapping the rules
object changes the matching strategy without touching the traversal.
"""

from __future__ import annotations

import re
from typing import Optional

from .doc_comments import clean_doc_line, is_doc_comment
from .symbols import DefinitionKind

# struct Foo / packet Foo / enum Foo, possibly indented
DEFINITION_RE = re.compile(r'^\s*(struct|packet|enum)\s+([A-Z][a-zA-Z0-9_]*)')
# @import("path/to/file.cnd")
IMPORT_RE = re.compile(r'@import\s*\(\s*"([^"]+)"\s*\)')
# Member = Value, or just Member
MEMBER_RE = re.compile(r'^([a-zA-Z_][a-zA-Z0-9_]*)')

ENUM_BODY_END = '}'


class LineRules:
    """Regex-based classification of single source lines."""

    def is_doc_line(self, line: str) -> bool:
        return is_doc_comment(line.strip())

    def doc_text(self, line: str) -> str:
        return clean_doc_line(line.strip())

    def is_decorator_line(self, line: str) -> bool:
        return line.strip().startswith('@')

    def is_import_line(self, line: str) -> bool:
        return self.import_path(line) is not None

    def import_path(self, line: str) -> Optional[str]:
        """Return the quoted path of an @import decorator, if any."""
        m = IMPORT_RE.search(line)
        if m is None:
            return None
        return m.group(1)

    def is_definition_line(self, line: str) -> bool:
        return self.definition(line) is not None

    def definition(
        self, line: str,
    ) -> Optional[tuple[DefinitionKind, str, int]]:
        """Return (kind, name, name column) for a definition line."""
        m = DEFINITION_RE.match(line)
        if m is None:
            return None
        return DefinitionKind(m.group(1)), m.group(2), m.start(2)

    def is_enum_end(self, line: str) -> bool:
        return line.strip().startswith(ENUM_BODY_END)

    def is_member_line(self, line: str) -> bool:
        return self.member_name(line) is not None

    def member_name(self, line: str) -> Optional[str]:
        m = MEMBER_RE.match(line.strip())
        # Avoid picking up a nested keyword as a member
        if m is None or m.group(1) == 'enum':
            return None
        return m.group(1)


DEFAULT_RULES = LineRules()
