"""Symbol data structures for the Concordia LSP."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DefinitionKind(Enum):
    STRUCT = 'struct'
    PACKET = 'packet'
    ENUM = 'enum'


@dataclass(frozen=True)
class Member:
    name: str
    doc: Optional[str]
    line: int  # 0-indexed
    column: int


@dataclass(frozen=True)
class Definition:
    name: str  # UpperCamel identifier (e.g., 'Header')
    kind: DefinitionKind
    source_file: str  # Absolute file path
    line: int  # 0-indexed line of the introducing keyword
    column: int  # Column where the name starts
    doc: Optional[str]
    # Only populated for enums, in textual order
    members: tuple[Member, ...] = ()

    def member(self, name: str) -> Optional[Member]:
        for m in self.members:
            if m.name == name:
                return m
        return None
