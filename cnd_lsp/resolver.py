"""Resolve the struct/packet/enum definitions visible from a .cnd file.

Resolution is lexical: each file is scanned line by line, `@import`
decorators are followed depth-first, and every physical file is scanned
at most once per call. Nothing is cached between calls.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from .doc_comments import join_doc
from .line_rules import DEFAULT_RULES, LineRules
from .symbols import Definition, DefinitionKind, Member

log = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

# path -> text, or None if the file cannot be read
Reader = Callable[[str], Optional[str]]


def read_source(path: str) -> Optional[str]:
    """Read a file from disk, returning None if it is unreadable."""
    try:
        with open(path, encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        log.debug('Cannot read %s: %s', path, e)
        return None


@dataclass
class _Frame:
    """Scan state of one file on the traversal stack."""

    path: str
    lines: list[str]
    depth: int
    index: int = 0
    # Doc lines waiting for the next definition
    doc: list[str] = field(default_factory=list)
    # Resolved imports to follow before any remaining lines
    deferred: list[str] = field(default_factory=list)


@dataclass
class _Traversal:
    """Per-call bookkeeping shared by every frame."""

    visited: set[str]
    # path -> depth the file was scanned at
    depths: dict[str, int] = field(default_factory=dict)
    # path -> imports of that file skipped by the depth limit
    cut: dict[str, list[str]] = field(default_factory=dict)


class Resolver:
    """Collects definitions from a file and everything it imports."""

    def __init__(
        self,
        rules: Optional[LineRules] = None,
        reader: Optional[Reader] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.rules = rules or DEFAULT_RULES
        self.reader = reader or read_source
        self.max_depth = max_depth

    def resolve(
        self,
        entry_path: str,
        entry_text: Optional[str] = None,
        visited: Optional[set[str]] = None,
    ) -> list[Definition]:
        """Return definitions in traversal order.

        Args:
            entry_path: File being scanned; base for relative imports.
            entry_text: Unsaved buffer content for the entry file. When
                None the file is read from disk. Imported files are
                always read from disk.
            visited: Files already scanned in this call chain. Shared
                across the traversal and updated in place.
        """
        if visited is None:
            visited = set()
        entry_path = os.path.abspath(entry_path)
        if entry_path in visited:
            return []
        visited.add(entry_path)

        if entry_text is None:
            entry_text = self._read(entry_path)
            if entry_text is None:
                return []

        traversal = _Traversal(visited, depths={entry_path: 0})
        definitions: list[Definition] = []
        stack = [_Frame(entry_path, entry_text.split('\n'), depth=0)]
        while stack:
            frame = stack[-1]
            if frame.deferred:
                child = self._enter(frame, frame.deferred.pop(0), traversal)
            elif frame.index < len(frame.lines):
                child = self._scan_line(frame, definitions, traversal)
            else:
                stack.pop()
                continue
            if child is not None:
                # Imported definitions land before the rest of this file
                stack.append(child)
        return definitions

    def _scan_line(
        self,
        frame: _Frame,
        definitions: list[Definition],
        traversal: _Traversal,
    ) -> Optional[_Frame]:
        """Consume one line of `frame`; return a frame to descend into."""
        rules = self.rules
        line_no = frame.index
        line = frame.lines[line_no]
        frame.index += 1

        if rules.is_doc_line(line):
            frame.doc.append(rules.doc_text(line))
            return None

        if rules.is_decorator_line(line):
            # Decorators sit between a doc comment and its declaration,
            # so only an import drops the pending doc.
            import_path = rules.import_path(line)
            if import_path is None:
                return None
            frame.doc = []
            path = os.path.normpath(
                os.path.join(os.path.dirname(frame.path), import_path)
            )
            return self._enter(frame, path, traversal)

        found = rules.definition(line)
        if found is None:
            frame.doc = []
            return None

        kind, name, column = found
        doc = join_doc(frame.doc)
        frame.doc = []
        members: tuple[Member, ...] = ()
        if kind is DefinitionKind.ENUM:
            members = self._scan_members(frame)
        definitions.append(Definition(
            name=name,
            kind=kind,
            source_file=frame.path,
            line=line_no,
            column=column,
            doc=doc,
            members=members,
        ))
        return None

    def _scan_members(self, frame: _Frame) -> tuple[Member, ...]:
        """Scan an enum body starting at frame.index.

        On a closing brace the frame is moved past it. An unterminated
        body leaves the frame where it was so the rest of the file is
        still scanned.
        """
        rules = self.rules
        members = []
        doc: list[str] = []
        for j in range(frame.index, len(frame.lines)):
            line = frame.lines[j]
            if rules.is_doc_line(line):
                doc.append(rules.doc_text(line))
                continue
            if rules.is_enum_end(line):
                frame.index = j + 1
                break
            name = rules.member_name(line)
            if name is not None:
                members.append(Member(
                    name=name,
                    doc=join_doc(doc),
                    line=j,
                    column=len(line) - len(line.lstrip()),
                ))
            doc = []
        return tuple(members)

    def _enter(
        self,
        frame: _Frame,
        path: str,
        traversal: _Traversal,
    ) -> Optional[_Frame]:
        """Return a frame for an import of `frame`, if it needs scanning.

        A file already scanned deeper than this visit is not rescanned,
        but the imports the depth limit cut from it are followed now.
        """
        depth = frame.depth + 1
        if depth > self.max_depth:
            log.warning(
                'Import depth limit %d reached in %s, skipping %s',
                self.max_depth, frame.path, path,
            )
            traversal.cut.setdefault(frame.path, []).append(path)
            return None

        if path in traversal.visited:
            scanned_at = traversal.depths.get(path)
            if scanned_at is None or scanned_at <= depth:
                return None
            traversal.depths[path] = depth
            deferred = traversal.cut.pop(path, [])
            if not deferred:
                return None
            return _Frame(path, [], depth, deferred=deferred)

        traversal.visited.add(path)
        traversal.depths[path] = depth

        text = self._read(path)
        if text is None:
            log.debug('Import %s from %s contributes nothing', path, frame.path)
            return None
        return _Frame(path, text.split('\n'), depth)

    def _read(self, path: str) -> Optional[str]:
        # A failing reader must not abort the rest of the import graph
        try:
            return self.reader(path)
        except Exception as e:
            log.warning('Reading %s failed: %s', path, e)
            return None


def resolve(
    entry_path: str,
    entry_text: Optional[str] = None,
    visited: Optional[set[str]] = None,
) -> list[Definition]:
    """Resolve with the default rules, disk reader and depth limit."""
    return Resolver().resolve(entry_path, entry_text, visited)


def type_definitions(definitions: Iterable[Definition]) -> list[Definition]:
    """Definitions usable as field types (packets are not)."""
    return [d for d in definitions if d.kind is not DefinitionKind.PACKET]


def find_definition(
    definitions: Iterable[Definition],
    name: str,
    kind: Optional[DefinitionKind] = None,
) -> Optional[Definition]:
    """Return the first definition called `name`, optionally of `kind`."""
    for d in definitions:
        if d.name == name and (kind is None or d.kind is kind):
            return d
    return None


def find_enum(
    definitions: Iterable[Definition], name: str,
) -> Optional[Definition]:
    return find_definition(definitions, name, DefinitionKind.ENUM)
