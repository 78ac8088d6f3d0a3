"""Completion, hover and definition helpers built on resolved symbols."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Callable, Optional

from lsprotocol import types as lsp
from pygls import uris

from .resolver import find_definition, find_enum, type_definitions
from .symbols import Definition, DefinitionKind, Member

KEYWORDS = (
    'import', 'const', 'enum', 'true', 'false', 'prefix', 'until', 'max',
    'switch', 'case', 'default',
)

BUILTIN_TYPES = (
    'bool', 'uint8', 'uint16', 'uint32', 'uint64',
    'int8', 'int16', 'int32', 'int64',
    'float32', 'float64', 'string', 'bytes',
    'float', 'double', 'byte', 'u8', 'u16', 'u32', 'u64',
    'i8', 'i16', 'i32', 'i64', 'f32', 'f64',
)

# Valid underlying types after 'enum Name :'
ENUM_BASE_TYPES = (
    'uint8', 'u8', 'byte',
    'int8', 'i8',
    'uint16', 'u16',
    'int16', 'i16',
    'uint32', 'u32',
    'int32', 'i32',
    'uint64', 'u64',
    'int64', 'i64',
)

DECORATORS = (
    'version', 'import', 'big_endian', 'little_endian', 'be', 'le',
    'fill', 'crc_refin', 'crc_refout', 'optional',
    'count', 'const', 'pad', 'range', 'depends_on',
    'crc', 'crc_poly', 'crc_init', 'crc_xor',
    'scale', 'offset', 'mul', 'div', 'add', 'sub',
)

SNIPPETS = (
    ('struct', 'struct ${1:Name} {\n\t$0\n}', 'Define a new struct'),
    ('packet', 'packet ${1:Name} {\n\t$0\n}', 'Define a new packet'),
    ('enum', 'enum ${1:Name} : ${2:uint32} {\n\t${3:Member} = ${4:0}\n}',
     'Define a new enum'),
)

ENUM_BASE_RE = re.compile(r'enum\s+\w+\s*:\s*$')
ENUM_ACCESS_RE = re.compile(r'([A-Z][a-zA-Z0-9_]*)\.$')
WORD_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')


@dataclass
class Word:
    text: str
    start: int
    end: int
    # 'Color' for the word 'Red' in 'Color.Red'
    qualifier: Optional[str] = None


def word_at(line: str, character: int) -> Optional[Word]:
    """Find the identifier touching `character` on a line."""
    for m in WORD_RE.finditer(line):
        if m.start() <= character <= m.end():
            qualifier = None
            before = line[:m.start()]
            if before.endswith('.'):
                q = re.search(r'([A-Za-z_][A-Za-z0-9_]*)\.$', before)
                if q:
                    qualifier = q.group(1)
            return Word(m.group(0), m.start(), m.end(), qualifier)
        if m.start() > character:
            break
    return None


def completion_items(
    line_prefix: str,
    load_definitions: Callable[[], list[Definition]],
) -> list[lsp.CompletionItem]:
    """Completion items for the text left of the cursor.

    `load_definitions` is only called when user symbols are needed.
    """
    if ENUM_BASE_RE.search(line_prefix):
        return [
            lsp.CompletionItem(label=t, kind=lsp.CompletionItemKind.Class)
            for t in ENUM_BASE_TYPES
        ]

    if line_prefix.endswith('@'):
        return [
            lsp.CompletionItem(label=d, kind=lsp.CompletionItemKind.Function)
            for d in DECORATORS
        ]
    if line_prefix.strip().endswith('@'):
        return []

    m = ENUM_ACCESS_RE.search(line_prefix)
    if m:
        return enum_member_items(load_definitions(), m.group(1))

    items = [
        lsp.CompletionItem(label=k, kind=lsp.CompletionItemKind.Keyword)
        for k in KEYWORDS
    ]
    items.extend(
        lsp.CompletionItem(label=t, kind=lsp.CompletionItemKind.Class)
        for t in BUILTIN_TYPES
    )
    items.extend(user_type_items(load_definitions()))
    for label, body, detail in SNIPPETS:
        items.append(lsp.CompletionItem(
            label=label,
            kind=lsp.CompletionItemKind.Snippet,
            detail=detail,
            insert_text=body,
            insert_text_format=lsp.InsertTextFormat.Snippet,
        ))
    return items


def user_type_items(
    definitions: list[Definition],
) -> list[lsp.CompletionItem]:
    items = []
    for d in type_definitions(definitions):
        kind = (
            lsp.CompletionItemKind.Enum if d.kind is DefinitionKind.ENUM
            else lsp.CompletionItemKind.Struct
        )
        items.append(lsp.CompletionItem(
            label=d.name,
            kind=kind,
            detail=f'Defined in {os.path.basename(d.source_file)}',
            documentation=_markdown(d.doc),
        ))
    return items


def enum_member_items(
    definitions: list[Definition], enum_name: str,
) -> list[lsp.CompletionItem]:
    enum_def = find_enum(definitions, enum_name)
    if enum_def is None:
        return []
    return [
        lsp.CompletionItem(
            label=m.name,
            kind=lsp.CompletionItemKind.EnumMember,
            detail=f'{enum_name}.{m.name}',
            documentation=_markdown(m.doc),
        )
        for m in enum_def.members
    ]


def _markdown(text: Optional[str]) -> Optional[lsp.MarkupContent]:
    if not text:
        return None
    return lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=text)


def format_definition_hover(d: Definition) -> str:
    parts = [
        '```concordia',
        f'{d.kind.value} {d.name}',
        '```',
        f'Defined in **{os.path.basename(d.source_file)}**',
    ]
    if d.doc:
        parts.append('')
        parts.append('___')
        parts.append(d.doc)
    return '\n'.join(parts)


def format_member_hover(enum_def: Definition, member: Member) -> str:
    parts = [
        '```concordia',
        f'{enum_def.name}.{member.name}',
        '```',
        f'*(enum {enum_def.name}, defined in '
        f'{os.path.basename(enum_def.source_file)})*',
    ]
    if member.doc:
        parts.append('')
        parts.append('___')
        parts.append(member.doc)
    return '\n'.join(parts)


def lookup(
    definitions: list[Definition], word: Word,
) -> tuple[Optional[Definition], Optional[Member]]:
    """Resolve a word to a definition, or to an enum and its member."""
    if word.qualifier is not None:
        enum_def = find_enum(definitions, word.qualifier)
        if enum_def is not None:
            member = enum_def.member(word.text)
            if member is not None:
                return enum_def, member
    return find_definition(definitions, word.text), None


def hover_markdown(
    definitions: list[Definition], word: Word,
) -> Optional[str]:
    d, member = lookup(definitions, word)
    if d is None:
        return None
    if member is not None:
        return format_member_hover(d, member)
    return format_definition_hover(d)


def definition_location(
    definitions: list[Definition], word: Word,
) -> Optional[lsp.Location]:
    d, member = lookup(definitions, word)
    if d is None:
        return None
    target = member if member is not None else d
    start = lsp.Position(line=target.line, character=target.column)
    end = lsp.Position(
        line=target.line, character=target.column + len(target.name),
    )
    return lsp.Location(
        uri=uris.from_fs_path(d.source_file),
        range=lsp.Range(start=start, end=end),
    )
