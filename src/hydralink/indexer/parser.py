"""
Structural parser — YAML text to a flat list of key definitions.

The parser does not build a YAML tree. It scans the document line by line,
keeps a stack of the currently open ancestor keys (key + indentation) and
emits one KeyDefinition per ``key:`` line with its full logical path:

    directory components (relative dirs + file stem) ++ ancestor keys ++ key

It never raises on document content: a line it cannot classify simply
contributes nothing, so a malformed document degrades to fewer definitions.
"""

import re
from pathlib import Path

from .models import Anchor, KeyDefinition

# Characters that cannot start a plain (unquoted) mapping key
_KEY_INDICATORS = frozenset("{}[],&*!|>%@`#")

# Values that carry no scalar content: the key may open a nested block
_NODE_PROPERTY = re.compile(r"^(?:[&!][^\s]*\s*)+$")

_BLOCK_SCALAR = re.compile(r"^[|>][-+0-9]*$")

_KEY_SEPARATOR = re.compile(r":(?=\s|$)")


def directory_components_for(path: Path, root: Path | None) -> list[str]:
    """Logical prefix of a document: its directories under root plus its stem.

    ``<root>/a/b/name.yaml`` → ``["a", "b", "name"]``. A document that is not
    under ``root`` (or has no root) gets an empty prefix.
    """
    if root is None:
        return []
    try:
        rel = path.relative_to(root)
    except ValueError:
        return []
    return [*rel.parent.parts, rel.stem]


def strip_inline_comment(line: str) -> str:
    """Remove a trailing ``# comment`` that is outside quotes."""
    quote: str | None = None
    prev = " "
    i = 0
    while i < len(line):
        ch = line[i]
        if quote:
            if ch == quote:
                # '' is an escaped quote inside single-quoted scalars
                if quote == "'" and i + 1 < len(line) and line[i + 1] == "'":
                    i += 2
                    continue
                quote = None
            elif ch == "\\" and quote == '"':
                i += 2
                continue
        elif ch in "'\"" and (prev.isspace() or prev in "[{,:"):
            quote = ch
        elif ch == "#" and prev.isspace():
            return line[:i].rstrip()
        prev = ch
        i += 1
    return line.rstrip()


def _split_key(content: str) -> tuple[str, int, str] | None:
    """Split ``key: value`` content into (key, raw key length, value).

    Returns None when the content is not a mapping entry.
    """
    if not content:
        return None

    if content[0] in "'\"":
        quote = content[0]
        i = 1
        while i < len(content):
            if content[i] == quote:
                if quote == "'" and content[i + 1:i + 2] == "'":
                    i += 2
                    continue
                break
            if content[i] == "\\" and quote == '"':
                i += 1
            i += 1
        else:
            return None
        raw_len = i + 1
        rest = content[raw_len:].lstrip()
        if not rest.startswith(":") or (len(rest) > 1 and not rest[1].isspace()):
            return None
        key = content[1:i]
        if quote == "'":
            key = key.replace("''", "'")
        return key, raw_len, rest[1:].strip()

    if content[0] in _KEY_INDICATORS or content.startswith("? "):
        return None

    sep = _KEY_SEPARATOR.search(content)
    if sep is None:
        return None
    key = content[:sep.start()].rstrip()
    if not key or key == "<<":
        return None
    return key, len(key), content[sep.end():].strip()


def _opens_block(value: str) -> bool:
    """True if a key with this value may own children on the following lines."""
    if not value:
        return True
    if value[0] in "{[":
        return True
    return bool(_NODE_PROPERTY.match(value))


def _quote_end(text: str, start: int, quote: str) -> int:
    """Index of the closing quote at or after start, or -1."""
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "\\" and quote == '"':
            i += 2
            continue
        if ch == quote:
            if quote == "'" and text[i + 1:i + 2] == "'":
                i += 2
                continue
            return i
        i += 1
    return -1


def _unclosed_quote(value: str) -> str | None:
    """Quote character of a quoted scalar that continues on the next lines."""
    if not value or value[0] not in "'\"":
        return None
    return value[0] if _quote_end(value, 1, value[0]) < 0 else None


def parse_document(
    document_id: str,
    text: str,
    directory_components: list[str] | tuple[str, ...],
) -> list[KeyDefinition]:
    """Parse a YAML document into key definitions, in document order.

    Args:
        document_id: Identifier of the owning document
        text: Full document text
        directory_components: Logical prefix of the document
            (see directory_components_for)

    Returns:
        One KeyDefinition per key line. Never raises on malformed content.
    """
    prefix = tuple(directory_components)
    definitions: list[KeyDefinition] = []
    stack: list[tuple[str, int]] = []
    block_indent: int | None = None
    open_quote: str | None = None

    for line_no, raw_line in enumerate(text.splitlines()):
        stripped = raw_line.lstrip(" \t")
        indent = len(raw_line) - len(stripped)

        # Continuation of a multi-line quoted scalar, up to its closing quote
        if open_quote is not None:
            if _quote_end(raw_line, 0, open_quote) >= 0:
                open_quote = None
            continue

        # Block scalar body: everything more indented than its key
        if block_indent is not None:
            if not stripped or indent > block_indent:
                continue
            block_indent = None

        if not stripped or stripped.startswith("#"):
            continue

        if indent == 0 and (
            stripped.startswith("---") or stripped.startswith("...") or stripped.startswith("%")
        ):
            stack.clear()
            continue

        content = strip_inline_comment(stripped)

        # Block sequence entries: "- key: value" (possibly nested "- - key:")
        column = indent
        while content.startswith("-") and (len(content) == 1 or content[1].isspace()):
            after = content[1:].lstrip(" \t")
            column += len(content) - len(after)
            content = after

        split = _split_key(content)
        if split is None:
            if column > indent:
                # Bare sequence item: "- |" body or "- "multi-line" scalar
                if _BLOCK_SCALAR.match(content):
                    block_indent = indent
                else:
                    open_quote = _unclosed_quote(content)
            continue
        key, raw_len, value = split

        while stack and stack[-1][1] >= column:
            stack.pop()

        path = prefix + tuple(k for k, _ in stack) + (key,)
        definitions.append(
            KeyDefinition(
                logical_path=path,
                document_id=document_id,
                anchor=Anchor(line=line_no, start=column, end=column + raw_len),
            )
        )

        if _BLOCK_SCALAR.match(value):
            block_indent = column
        elif _opens_block(value):
            stack.append((key, column))
        else:
            open_quote = _unclosed_quote(value)

    return definitions
