"""
Reference extraction — finds ``${a.b.c}`` interpolations in YAML text.

Only plain key paths are resolvable. Resolver calls (``${oc.env:HOME}``,
``${now:%H}``) are computed values and yield no path; of a nested
interpolation only the innermost ``${...}`` resolves. Relative
interpolations (``${..model.name}``) keep their key chain
without the leading dots.
"""

import re
from dataclasses import dataclass

_INTERPOLATION = re.compile(r"\$\{([^{}]*)\}")
_INDEX = re.compile(r"\[[^\]]*\]")
_COMPONENT = re.compile(r"^[^\s:${}\[\]'\"]+$")


@dataclass(frozen=True)
class Reference:
    """An interpolation found in a line of text."""

    text: str             # raw inner text, e.g. "model.optim.lr"
    components: list[str]
    start: int            # column of "$"
    end: int              # column after "}"

    def contains(self, column: int) -> bool:
        return self.start <= column < self.end


def parse_reference(text: str) -> list[str] | None:
    """Split a reference into path components.

    Accepts ``${a.b.c}`` or a bare ``a.b.c``.

    Returns:
        The components, or None when the text is not a plain key path.
    """
    inner = text.strip()
    if inner.startswith("${") and inner.endswith("}"):
        inner = inner[2:-1].strip()
    if not inner or "${" in inner or ":" in inner:
        return None

    inner = _INDEX.sub("", inner.lstrip("."))
    components = inner.split(".")
    if not all(components) or not all(_COMPONENT.match(c) for c in components):
        return None
    return components


def find_references(line: str) -> list[Reference]:
    """All resolvable interpolations of a line, left to right."""
    references: list[Reference] = []
    for m in _INTERPOLATION.finditer(line):
        components = parse_reference(m.group(1))
        if components is None:
            continue
        references.append(
            Reference(text=m.group(1).strip(), components=components, start=m.start(), end=m.end())
        )
    return references


def reference_at(line: str, column: int) -> Reference | None:
    """The interpolation covering a 0-based column, if any."""
    for reference in find_references(line):
        if reference.contains(column):
            return reference
    return None
