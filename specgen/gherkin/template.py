from __future__ import annotations

import re
from typing import Any, Sequence


# {{ and }} are literal braces, {N} is the N-th argument
_PLACEHOLDER = re.compile(r"\{\{|\}\}|\{(\d+)\}")


def format_arg(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def render_template(template: str, args: Sequence[Any]) -> str:
    """Substitute positional ``{N}`` placeholders with their arguments.

    An index past the end of ``args`` renders as an empty string; extra
    arguments are ignored.
    """

    def _substitute(match: "re.Match[str]") -> str:
        token = match.group(0)
        if token == "{{":
            return "{"
        if token == "}}":
            return "}"
        index = int(match.group(1))
        return format_arg(args[index]) if index < len(args) else ""

    return _PLACEHOLDER.sub(_substitute, template)


def placeholder_count(template: str) -> int:
    """Number of arguments the template needs (highest index + 1)."""
    indexes = [int(m.group(1)) for m in _PLACEHOLDER.finditer(template) if m.group(1) is not None]
    return max(indexes) + 1 if indexes else 0
