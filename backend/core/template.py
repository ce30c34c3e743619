"""
Command templates - named placeholder substitution into G-code text.

A template is one or more newline separated lines with placeholders of the
form {Name} or {Name:Format}. Format is printf style ("X%.4f") and defaults
to "%s", which renders booleans as true/false. Substituting None removes
the placeholder entirely, which is how unchanged axes are left out of a
move.
"""

import re
from typing import Any, List, Optional

from .errors import TemplateError


PLACEHOLDER = re.compile(r"\{(\w+)(?::(.+?))?\}")

# One printf conversion, e.g. %s, %d, %.4f, %+08.3e
_CONVERSION = re.compile(r"%[-#0 +]*\d*(?:\.\d+)?[diouxXeEfFgGcrsa]")


def substitute_variable(template: Optional[str], name: str, value: Any) -> Optional[str]:
    """
    Replace every {name} / {name:format} in template.

    Placeholders for other names are left for a later pass. A None template
    stays None ("no command for this situation").
    """
    if template is None:
        return None

    def replace(match: re.Match) -> str:
        if match.group(1) != name:
            return match.group(0)
        if value is None:
            return ""
        fmt = match.group(2) or "%s"
        rendered = value
        if isinstance(value, bool) and _is_string_format(fmt):
            rendered = "true" if value else "false"
        try:
            return fmt % (rendered,)
        except (TypeError, ValueError) as e:
            raise TemplateError(
                f"Cannot format {name}={value!r} with {fmt!r} in {template!r}: {e}"
            ) from e

    return PLACEHOLDER.sub(replace, template)


def _is_string_format(fmt: str) -> bool:
    conversion = _CONVERSION.search(fmt.replace("%%", ""))
    return conversion is not None and conversion.group(0).endswith("s")


def validate_template(template: Optional[str]) -> Optional[str]:
    """Check every placeholder format holds exactly one printf conversion."""
    if template is None:
        return None
    for match in PLACEHOLDER.finditer(template):
        fmt = match.group(2)
        if fmt is None:
            continue
        conversions = _CONVERSION.findall(fmt.replace("%%", ""))
        if len(conversions) != 1:
            raise TemplateError(
                f"Placeholder {match.group(0)!r} needs exactly one % conversion, "
                f"found {len(conversions)}"
            )
    return template


def split_lines(template: Optional[str]) -> List[str]:
    """Trimmed, non-empty lines of a multi-line template, in source order."""
    if not template:
        return []
    lines = [line.strip() for line in template.splitlines()]
    return [line for line in lines if line]
