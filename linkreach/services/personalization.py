from __future__ import annotations

import re
from typing import Any

# {firstName}, {FirstName}, {first_name}, {FIRSTNAME} all normalise to "firstname"
PLACEHOLDER_REGEX = re.compile(r"\{\s*([A-Za-z][A-Za-z_]*)\s*\}")


def _attr(prospect: Any, name: str) -> str:
    if isinstance(prospect, dict):
        value = prospect.get(name)
    else:
        value = getattr(prospect, name, None)
    if value is None:
        return ""
    return str(value)


def split_full_name(full_name: str | None) -> tuple[str, str]:
    parts = (full_name or "").strip().split(" ", 1)
    first = parts[0]
    last = parts[1].strip() if len(parts) > 1 else ""
    return first, last


def prospect_tokens(prospect: Any) -> dict[str, str]:
    full_name = _attr(prospect, "full_name").strip()
    first, last = split_full_name(full_name)
    return {
        "firstname": first,
        "lastname": last,
        "fullname": full_name,
        "company": _attr(prospect, "company"),
        "headline": _attr(prospect, "headline"),
        "location": _attr(prospect, "location"),
        "email": _attr(prospect, "email"),
    }


def render(template: str | None, prospect: Any) -> str:
    """Fill the supported placeholders of ``template`` from ``prospect``.

    Known tokens with no prospect value become empty strings; unknown tokens
    are left in place so authoring mistakes stay visible.
    """
    if not template:
        return ""
    tokens = prospect_tokens(prospect)

    def _substitute(match: re.Match) -> str:
        key = match.group(1).replace("_", "").lower()
        if key in tokens:
            return tokens[key]
        return match.group(0)

    return PLACEHOLDER_REGEX.sub(_substitute, template)
