from __future__ import annotations

import re
from typing import Any

_NON_SLUG = re.compile(r"[^a-z0-9]+")

SLUG_FALLBACK = "new-item"


def slugify(value: Any) -> str:
    """
    Turn an author-supplied string into a safe identifier key.

    "  Hidden Vault!! " -> "hidden-vault". Anything that leaves nothing
    behind (empty, all symbols) becomes "new-item".
    """
    s = str(value if value is not None else "").strip().lower()
    s = _NON_SLUG.sub("-", s).strip("-")
    return s or SLUG_FALLBACK


def capitalize_first(s: str) -> str:
    return s[:1].upper() + s[1:]
