from __future__ import annotations

import re
from typing import Any, List, Optional, Pattern, Tuple

from trap_forge.core.text import capitalize_first

# -----------------------------
# Normalizer rules
# -----------------------------
# Applied once each, in this order. The structured leading clauses must get
# their chance before the bare placeholder removal eats the tokens they
# anchor on.

FlavorRule = Tuple[str, Pattern[str], str]

FLAVOR_RULES: List[FlavorRule] = [
    ("as-you-trigger-token", re.compile(r"^As you trigger \{trigger\},\s*", re.I), ""),
    ("as-you-token", re.compile(r"^As you \{trigger\},\s*", re.I), ""),
    ("as-you-clause", re.compile(r"^As you [^,]*?,\s*", re.I), ""),
    ("when-you-trigger-token", re.compile(r"^When you trigger \{trigger\},\s*", re.I), ""),
    ("when-token-clause", re.compile(r"^When \{trigger\}[^,]*?,\s*", re.I), ""),
    ("you-token-location-and", re.compile(r"^You\s*\{trigger\}\s*\{location\}\s*and\s*", re.I), ""),
    ("you-token-and", re.compile(r"^You\s*\{trigger\}\s*and\s*", re.I), ""),
    ("you-token-location", re.compile(r"^You\s*\{trigger\}\s*\{location\}\s*", re.I), ""),
]

_PLACEHOLDER = re.compile(r"\{(?:trigger|location)\}", re.I)
# "from the" with nothing after it but a comma, punctuation or the end.
_ORPHAN_PREPOSITION = re.compile(r"\s+(?:in|on|from)\s+the\s*(?:,|(?=[.;:!?]|$))", re.I)
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([,.;:!?])")
_LEADING_YOU = re.compile(r"^You\s+", re.I)
_LEADING_JUNK = re.compile(r"^[,.\s]+")
_TRAILING_JUNK = re.compile(r"[\s,]+$")

SENSORY_VERBS = (
    "hear", "feel", "sense", "see", "notice", "spot", "detect", "smell",
    "taste", "observe", "perceive", "catch",
)

LOCATION_PHRASES = {
    "floor": "on the floor",
    "wall": "on the wall",
    "ceiling": "on the ceiling",
    "other": "",
}


def _strip_placeholders(s: str) -> str:
    # Loop so that "{trig{trigger}ger}" cannot reassemble a token.
    while True:
        s, n = _PLACEHOLDER.subn("", s)
        if not n:
            return s


def normalize(raw: Any) -> str:
    """
    Strip trigger/location references from a template description and
    return a clean, capitalised sentence with no placeholder left in it.
    """
    if not raw or not isinstance(raw, str):
        return ""
    s = raw.strip()
    for _name, pattern, repl in FLAVOR_RULES:
        s = pattern.sub(repl, s, count=1)
    s = _strip_placeholders(s)
    s = _ORPHAN_PREPOSITION.sub(" ", s)
    s = _WHITESPACE.sub(" ", s)
    s = _SPACE_BEFORE_PUNCT.sub(r"\1", s)
    s = _LEADING_YOU.sub("", s, count=1)
    s = _TRAILING_JUNK.sub("", _LEADING_JUNK.sub("", s.strip()))
    return capitalize_first(s)


def location_phrase(location: Optional[str]) -> str:
    return LOCATION_PHRASES.get(str(location or ""), "")


def with_subject(description: str) -> str:
    """'Hear a rumble.' -> 'You hear a rumble.'; anything else is returned as is."""
    words = description.split()
    first = words[0].lower() if words else ""
    if first in SENSORY_VERBS:
        return f"You {description[:1].lower()}{description[1:]}"
    return description


def compose_flavor(template: Any, trigger: Optional[str], location: Optional[str]) -> str:
    """
    Build the final narrative.

    With a trigger: "You <trigger> <location phrase>. <description>".
    Without one (caches): just the description.
    """
    desc = with_subject(normalize(template))
    trigger = (trigger or "").strip()
    if not trigger:
        return desc.strip()
    loc = location_phrase(location)
    prefix = f"You {trigger}{' ' + loc if loc else ''}."
    return f"{prefix} {desc}".strip()
