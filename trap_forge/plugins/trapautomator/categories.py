from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .definitions import deep_merge
from .errors import CategoryCycleError

# -----------------------------
# Built-in hierarchy
# -----------------------------

PRIMARY_CATEGORIES = ("generic", "sci-fi", "magical", "natural", "grimdark")

GRIMDARK_SUBFACTIONS = (
    "imperial", "ork", "eldar", "necron", "tau", "chaos", "daemon", "sisters",
    "adeptus", "tyranid", "harlequin", "dark-eldar", "dark eldar",
)

# Keyword families, tried in order after the grimdark list.
_KEYWORD_PRIMARIES = (
    (re.compile(r"sci[- ]?fi"), "sci-fi"),
    (re.compile(r"magic|magical|arcane"), "magical"),
    (re.compile(r"natural|nature"), "natural"),
)

# Every phrase must read well in "You <trigger> <location phrase>."
DEFAULT_TRIGGERS: Dict[str, List[str]] = {
    "generic": [
        "step on a pressure plate",
        "bump into a tripwire",
        "pull a hidden lever",
        "open a trapped chest",
        "turn the wrong doorknob",
        "push a false door",
    ],
    "sci-fi": [
        "trigger a motion sensor",
        "trigger a biometric scanner",
        "break a laser tripwire",
        "activate an infrared sensor",
        "trigger a proximity alarm",
        "walk through a force field",
    ],
    "magical": [
        "disturb a runic sigil",
        "trigger a magical ward",
        "activate a glyph of warding",
        "break an arcane seal",
        "speak a forbidden phrase",
        "touch a cursed idol",
    ],
    "natural": [
        "trip a snare",
        "step on a loose root",
        "brush against a vine",
        "set off a hidden pit",
        "disturb a beehive",
        "disturb a nest",
    ],
    "grimdark": [
        "step on a landmine",
        "break a tripwire of skulls",
        "activate a proximity scanner",
        "breach a security field",
        "disturb a servo-skull",
        "open a forbidden vault",
    ],
}


@dataclass(frozen=True)
class Classification:
    primary: str
    sub: Optional[str] = None


# -----------------------------
# Custom category records
# -----------------------------

def _record(custom_categories: Optional[Mapping[str, Any]], name: str) -> Any:
    if not isinstance(custom_categories, Mapping):
        return None
    return custom_categories.get(name)


def _primary_of(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    parent = str(record.get("primary") or "").strip().lower()
    return parent or None


def primary_chain(name: str, custom_categories: Optional[Mapping[str, Any]]) -> List[str]:
    """
    [name, parent, grandparent, ...] following custom `primary` links up to a
    category that has none. Raises CategoryCycleError instead of looping.
    """
    chain = [name]
    seen = {name}
    parent = _primary_of(_record(custom_categories, name))
    while parent:
        if parent in seen:
            raise CategoryCycleError(chain + [parent])
        chain.append(parent)
        seen.add(parent)
        parent = _primary_of(_record(custom_categories, parent))
    return chain


def resolve_primary(name: str, custom_categories: Optional[Mapping[str, Any]]) -> str:
    return primary_chain(name, custom_categories)[-1]


def classify(category_name: Any, custom_categories: Optional[Mapping[str, Any]] = None) -> Classification:
    """
    Map a category string onto (primary, sub).

    Custom records win: with a `primary` the name is a subcategory of it,
    without one the name is its own primary. Otherwise the built-in
    heuristics apply and anything unrecognised lands in "generic".
    """
    name = str(category_name or "").lower()

    record = _record(custom_categories, name)
    if record is not None:
        if _primary_of(record):
            # Two levels only: a nested subcategory reports the root of its chain.
            return Classification(resolve_primary(name, custom_categories), name)
        return Classification(name, None)

    if name in GRIMDARK_SUBFACTIONS:
        return Classification("grimdark", name)
    for pattern, primary in _KEYWORD_PRIMARIES:
        if pattern.search(name):
            return Classification(primary, None)
    return Classification("generic", None)


# -----------------------------
# Trigger inheritance
# -----------------------------

def initialize_triggers(
    definitions: Dict[str, Any],
    custom_categories: Optional[Mapping[str, Any]] = None,
) -> Dict[str, List[str]]:
    """
    Seed and inherit trigger lists, then merge them into `definitions`.

    1. built-in primaries without a non-empty list get the default phrases;
    2. custom subcategories without a list copy their nearest ancestor's;
    3. subcategories used by trap definitions copy their primary's.

    Lists are copied, never shared, so later edits to a primary do not
    reach subcategories that already inherited. Keys that already hold a
    non-empty list are left alone, which makes a second run a no-op.
    Returns the patch that was merged.
    """
    table = definitions.get("triggers")
    if not isinstance(table, Mapping):
        table = {}
    patch: Dict[str, List[str]] = {}

    def current(key: str) -> List[str]:
        lst = patch.get(key, table.get(key))
        return lst if isinstance(lst, list) else []

    for cat, phrases in DEFAULT_TRIGGERS.items():
        if not current(cat):
            patch[cat] = list(phrases)

    if isinstance(custom_categories, Mapping):
        for sub, record in custom_categories.items():
            if not _primary_of(record) or current(sub):
                continue
            for ancestor in primary_chain(sub, custom_categories)[1:]:
                if current(ancestor):
                    patch[sub] = list(current(ancestor))
                    break

    traps = definitions.get("trap")
    if isinstance(traps, Mapping):
        for d in traps.values():
            cat = d.get("category") if isinstance(d, Mapping) else None
            if not cat:
                continue
            c = classify(cat, custom_categories)
            if c.sub and not current(c.sub) and current(c.primary):
                patch[c.sub] = list(current(c.primary))

    deep_merge(definitions, {"triggers": patch})
    return patch
