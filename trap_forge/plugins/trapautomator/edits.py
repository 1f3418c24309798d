"""
Edits to the custom (override) layer.

Every function takes the current store plus a duplicate of the custom layer
(`store.custom`), applies one change to the duplicate and returns it. The
caller hands the result to `DefinitionStore.apply_custom`, which rebuilds and
persists. Built-in entries are never removed, only shadowed by a custom
entry under the same key.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from trap_forge.core.text import slugify

from .categories import primary_chain
from .definitions import DEFAULT_DC, LOCATIONS, SAVE_TYPES, TIERS, deep_merge
from .errors import NotFoundFailure, ValidationFailure
from .store import DefinitionStore


def _section(custom: Dict[str, Any], name: str) -> Dict[str, Any]:
    sec = custom.get(name)
    if not isinstance(sec, dict):
        sec = {}
        custom[name] = sec
    return sec


def _slug_or_fail(raw: Any, what: str) -> str:
    if not str(raw or "").strip():
        raise ValidationFailure(f"{what} cannot be empty.")
    return slugify(raw)


# -----------------------------
# Categories
# -----------------------------

def add_category(custom: Dict[str, Any], raw_id: Any) -> Dict[str, Any]:
    cat = _slug_or_fail(raw_id, "Category ID")
    cats = _section(custom, "categories")
    if cat in cats:
        raise ValidationFailure(f'Category "{cat}" already exists in custom definitions.')
    cats[cat] = {"name": cat}
    return custom


def add_subcategory(custom: Dict[str, Any], primary: str, raw_id: Any) -> Dict[str, Any]:
    sub = _slug_or_fail(raw_id, "Subcategory ID")
    if not primary:
        raise ValidationFailure("A subcategory needs a primary category.")
    cats = _section(custom, "categories")
    if sub in cats:
        raise ValidationFailure(f'Subcategory "{sub}" already exists in custom definitions.')
    cats[sub] = {"name": sub, "primary": primary}
    primary_chain(sub, cats)
    return custom


def rename_category(custom: Dict[str, Any], old: str, raw_new: Any) -> Dict[str, Any]:
    """
    Re-key a custom category (or create an override for a built-in one).
    Definitions that use the old name are not rewritten.
    """
    new = _slug_or_fail(raw_new, "New category name")
    cats = _section(custom, "categories")
    record = cats.pop(old, None)
    renamed: Dict[str, Any] = {"name": new}
    if isinstance(record, Mapping) and record.get("primary"):
        renamed["primary"] = record["primary"]
    cats[new] = renamed
    primary_chain(new, cats)
    return custom


def delete_category(custom: Dict[str, Any], cat: str) -> Dict[str, Any]:
    """Remove a custom category with its custom triggers, traps, caches and subcategories."""
    cats = _section(custom, "categories")
    if cat not in cats:
        raise ValidationFailure("Only custom categories may be deleted.")
    del cats[cat]
    _section(custom, "triggers").pop(cat, None)
    for def_type in ("trap", "cache"):
        defs = _section(custom, def_type)
        for key in [k for k, v in defs.items() if isinstance(v, Mapping) and v.get("category") == cat]:
            del defs[key]
    for key in [k for k, v in cats.items() if isinstance(v, Mapping) and v.get("primary") == cat]:
        del cats[key]
    return custom


# -----------------------------
# Triggers
# -----------------------------
# The merged list replaces lists wholesale, so each edit starts from what the
# author currently sees and stores the full list back.

def _current_triggers(store: DefinitionStore, custom: Mapping[str, Any], cat: str) -> List[str]:
    out = store.trigger_list(cat)
    own = custom.get("triggers", {}).get(cat) if isinstance(custom.get("triggers"), Mapping) else None
    for t in own if isinstance(own, list) else []:
        if t not in out:
            out.append(t)
    return out


def add_trigger(store: DefinitionStore, custom: Dict[str, Any], cat: str, text: str) -> Dict[str, Any]:
    text = (text or "").strip()
    if not text:
        raise ValidationFailure("Trigger text cannot be empty.")
    if not cat:
        raise ValidationFailure("Pick a category for the trigger.")
    phrases = _current_triggers(store, custom, cat)
    if text not in phrases:
        phrases.append(text)
    _section(custom, "triggers")[cat] = phrases
    return custom


def edit_trigger(store: DefinitionStore, custom: Dict[str, Any], cat: str, old: str, new: str) -> Dict[str, Any]:
    new = (new or "").strip()
    if not new:
        raise ValidationFailure("You must enter a new trigger text.")
    phrases = _current_triggers(store, custom, cat)
    if old not in phrases:
        raise NotFoundFailure(f'Trigger "{old}" is not defined for "{cat}".')
    phrases = [new if t == old else t for t in phrases]
    _section(custom, "triggers")[cat] = list(dict.fromkeys(phrases))
    return custom


def delete_trigger(store: DefinitionStore, custom: Dict[str, Any], cat: str, old: str) -> Dict[str, Any]:
    phrases = _current_triggers(store, custom, cat)
    if old not in phrases:
        raise NotFoundFailure("Cannot delete a trigger that is not defined.")
    _section(custom, "triggers")[cat] = [t for t in phrases if t != old]
    return custom


# -----------------------------
# Traps and caches
# -----------------------------

def clean_hint_sets(sets: Sequence[Mapping[str, Any]]) -> List[Dict[str, str]]:
    out = []
    for s in sets:
        cleaned = {tier: str(s.get(tier) or "").strip() for tier in TIERS}
        if any(cleaned.values()):
            out.append(cleaned)
    return out


def _all_locations(sets: List[Dict[str, str]]) -> Dict[str, List[Dict[str, str]]]:
    return {loc: [dict(s) for s in sets] for loc in LOCATIONS}


def save_trap(
    custom: Dict[str, Any],
    *,
    name: str,
    category: str,
    save: str,
    flavor: str,
    fail: str = "",
    success: str = "",
    hint_sets: Sequence[Mapping[str, Any]] = (),
    key: Optional[str] = None,
    dc: int = DEFAULT_DC,
) -> Dict[str, Any]:
    """Add a trap, or override one when `key` names an existing definition."""
    name = (name or "").strip()
    flavor = (flavor or "").strip()
    if not name or not flavor:
        raise ValidationFailure("Trap name and description are required.")
    if not category:
        raise ValidationFailure("Please select a category.")
    save = (save or "").lower()
    if save not in SAVE_TYPES:
        raise ValidationFailure(f"Unknown save type '{save}'.")
    sets = clean_hint_sets(hint_sets)
    if not sets or not all(sets[0].values()):
        raise ValidationFailure("At least one complete hint set must be provided.")

    _section(custom, "trap")[key or slugify(name)] = {
        "name": name,
        "category": category,
        "defaultSave": save,
        "defaultDC": int(dc),
        "description": {"flavor": flavor, "fail": (fail or "").strip(), "success": (success or "").strip()},
        "hints": _all_locations(sets),
    }
    return custom


def save_cache(
    custom: Dict[str, Any],
    *,
    name: str,
    category: str,
    found: str = "",
    hint_sets: Sequence[Mapping[str, Any]] = (),
    key: Optional[str] = None,
) -> Dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("Cache name cannot be empty.")
    sets = clean_hint_sets(hint_sets)
    if not sets or not sets[0]["+2"]:
        raise ValidationFailure("At least one hint set must be filled in.")

    _section(custom, "cache")[key or slugify(name)] = {
        "name": name,
        "category": category,
        "description": {"found": (found or "").strip()},
        "hints": _all_locations(sets),
    }
    return custom


def delete_definition(custom: Dict[str, Any], def_type: str, key: str) -> Dict[str, Any]:
    defs = custom.get(def_type)
    if not isinstance(defs, dict) or key not in defs:
        raise ValidationFailure(f"Only custom {def_type}s may be deleted.")
    del defs[key]
    return custom


def import_definitions(custom: Dict[str, Any], data: Any) -> Dict[str, Any]:
    """Deep-merge a definitions document (same shape as the built-ins) into the custom layer."""
    if not isinstance(data, Mapping):
        raise ValidationFailure("Imported definitions must be a JSON object.")
    unknown = [k for k in data if k not in ("trap", "cache", "triggers", "categories")]
    if unknown:
        raise ValidationFailure(f"Unknown definition sections: {', '.join(sorted(unknown))}")
    deep_merge(custom, data)
    cats = _section(custom, "categories")
    for cat in list(cats):
        primary_chain(cat, cats)
    return custom
