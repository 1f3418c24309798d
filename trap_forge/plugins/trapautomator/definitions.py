from __future__ import annotations

import copy
import json
from importlib import resources
from typing import Any, Dict, Mapping, MutableMapping

# -----------------------------
# Shared vocabulary
# -----------------------------

DEFINITION_TYPES = ("trap", "cache")
LOCATIONS = ("floor", "wall", "ceiling", "other")
TIERS = ("+2", "+4", "+6", "+10")
SAVE_TYPES = ("str", "dex", "con", "int", "wis", "cha")
DEFAULT_DC = 10

BUILTIN_RESOURCE = "builtin_defs.json"


def empty_definitions() -> Dict[str, Any]:
    return {"trap": {}, "cache": {}, "triggers": {}, "categories": {}}


# -----------------------------
# Deep merge
# -----------------------------

def deep_merge(target: MutableMapping[str, Any], source: Any) -> MutableMapping[str, Any]:
    """
    Merge `source` into `target` in place and return `target`.

    Mappings merge key by key. Everything else (scalars, lists, None)
    replaces the target value wholesale, so an override layer can swap out
    a whole list of hint sets instead of appending to it.
    """
    if not isinstance(source, Mapping):
        return target
    for key, value in source.items():
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, MutableMapping):
                existing = {}
                target[key] = existing
            deep_merge(existing, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def merged(base: Mapping[str, Any], *layers: Any) -> Dict[str, Any]:
    """Pure variant: a fresh structure with every layer merged over `base` in order."""
    out: Dict[str, Any] = copy.deepcopy(dict(base))
    for layer in layers:
        deep_merge(out, layer)
    return out


# -----------------------------
# Payload loading
# -----------------------------

def load_builtin_definitions() -> Dict[str, Any]:
    """Read the definition payload bundled with the plugin."""
    ref = resources.files(__package__).joinpath("data", BUILTIN_RESOURCE)
    data = json.loads(ref.read_text(encoding="utf-8"))
    return merged(empty_definitions(), data)


def count_definitions(definitions: Mapping[str, Any]) -> Dict[str, int]:
    out = {}
    for t in DEFINITION_TYPES:
        defs = definitions.get(t)
        out[t] = len(defs) if isinstance(defs, Mapping) else 0
    return out
