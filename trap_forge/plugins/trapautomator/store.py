from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .categories import PRIMARY_CATEGORIES, Classification, classify, initialize_triggers, primary_chain
from .definitions import (
    DEFINITION_TYPES,
    count_definitions,
    deep_merge,
    empty_definitions,
    load_builtin_definitions,
    merged,
)
from .errors import CategoryCycleError, NotFoundFailure, PersistenceFailure, ValidationFailure

NO_SUB = "_"


class DefinitionStore:
    """
    Live, queryable view of built-in definitions with the custom layer on top.

    The store owns three things: the base layer (never edited), the custom
    layer (what the author saved) and the merged view everybody reads.
    The merged view only ever changes through `deep_merge`, and a rebuild
    happens on a fresh copy that is swapped in at the end.
    """

    def __init__(
        self,
        base: Optional[Mapping[str, Any]] = None,
        custom: Optional[Mapping[str, Any]] = None,
        *,
        log: Callable[[str], None] = print,
    ):
        self.log = log
        self._base: Dict[str, Any] = merged(empty_definitions(), base or {})
        self._custom: Dict[str, Any] = copy.deepcopy(dict(custom or {}))
        # Trigger lists handed down by inheritance; kept across rebuilds so a
        # later edit to a primary does not leak into subcategories.
        self._inherited: Dict[str, List[str]] = {}
        self.definitions: Dict[str, Any] = {}
        self.rebuild()

    @classmethod
    def from_builtin(cls, custom: Optional[Mapping[str, Any]] = None, *, log: Callable[[str], None] = print) -> "DefinitionStore":
        return cls(load_builtin_definitions(), custom, log=log)

    # -------------------------
    # Building
    # -------------------------

    def _break_cycles(self, live: Dict[str, Any]) -> None:
        """
        Drop `primary` links that close a loop, in the merged view and in the
        custom layer, so a bad override file still loads and the next save
        writes the repaired version.
        """
        cats = live.get("categories")
        if not isinstance(cats, dict):
            return
        for name in list(cats):
            while True:
                try:
                    primary_chain(name, cats)
                    break
                except CategoryCycleError as e:
                    culprit = e.chain[-2]
                    self.log(f"[TrapAutomator] {e}. Dropping the primary of '{culprit}'.")
                    for layer in (cats, self._custom.get("categories")):
                        record = layer.get(culprit) if isinstance(layer, Mapping) else None
                        if isinstance(record, dict):
                            record.pop("primary", None)

    def _prune_inherited(self, categories: Any) -> None:
        # A deleted or re-parented subcategory no longer inherits anything.
        for key in list(self._inherited):
            if classify(key, categories).sub != key:
                del self._inherited[key]

    def rebuild(self) -> None:
        live = merged(self._base, self._custom)
        self._break_cycles(live)
        self._prune_inherited(live.get("categories"))
        counts = count_definitions(live)
        own = self._custom.get("triggers") if isinstance(self._custom.get("triggers"), Mapping) else {}
        carried = {k: v for k, v in self._inherited.items() if not own.get(k)}
        deep_merge(live, {"triggers": carried})

        if counts["trap"] or counts["cache"]:
            patch = initialize_triggers(live, live.get("categories"))
            for key, phrases in patch.items():
                if key not in PRIMARY_CATEGORIES:
                    self._inherited[key] = list(phrases)
        self.definitions = live
        self.log(f"[TrapAutomator] Definitions ready: {counts['trap']} traps, {counts['cache']} caches.")

    @property
    def custom(self) -> Dict[str, Any]:
        """A duplicate of the custom layer, safe to edit."""
        return copy.deepcopy(self._custom)

    def apply_custom(self, custom: Mapping[str, Any], persist: Optional[Callable[[Dict[str, Any]], None]] = None) -> None:
        """
        Replace the custom layer, rebuild the merged view, then persist.

        A failing `persist` raises PersistenceFailure; the rebuilt view is
        kept anyway.
        """
        self._custom = copy.deepcopy(dict(custom))
        self.rebuild()
        if persist is None:
            return
        try:
            persist(self.custom)
        except (OSError, ValueError, TypeError) as e:
            self.log(f"[TrapAutomator] Failed to save custom definitions: {e}")
            raise PersistenceFailure(f"Failed to save custom definitions: {e}") from e

    # -------------------------
    # Lookups
    # -------------------------

    def _section(self, name: str) -> Dict[str, Any]:
        sec = self.definitions.get(name)
        return sec if isinstance(sec, dict) else {}

    @property
    def traps(self) -> Dict[str, Any]:
        return self._section("trap")

    @property
    def caches(self) -> Dict[str, Any]:
        return self._section("cache")

    @property
    def triggers(self) -> Dict[str, Any]:
        return self._section("triggers")

    @property
    def categories(self) -> Dict[str, Any]:
        return self._section("categories")

    def of_type(self, def_type: str) -> Dict[str, Any]:
        if def_type not in DEFINITION_TYPES:
            raise ValidationFailure(f"Unknown definition type '{def_type}'.")
        return self._section(def_type)

    def get(self, def_type: str, key: str) -> Dict[str, Any]:
        d = self.of_type(def_type).get(key)
        if not isinstance(d, dict):
            raise NotFoundFailure(f"No {def_type} definition named '{key}'.")
        return d

    def is_custom(self, def_type: str, key: str) -> bool:
        sec = self._custom.get(def_type)
        return isinstance(sec, Mapping) and key in sec

    def classify(self, category: Any) -> Classification:
        return classify(category, self.categories)

    # -------------------------
    # Category listings
    # -------------------------

    def all_categories(self) -> List[str]:
        cats = set()
        for t in DEFINITION_TYPES:
            for d in self._section(t).values():
                c = d.get("category") if isinstance(d, Mapping) else None
                if c:
                    cats.add(c)
        cats.update(self.categories.keys())
        return sorted(cats)

    def primary_categories(self) -> List[str]:
        prim = set()
        for cat in self.all_categories():
            c = self.classify(cat)
            if not c.sub:
                prim.add(c.primary)
        return sorted(prim) or list(PRIMARY_CATEGORIES)

    def subcategories(self, primary: str) -> List[str]:
        subs = set()
        for t in DEFINITION_TYPES:
            for d in self._section(t).values():
                if not isinstance(d, Mapping):
                    continue
                c = self.classify(d.get("category") or "")
                if c.primary == primary and c.sub:
                    subs.add(c.sub)
        for key, record in self.categories.items():
            if isinstance(record, Mapping) and record.get("primary") == primary:
                subs.add(key)
        return sorted(subs)

    def trigger_category_keys(self) -> List[str]:
        cats = {d.get("category") for d in self.traps.values() if isinstance(d, Mapping) and d.get("category")}
        cats.update(self.categories.keys())
        return sorted(cats)

    def traps_by_category(self) -> Dict[str, Dict[str, List[Tuple[str, str]]]]:
        """primary -> sub (or "_") -> [(key, display name)]"""
        mapping: Dict[str, Dict[str, List[Tuple[str, str]]]] = {}
        for key, d in self.traps.items():
            if not isinstance(d, Mapping):
                continue
            c = self.classify(d.get("category"))
            mapping.setdefault(c.primary, {}).setdefault(c.sub or NO_SUB, []).append((key, d.get("name") or key))
        return mapping

    def available_trap_categories(self) -> List[str]:
        mapping = self.traps_by_category()
        builtin = [p for p in PRIMARY_CATEGORIES if p in mapping]
        others = sorted(p for p in mapping if p not in PRIMARY_CATEGORIES)
        return builtin + others

    def trap_subcategories(self, primary: str) -> List[str]:
        subs = self.traps_by_category().get(primary, {})
        return [k for k, v in subs.items() if k != NO_SUB and v]

    def traps_in(self, primary: str, sub: Optional[str] = None) -> List[Tuple[str, str]]:
        groups = self.traps_by_category().get(primary, {})
        if sub:
            return list(groups.get(sub, []))
        out = list(groups.get(NO_SUB, []))
        if not out:
            for items in groups.values():
                out.extend(items)
        return out

    # -------------------------
    # Triggers
    # -------------------------

    def trigger_list(self, category: str) -> List[str]:
        lst = self.triggers.get(category)
        return list(lst) if isinstance(lst, list) else []

    def triggers_for(self, trap_key: str) -> List[str]:
        """
        Trigger phrases offered for a trap: the subcategory's own list when it
        has one, else the primary's, else "generic". Trimmed and de-duplicated.
        """
        d = self.get("trap", trap_key)
        candidates: List[str] = []
        if d.get("category"):
            c = self.classify(d["category"])
            key = c.sub if c.sub and self.trigger_list(c.sub) else c.primary
            candidates = self.trigger_list(key)
        if not candidates:
            candidates = self.trigger_list("generic")

        seen = set()
        out: List[str] = []
        for t in candidates:
            t = str(t).strip()
            if t and t not in seen:
                seen.add(t)
                out.append(t)
        if not out:
            raise ValidationFailure(
                "No triggers are defined for this category. Add a trigger before creating a trap."
            )
        return out
