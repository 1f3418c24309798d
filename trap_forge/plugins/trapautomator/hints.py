from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .definitions import TIERS

HINT_PADDING = 40
HINT_ACTOR_PREFIX = "Hint "


# -----------------------------
# Selection
# -----------------------------

def _text(value: Any) -> str:
    return str(value) if value else ""


def _empty_hints() -> Dict[str, str]:
    return {tier: "" for tier in TIERS}


def select_hints(definition: Mapping[str, Any], location: str, rng: Optional[random.Random] = None) -> Dict[str, str]:
    """
    Pick the four tier hints for one location.

    A list of authored sets yields one whole set, so the +2 and +10 clues
    come from the same idea. The legacy per-tier shape picks each tier on
    its own. Empty strings are normal: they mean "no token for this tier".
    """
    rng = rng or random.Random()
    hints = definition.get("hints") if isinstance(definition, Mapping) else None
    loc_hints = hints.get(location) if isinstance(hints, Mapping) else None

    if isinstance(loc_hints, list) and loc_hints:
        chosen = loc_hints[rng.randrange(len(loc_hints))]
        if not isinstance(chosen, Mapping):
            chosen = {}
        return {tier: _text(chosen.get(tier)) for tier in TIERS}

    out = _empty_hints()
    if isinstance(loc_hints, Mapping):
        for tier in TIERS:
            options = loc_hints.get(tier)
            if isinstance(options, list) and options:
                out[tier] = _text(rng.choice(options))
    return out


def as_hint_sets(loc_hints: Any) -> List[Dict[str, str]]:
    """
    Editing view of a location's hints: always a list of sets.

    Legacy per-tier lists are zipped by index along the +2 list.
    """
    if isinstance(loc_hints, list):
        return [
            {tier: _text(s.get(tier)) for tier in TIERS}
            for s in loc_hints
            if isinstance(s, Mapping)
        ]
    if not isinstance(loc_hints, Mapping):
        return []
    columns = {tier: loc_hints.get(tier) if isinstance(loc_hints.get(tier), list) else [] for tier in TIERS}
    return [
        {tier: _text(columns[tier][i]) if i < len(columns[tier]) else "" for tier in TIERS}
        for i in range(len(columns["+2"]))
    ]


# -----------------------------
# Placement around an anchor rectangle
# -----------------------------

@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class HintSpawn:
    tier: str
    text: str
    actor_name: str
    x: float
    y: float


def hint_actor_name(tier: str) -> str:
    return f"{HINT_ACTOR_PREFIX}{tier}"


def hint_spots(anchor: Rect, padding: float = HINT_PADDING) -> List[Tuple[float, float]]:
    """Above, right, below, left of the rectangle, each `padding` away from its edge."""
    cx = anchor.x + anchor.width / 2
    cy = anchor.y + anchor.height / 2
    return [
        (cx, anchor.y - padding),
        (anchor.x + anchor.width + padding, cy),
        (cx, anchor.y + anchor.height + padding),
        (anchor.x - padding, cy),
    ]


def plan_hint_spawns(hints: Mapping[str, str], anchor: Rect, padding: float = HINT_PADDING) -> List[HintSpawn]:
    spots = hint_spots(anchor, padding)
    out: List[HintSpawn] = []
    for i, tier in enumerate(TIERS):
        text = hints.get(tier) or ""
        if not text:
            continue
        x, y = spots[i % len(spots)]
        out.append(HintSpawn(tier=tier, text=text, actor_name=hint_actor_name(tier), x=x, y=y))
    return out


@dataclass
class TokenPlan:
    requests: List[Dict[str, Any]]
    missing: List[str]


def build_token_requests(
    spawns: Sequence[HintSpawn],
    find_actor: Callable[[str], Optional[Mapping[str, Any]]],
    grid_size: float,
    log: Callable[[str], None] = print,
) -> TokenPlan:
    """
    Turn spawn points into token creation data.

    `find_actor(name)` returns the actor's prototype token data (it needs
    `id`, and may carry `width`/`height` in grid units) or None. A missing
    actor only skips its own tier.
    """
    requests: List[Dict[str, Any]] = []
    missing: List[str] = []
    for spawn in spawns:
        proto = find_actor(spawn.actor_name)
        if not proto:
            log(f'[TrapAutomator] No actor named "{spawn.actor_name}" found.')
            missing.append(spawn.actor_name)
            continue
        w = float(proto.get("width") or 1) * grid_size
        h = float(proto.get("height") or 1) * grid_size
        data = {k: v for k, v in proto.items() if k not in ("_id", "actorData")}
        data.update({
            "actorId": proto.get("id"),
            "actorLink": True,
            "name": spawn.text,
            "x": round(spawn.x - w / 2),
            "y": round(spawn.y - h / 2),
            "hidden": False,
        })
        requests.append(data)
    return TokenPlan(requests=requests, missing=missing)
