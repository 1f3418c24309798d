from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .definitions import DEFAULT_DC, LOCATIONS, SAVE_TYPES, TIERS
from .errors import ValidationFailure
from .flavor import compose_flavor
from .hints import select_hints
from .store import DefinitionStore


# -----------------------------
# Data model
# -----------------------------

@dataclass
class CompositionRequest:
    """What the author picked in the creation workflow."""
    def_type: str
    key: str
    location: str = "floor"
    trigger: str = ""
    # trap only
    dc: Optional[int] = None
    save_type: str = ""
    damage: str = ""
    damage_type: str = ""
    half_on_success: bool = False
    effect: str = ""
    # cache only; overrides the definition's found text
    found_text: str = ""


@dataclass
class ComposedResult:
    name: str
    type: str
    flavor: str
    save_type: Optional[str] = None
    hidden_dc: Optional[int] = None
    damage_formula: Optional[str] = None
    half_damage_on_success: bool = False
    damage_type: Optional[str] = None
    fail_text: Optional[str] = None
    success_text: Optional[str] = None
    found_text: Optional[str] = None

    @property
    def is_trap(self) -> bool:
        return self.type == "trap"

    def to_payload(self) -> Dict[str, Any]:
        """JSON object handed to the tile flag and the trigger macro."""
        if self.is_trap:
            # The DC travels as hiddenDC only, so the macro never prints "(DC X)".
            return {
                "name": self.name,
                "type": self.type,
                "flavor": self.flavor,
                "saveType": self.save_type,
                "hiddenDC": self.hidden_dc,
                "damageFormula": self.damage_formula,
                "halfDamageOnSuccess": self.half_damage_on_success,
                "damageType": self.damage_type,
                "failText": self.fail_text,
                "successText": self.success_text,
            }
        return {
            "name": self.name,
            "type": self.type,
            "flavor": self.flavor,
            "saveType": None,
            "DC": None,
            "damageFormula": None,
            "halfDamageOnSuccess": False,
            "foundText": self.found_text,
        }

    def to_markdown(self, hints: Optional[Mapping[str, str]] = None) -> str:
        md: List[str] = []
        md.append(f"# {self.name}")
        md.append("")
        md.append(f"**Type:** {self.type.capitalize()}")
        md.append("")
        md.append("## Read Aloud")
        md.append(self.flavor or "—")
        md.append("")
        if self.is_trap:
            md.append("## Resolution (GM)")
            md.append(f"- **Save:** {str(self.save_type or '').upper()} (DC {self.hidden_dc}, hidden)")
            if self.damage_formula:
                dtype = f" {self.damage_type}" if self.damage_type else ""
                half = ", half on success" if self.half_damage_on_success else ""
                md.append(f"- **Damage:** {self.damage_formula}{dtype}{half}")
            md.append(f"- **On Fail:** {self.fail_text or '—'}")
            md.append(f"- **On Success:** {self.success_text or '—'}")
        else:
            md.append("## Found")
            md.append(self.found_text or "—")
        md.append("")
        if hints:
            md.append("## Hints")
            for tier in TIERS:
                if hints.get(tier):
                    md.append(f"- **{tier}:** {hints[tier]}")
            md.append("")
        return "\n".join(md)


# -----------------------------
# Composition
# -----------------------------

def _description(d: Mapping[str, Any]) -> Mapping[str, Any]:
    desc = d.get("description")
    return desc if isinstance(desc, Mapping) else {}


def compose_result(store: DefinitionStore, request: CompositionRequest) -> ComposedResult:
    """
    Build the result for one creation workflow from the current selections
    and the chosen definition. Nothing here touches the store.
    """
    if request.location not in LOCATIONS:
        raise ValidationFailure(f"Unknown location '{request.location}'.")
    d = store.get(request.def_type, request.key)
    desc = _description(d)
    name = d.get("name") or request.key

    if request.def_type == "trap":
        save = (request.save_type or d.get("defaultSave") or "dex").lower()
        if save not in SAVE_TYPES:
            raise ValidationFailure(f"Unknown save type '{save}'.")
        dc = request.dc if request.dc is not None else d.get("defaultDC") or DEFAULT_DC
        effect = (request.effect or "").strip()
        half = bool(request.half_on_success)
        return ComposedResult(
            name=name,
            type="trap",
            flavor=compose_flavor(desc.get("flavor"), request.trigger, request.location),
            save_type=save,
            hidden_dc=int(dc),
            damage_formula=(request.damage or "").strip(),
            half_damage_on_success=half,
            damage_type=(request.damage_type or "").strip() or None,
            fail_text=f"{desc.get('fail') or ''}{' ' + effect if effect else ''}",
            success_text=f"{desc.get('success') or ''}{' You take half damage.' if half else ''}",
        )

    found = (request.found_text or "").strip() or desc.get("found") or ""
    return ComposedResult(
        name=name,
        type="cache",
        flavor=compose_flavor(desc.get("flavor") or found, request.trigger, request.location),
        found_text=found,
    )


def generate(
    store: DefinitionStore,
    request: CompositionRequest,
    rng: Optional[random.Random] = None,
) -> Tuple[ComposedResult, Dict[str, str]]:
    """Composed result plus the four tier hints for the chosen location."""
    result = compose_result(store, request)
    d = store.get(request.def_type, request.key)
    hints = select_hints(d, request.location, rng)
    return result, hints
