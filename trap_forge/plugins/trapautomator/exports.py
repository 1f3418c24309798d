from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from trap_forge.core.text import slugify

from .generator import ComposedResult

DEFAULT_MACRO_ID = "Macro.z9RXNw9fEKBIkxHW"
FLAG_SCOPE = "trap-automator"
TILE_TRIGGER_SCOPE = "monks-active-tiles"


def macro_argument(payload: Mapping[str, Any]) -> str:
    """
    The payload as one quoted macro argument: JSON with every `"` escaped,
    wrapped in double quotes so the host does not split it on spaces.
    """
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return '"' + raw.replace('"', '\\"') + '"'


def build_tile_flags(result: ComposedResult, macro_id: Optional[str] = None, action_id: Optional[str] = None) -> Dict[str, Any]:
    """Flags written onto the anchor tile: the trap data plus a run-macro trigger on enter."""
    payload = result.to_payload()
    action = {
        "id": action_id or uuid.uuid4().hex[:16],
        "action": "runmacro",
        "data": {
            "macroid": macro_id or DEFAULT_MACRO_ID,
            "args": macro_argument(payload),
            "runasgm": "player",
        },
    }
    return {
        FLAG_SCOPE: {"trapData": payload},
        TILE_TRIGGER_SCOPE: {
            "trigger": "enter",
            "active": True,
            "restrictedTokens": "players",
            "actions": [action],
        },
    }


def _out_dir(ctx, result: ComposedResult) -> Path:
    # Prefer a session pack; fall back to a plain file under exports/.
    try:
        return Path(ctx.export_manager.create_session_pack(f"trapautomator-{result.type}", seed=getattr(ctx, "master_seed", None)))
    except OSError as e:
        ctx.log(f"[TrapAutomator] create_session_pack failed, falling back. {e}")
    p = Path(ctx.project_dir) / "exports"
    p.mkdir(parents=True, exist_ok=True)
    return p


def export_result(
    ctx,
    result: ComposedResult,
    hints: Mapping[str, str],
    macro_id: Optional[str] = None,
) -> Dict[str, Path]:
    """
    Write the result as Markdown (read-aloud + GM notes) and JSON (payload,
    hints, tile flags). Returns the written paths keyed by format.
    """
    out_dir = _out_dir(ctx, result)
    stem = f"{result.type}_{slugify(result.name)}"

    md_path = out_dir / f"{stem}.md"
    md_path.write_text(result.to_markdown(hints), encoding="utf-8")

    json_path = out_dir / f"{stem}.json"
    data = {
        "result": result.to_payload(),
        "hints": dict(hints),
        "tileFlags": build_tile_flags(result, macro_id),
    }
    json_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return {"markdown": md_path, "json": json_path}
