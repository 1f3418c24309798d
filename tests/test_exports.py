import json
from pathlib import Path

from trap_forge.core.context import ForgeContext
from trap_forge.plugins.trapautomator.exports import (
    DEFAULT_MACRO_ID,
    build_tile_flags,
    export_result,
    macro_argument,
)
from trap_forge.plugins.trapautomator.generator import CompositionRequest, compose_result


def make_ctx(tmp_path: Path, logs: list) -> ForgeContext:
    ctx = ForgeContext(log=logs.append)
    ctx.set_project_dir(tmp_path / "proj")
    return ctx


def test_macro_argument_escapes_quotes() -> None:
    arg = macro_argument({"name": "Spike Pit", "hiddenDC": 12})
    assert arg == '"{\\"name\\":\\"Spike Pit\\",\\"hiddenDC\\":12}"'


def test_macro_argument_has_no_bare_quotes_inside() -> None:
    arg = macro_argument({"name": "Glyph", "flavor": 'It reads "Keep out".'})
    inner = arg[1:-1]
    assert arg.startswith('"') and arg.endswith('"')
    assert all(inner[i - 1] == "\\" for i, ch in enumerate(inner) if ch == '"')


def test_tile_flags_carry_payload_and_macro(store) -> None:
    result = compose_result(store, CompositionRequest("trap", "spike-pit", trigger="step on a pressure plate"))
    flags = build_tile_flags(result, "Macro.custom", action_id="act1")

    assert flags["trap-automator"]["trapData"] == result.to_payload()
    tile = flags["monks-active-tiles"]
    assert tile["trigger"] == "enter"
    action = tile["actions"][0]
    assert action["id"] == "act1"
    assert action["action"] == "runmacro"
    assert action["data"]["macroid"] == "Macro.custom"
    assert action["data"]["args"] == macro_argument(result.to_payload())

    default = build_tile_flags(result)
    assert default["monks-active-tiles"]["actions"][0]["data"]["macroid"] == DEFAULT_MACRO_ID


def test_export_writes_markdown_and_json(tmp_path: Path, store) -> None:
    logs = []
    ctx = make_ctx(tmp_path, logs)
    result = compose_result(store, CompositionRequest("cache", "dusty-chest"))
    hints = {"+2": "Drag marks", "+4": "", "+6": "", "+10": ""}

    paths = export_result(ctx, result, hints, macro_id="Macro.abc")

    md, js = paths["markdown"], paths["json"]
    assert md.name == "cache_dusty-chest.md"
    assert "session_packs" in md.parts
    assert md.parent == js.parent
    assert "A dusty chest." in md.read_text(encoding="utf-8")

    data = json.loads(js.read_text(encoding="utf-8"))
    assert data["result"] == result.to_payload()
    assert data["hints"] == hints
    assert data["tileFlags"]["monks-active-tiles"]["actions"][0]["data"]["macroid"] == "Macro.abc"
