import os
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

from trap_forge.core.context import ForgeContext  # noqa: E402
from trap_forge.plugins.trapautomator import ui as automator_ui  # noqa: E402
from trap_forge.plugins.trapautomator.edit_dialog import DefinitionDialog  # noqa: E402
from trap_forge.plugins.trapautomator.plugin import load_plugin  # noqa: E402

FULL_SET = {"+2": "Scuffs", "+4": "A seam", "+6": "A hinge", "+10": "The trapdoor"}


@pytest.fixture(scope="module")
def qapp():
    return QtWidgets.QApplication.instance() or QtWidgets.QApplication([])


def make_widget(tmp_path: Path, logs, custom=None):
    ctx = ForgeContext(log=logs.append)
    ctx.set_project_dir(tmp_path / "proj")
    if custom is not None:
        ctx.save_json(automator_ui.CUSTOM_DEFS_PATH, custom)
    return ctx, load_plugin().create_widget(ctx)


def select_definition(widget, primary: str, key: str) -> None:
    widget.cmb_category.setCurrentIndex(widget.cmb_category.findData(primary))
    idx = widget.cmb_definition.findData(key)
    assert idx >= 0
    widget.cmb_definition.setCurrentIndex(idx)


def test_plugin_meta() -> None:
    meta = load_plugin().meta
    assert meta.name == "Trap & Cache Automator"
    assert meta.state_path == "modules/trapautomator.json"


def test_widget_generates_and_exports(tmp_path: Path, qapp) -> None:
    logs = []
    ctx, widget = make_widget(tmp_path, logs)

    widget.on_generate()
    assert widget.last_result is not None
    assert widget.last_result.name == "Spike Pit"
    assert widget.last_result.flavor.startswith("You step on a pressure plate on the floor.")
    assert "Hint +2" in widget.view_hints.toPlainText()

    state = widget.serialize_state()
    assert state["data"]["generate_count"] == 1
    assert state["ui"]["definition"] == "spike-pit"

    widget.on_export()
    packs = list((ctx.project_dir / "exports" / "session_packs").iterdir())
    assert len(packs) == 1
    assert {p.suffix for p in packs[0].iterdir()} == {".md", ".json"}


def test_widget_loads_with_a_cyclic_custom_file(tmp_path: Path, qapp) -> None:
    logs = []
    _ctx, widget = make_widget(tmp_path, logs, {"categories": {"a": {"primary": "b"}, "b": {"primary": "a"}}})

    assert any("loops back on itself" in m for m in logs)
    widget.on_generate()
    assert widget.last_result is not None


def test_saved_trap_is_custom_and_persisted(tmp_path: Path, qapp) -> None:
    logs = []
    ctx, widget = make_widget(tmp_path, logs)

    widget.save_definition("trap", {
        "name": "Trapdoor",
        "category": "generic",
        "save": "dex",
        "dc": 14,
        "flavor": "You {trigger} and the floor gives way.",
        "hint_sets": [FULL_SET],
    })

    assert widget.store.get("trap", "trapdoor")["defaultDC"] == 14
    assert ctx.load_json(automator_ui.CUSTOM_DEFS_PATH)["trap"]["trapdoor"]["name"] == "Trapdoor"
    assert logs[-1] == '[TrapAutomator] Trap "Trapdoor" added.'

    select_definition(widget, "generic", "trapdoor")
    assert widget.btn_delete_def.isEnabled()
    select_definition(widget, "generic", "spike-pit")
    assert not widget.btn_delete_def.isEnabled()
    assert widget.btn_edit_def.isEnabled()


def test_editing_a_builtin_overrides_it(tmp_path: Path, qapp) -> None:
    logs = []
    _ctx, widget = make_widget(tmp_path, logs)
    dlg = DefinitionDialog("trap", widget.store.all_categories())
    dlg.load_definition(widget.store.get("trap", "spike-pit"))
    dlg.dc.setValue(18)

    widget.save_definition("trap", dlg.values(), key="spike-pit")

    d = widget.store.get("trap", "spike-pit")
    assert d["defaultDC"] == 18
    assert d["name"] == "Spike Pit"
    assert widget.store.is_custom("trap", "spike-pit")


def test_invalid_definition_warns_and_keeps_store(tmp_path: Path, qapp, monkeypatch) -> None:
    logs = []
    warnings = []
    monkeypatch.setattr(automator_ui.QMessageBox, "warning", lambda _w, _t, msg: warnings.append(msg))
    _ctx, widget = make_widget(tmp_path, logs)

    widget.save_definition("cache", {"name": "  ", "category": "generic", "found": "", "hint_sets": [FULL_SET]})

    assert warnings == ["Cache name cannot be empty."]
    assert widget.store.custom == {}


def test_dialog_seeds_hint_rows_from_legacy_shape(qapp) -> None:
    legacy = {
        "name": "Lab Laser",
        "category": "sci-fi",
        "defaultSave": "con",
        "description": {"flavor": "A laser sweeps the room."},
        "hints": {"wall": {"+2": ["A lens", "Scorch marks"], "+4": ["A wire"]}},
    }
    dlg = DefinitionDialog("trap", ["generic", "sci-fi"])
    dlg.load_definition(legacy)

    values = dlg.values()
    assert values["category"] == "sci-fi"
    assert values["save"] == "con"
    assert values["hint_sets"] == [
        {"+2": "A lens", "+4": "A wire", "+6": "", "+10": ""},
        {"+2": "Scorch marks", "+4": "", "+6": "", "+10": ""},
    ]


def test_cache_dialog_values(qapp) -> None:
    dlg = DefinitionDialog("cache", ["generic"])
    dlg.name.setText("Loose Brick")
    dlg.found.setPlainText("A pouch behind a loose brick.")

    values = dlg.values()
    assert values == {
        "name": "Loose Brick",
        "category": "generic",
        "hint_sets": [{"+2": "", "+4": "", "+6": "", "+10": ""}],
        "found": "A pouch behind a loose brick.",
    }
    assert not dlg.save.isEnabled()
