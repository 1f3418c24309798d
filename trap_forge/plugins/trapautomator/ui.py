from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QComboBox,
    QSpinBox, QLineEdit, QPlainTextEdit, QGroupBox, QFormLayout, QCheckBox,
    QMessageBox, QInputDialog, QFileDialog, QApplication, QDialog
)

from . import edits
from .definitions import DEFAULT_DC, LOCATIONS, SAVE_TYPES, TIERS
from .edit_dialog import DefinitionDialog
from .errors import TrapAutomatorError, ValidationFailure
from .exports import build_tile_flags, export_result, macro_argument
from .generator import ComposedResult, CompositionRequest, generate
from .hints import Rect, plan_hint_spawns
from .store import DefinitionStore

CUSTOM_DEFS_PATH = "modules/trapautomator_custom_defs.json"
TITLE = "Trap Automator"
ANCHOR_PREVIEW_SIZE = 100


def _title(s: str) -> str:
    return s[:1].upper() + s[1:]


class TrapAutomatorWidget(QWidget):
    """
    Trap & cache composer.
    - Pick type / category / definition / location / trigger
    - Compose the read-aloud text and roll the tier hints
    - Maintain custom traps, caches, categories and triggers on top of the built-ins
    """

    def __init__(self, ctx):
        super().__init__()
        self.ctx = ctx
        self.plugin_id = "trapautomator"
        self.generate_count = 0
        self.last_result: Optional[ComposedResult] = None
        self.last_hints: Dict[str, str] = {}

        custom = ctx.load_json(CUSTOM_DEFS_PATH, default={}) or {}
        self.store = DefinitionStore.from_builtin(custom, log=ctx.log)

        self._build_ui()
        self._refresh_categories()

    # -------------------------
    # UI
    # -------------------------

    def _build_ui(self):
        root = QVBoxLayout(self)

        header = QHBoxLayout()
        header.addWidget(QLabel(f"<b>{TITLE}</b>"))
        header.addStretch(1)
        self.btn_generate = QPushButton("Generate")
        self.btn_generate.clicked.connect(self.on_generate)
        header.addWidget(self.btn_generate)

        self.btn_copy_args = QPushButton("Copy Macro Args")
        self.btn_copy_args.clicked.connect(self.on_copy_macro_args)
        header.addWidget(self.btn_copy_args)

        self.btn_export = QPushButton("Export")
        self.btn_export.clicked.connect(self.on_export)
        header.addWidget(self.btn_export)
        root.addLayout(header)

        # Creation workflow
        pick = QGroupBox("Create")
        form = QFormLayout(pick)

        self.cmb_type = QComboBox()
        self.cmb_type.addItems(["Trap", "Cache"])
        self.cmb_type.currentTextChanged.connect(lambda _t: self._refresh_categories())
        form.addRow("Type", self.cmb_type)

        self.cmb_category = QComboBox()
        self.cmb_category.currentTextChanged.connect(lambda _t: self._refresh_subcategories())
        form.addRow("Category", self.cmb_category)

        self.cmb_subcategory = QComboBox()
        self.cmb_subcategory.currentTextChanged.connect(lambda _t: self._refresh_definitions())
        form.addRow("Sub-category", self.cmb_subcategory)

        self.cmb_definition = QComboBox()
        self.cmb_definition.currentIndexChanged.connect(lambda _i: self._on_definition_changed())
        form.addRow("Definition", self.cmb_definition)

        self.cmb_location = QComboBox()
        for loc in LOCATIONS:
            self.cmb_location.addItem(_title(loc), loc)
        form.addRow("Location", self.cmb_location)

        self.cmb_trigger = QComboBox()
        form.addRow("Trigger", self.cmb_trigger)

        self.spin_dc = QSpinBox()
        self.spin_dc.setRange(1, 30)
        self.spin_dc.setValue(DEFAULT_DC)
        form.addRow("Save DC (hidden)", self.spin_dc)

        self.cmb_save = QComboBox()
        for s in SAVE_TYPES:
            self.cmb_save.addItem(s.upper(), s)
        form.addRow("Save", self.cmb_save)

        self.txt_damage = QLineEdit()
        self.txt_damage.setPlaceholderText("e.g. 2d10")
        form.addRow("Damage", self.txt_damage)

        self.txt_damage_type = QLineEdit()
        self.txt_damage_type.setPlaceholderText("e.g. piercing")
        form.addRow("Damage Type", self.txt_damage_type)

        self.chk_half = QCheckBox("Half damage on a successful save")
        form.addRow("", self.chk_half)

        self.txt_effect = QLineEdit()
        self.txt_effect.setPlaceholderText("Extra effect appended to the fail text")
        form.addRow("Effect", self.txt_effect)

        self.txt_found = QLineEdit()
        self.txt_found.setPlaceholderText("Optional: replaces the cache's found text")
        form.addRow("Found Text", self.txt_found)

        root.addWidget(pick)

        # Definition maintenance
        maint = QGroupBox("Definitions")
        grid = QVBoxLayout(maint)
        self.maint_buttons: Dict[str, QPushButton] = {}
        for group in (
            (
                ("Add Definition…", self.on_add_definition),
                ("Edit Definition…", self.on_edit_definition),
                ("Delete Custom Definition", self.on_delete_definition),
                ("Import JSON…", self.on_import_json),
            ),
            (
                ("Add Category", self.on_add_category),
                ("Add Sub-category", self.on_add_subcategory),
                ("Rename Category", self.on_rename_category),
                ("Delete Category", self.on_delete_category),
            ),
            (
                ("Add Trigger", self.on_add_trigger),
                ("Edit Trigger", self.on_edit_trigger),
                ("Delete Trigger", self.on_delete_trigger),
            ),
        ):
            row = QHBoxLayout()
            for label, slot in group:
                btn = QPushButton(label)
                btn.clicked.connect(slot)
                row.addWidget(btn)
                self.maint_buttons[label] = btn
            row.addStretch(1)
            grid.addLayout(row)
        self.btn_delete_def = self.maint_buttons["Delete Custom Definition"]
        self.btn_edit_def = self.maint_buttons["Edit Definition…"]
        root.addWidget(maint)

        # Output panes
        out_row = QHBoxLayout()
        self.view_result = QPlainTextEdit()
        self.view_result.setReadOnly(True)
        self.view_result.setPlaceholderText("Composed trap or cache will appear here…")
        self.view_hints = QPlainTextEdit()
        self.view_hints.setReadOnly(True)
        self.view_hints.setPlaceholderText("Hint tokens per difficulty…")
        out_row.addWidget(self._wrap("Result", self.view_result), 2)
        out_row.addWidget(self._wrap("Hints", self.view_hints), 1)
        root.addLayout(out_row)

        self._set_buttons_enabled(False)

    def _wrap(self, title: str, widget: QWidget) -> QGroupBox:
        box = QGroupBox(title)
        lay = QVBoxLayout(box)
        lay.addWidget(widget)
        return box

    def _set_buttons_enabled(self, has_result: bool):
        self.btn_export.setEnabled(has_result)
        self.btn_copy_args.setEnabled(has_result)

    def _warn(self, message: str):
        self.ctx.log(f"[TrapAutomator] {message}")
        QMessageBox.warning(self, TITLE, message)

    # -------------------------
    # Selection plumbing
    # -------------------------

    @property
    def def_type(self) -> str:
        return self.cmb_type.currentText().lower()

    def _refresh_categories(self):
        is_trap = self.def_type == "trap"
        for w in (self.cmb_trigger, self.spin_dc, self.cmb_save, self.txt_damage,
                  self.txt_damage_type, self.chk_half, self.txt_effect):
            w.setEnabled(is_trap)
        self.txt_found.setEnabled(not is_trap)

        self.cmb_category.blockSignals(True)
        self.cmb_category.clear()
        if is_trap:
            for c in self.store.available_trap_categories():
                self.cmb_category.addItem(_title(c), c)
        self.cmb_category.setEnabled(is_trap)
        self.cmb_category.blockSignals(False)
        self._refresh_subcategories()

    def _refresh_subcategories(self):
        self.cmb_subcategory.blockSignals(True)
        self.cmb_subcategory.clear()
        primary = self.cmb_category.currentData()
        subs = self.store.trap_subcategories(primary) if primary and self.def_type == "trap" else []
        if subs:
            self.cmb_subcategory.addItem("(none)", None)
        for s in subs:
            self.cmb_subcategory.addItem(_title(s), s)
        self.cmb_subcategory.setEnabled(bool(subs))
        self.cmb_subcategory.blockSignals(False)
        self._refresh_definitions()

    def _refresh_definitions(self):
        self.cmb_definition.blockSignals(True)
        self.cmb_definition.clear()
        if self.def_type == "trap":
            primary = self.cmb_category.currentData()
            items = self.store.traps_in(primary, self.cmb_subcategory.currentData()) if primary else []
        else:
            items = [(k, d.get("name") or k) for k, d in self.store.caches.items()]
        for key, name in items:
            self.cmb_definition.addItem(name, key)
        self.cmb_definition.blockSignals(False)
        self._on_definition_changed()

    def _on_definition_changed(self):
        self.cmb_trigger.clear()
        key = self.cmb_definition.currentData()
        self.btn_edit_def.setEnabled(bool(key))
        self.btn_delete_def.setEnabled(bool(key) and self.store.is_custom(self.def_type, key))
        if not key or self.def_type != "trap":
            return
        try:
            triggers = self.store.triggers_for(key)
        except TrapAutomatorError as e:
            self.ctx.log(f"[TrapAutomator] {e}")
            triggers = []
        for t in triggers:
            self.cmb_trigger.addItem(_title(t), t)

        d = self.store.get("trap", key)
        idx = self.cmb_save.findData(str(d.get("defaultSave") or "dex").lower())
        if idx >= 0:
            self.cmb_save.setCurrentIndex(idx)
        self.spin_dc.setValue(int(d.get("defaultDC") or DEFAULT_DC))

    # -------------------------
    # State persistence
    # -------------------------

    def serialize_state(self) -> Dict[str, Any]:
        return {
            "version": 1,
            "ui": {
                "type": self.cmb_type.currentText(),
                "category": self.cmb_category.currentData(),
                "subcategory": self.cmb_subcategory.currentData(),
                "definition": self.cmb_definition.currentData(),
                "location": self.cmb_location.currentData(),
                "damage": self.txt_damage.text(),
                "damage_type": self.txt_damage_type.text(),
                "half": self.chk_half.isChecked(),
                "effect": self.txt_effect.text(),
            },
            "data": {
                "generate_count": self.generate_count,
                "last_result": self.last_result.to_payload() if self.last_result else None,
                "last_hints": self.last_hints,
                "last_result_text": self.view_result.toPlainText(),
                "last_hints_text": self.view_hints.toPlainText(),
            },
        }

    def load_state(self, state: Dict[str, Any]) -> None:
        if not state:
            return
        ui = state.get("ui", {})
        self.cmb_type.setCurrentText(ui.get("type", "Trap"))
        for combo, key in (
            (self.cmb_category, "category"),
            (self.cmb_subcategory, "subcategory"),
            (self.cmb_definition, "definition"),
            (self.cmb_location, "location"),
        ):
            value = ui.get(key)
            idx = combo.findData(value) if value is not None else -1
            if idx >= 0:
                combo.setCurrentIndex(idx)
        self.txt_damage.setText(ui.get("damage", ""))
        self.txt_damage_type.setText(ui.get("damage_type", ""))
        self.chk_half.setChecked(bool(ui.get("half", False)))
        self.txt_effect.setText(ui.get("effect", ""))

        data = state.get("data", {})
        self.generate_count = int(data.get("generate_count", 0))
        self.last_hints = dict(data.get("last_hints") or {})
        self.view_result.setPlainText(data.get("last_result_text", ""))
        self.view_hints.setPlainText(data.get("last_hints_text", ""))
        # The payload alone can't rebuild a ComposedResult; generate again to export.
        self._set_buttons_enabled(False)

    # -------------------------
    # Actions
    # -------------------------

    def _request(self) -> CompositionRequest:
        key = self.cmb_definition.currentData()
        if not key:
            raise ValidationFailure(f"No {self.def_type} definitions are available for this selection.")
        req = CompositionRequest(def_type=self.def_type, key=key, location=self.cmb_location.currentData())
        if self.def_type == "trap":
            trigger = self.cmb_trigger.currentData()
            if not trigger:
                raise ValidationFailure("No triggers are defined for this category. Add one first.")
            req.trigger = trigger
            req.dc = self.spin_dc.value()
            req.save_type = self.cmb_save.currentData()
            req.damage = self.txt_damage.text()
            req.damage_type = self.txt_damage_type.text()
            req.half_on_success = self.chk_half.isChecked()
            req.effect = self.txt_effect.text()
        else:
            req.found_text = self.txt_found.text()
        return req

    def on_generate(self):
        try:
            req = self._request()
            self.generate_count += 1
            rng = self.ctx.derive_rng(self.plugin_id, "generate", self.generate_count)
            result, hints = generate(self.store, req, rng)
        except TrapAutomatorError as e:
            self._warn(str(e))
            return

        self.last_result = result
        self.last_hints = hints
        flags = build_tile_flags(result, self.ctx.setting("macro_id"))
        self.view_result.setPlainText(
            result.to_markdown() + "\n## Tile Flags\n" + json.dumps(flags, indent=2, ensure_ascii=False)
        )
        lines = []
        for tier in TIERS:
            text = hints.get(tier) or "(no token)"
            lines.append(f"Hint {tier}: {text}")

        # Token positions relative to a one-square anchor tile at the origin.
        padding = float(self.ctx.setting("hint_padding"))
        spawns = plan_hint_spawns(hints, Rect(0, 0, ANCHOR_PREVIEW_SIZE, ANCHOR_PREVIEW_SIZE), padding)
        if spawns:
            lines.append("")
            lines.append(f"Placement around a {ANCHOR_PREVIEW_SIZE}px tile:")
            for s in spawns:
                lines.append(f'  "{s.actor_name}" at ({s.x:g}, {s.y:g})')
        self.view_hints.setPlainText("\n".join(lines))

        self._set_buttons_enabled(True)
        self.ctx.log(f"[TrapAutomator] Generated {result.type}: {result.name}")

    def on_copy_macro_args(self):
        if not self.last_result:
            return
        QApplication.clipboard().setText(macro_argument(self.last_result.to_payload()))
        self.ctx.log("[TrapAutomator] Macro argument copied to clipboard.")

    def on_export(self):
        if not self.last_result:
            return
        try:
            paths = export_result(self.ctx, self.last_result, self.last_hints, self.ctx.setting("macro_id"))
        except OSError as e:
            self._warn(f"Export failed:\n{e}")
            return
        for fmt, path in paths.items():
            self.ctx.log(f"[TrapAutomator] Exported {fmt}: {path}")

    # -------------------------
    # Definition maintenance
    # -------------------------

    def _apply(self, custom: Dict[str, Any], message: str):
        try:
            self.store.apply_custom(custom, persist=lambda data: self.ctx.save_json(CUSTOM_DEFS_PATH, data))
        except TrapAutomatorError as e:
            # Already merged locally; only the write failed.
            self._warn(str(e))
        else:
            self.ctx.log(f"[TrapAutomator] {message}")
        self._refresh_categories()

    def _ask(self, title: str, label: str, text: str = "") -> Optional[str]:
        value, ok = QInputDialog.getText(self, title, label, text=text)
        return value if ok else None

    def _pick(self, title: str, label: str, items) -> Optional[str]:
        items = list(items)
        if not items:
            self._warn(f"Nothing to choose from for {title.lower()}.")
            return None
        value, ok = QInputDialog.getItem(self, title, label, items, 0, False)
        return value if ok else None

    def _run_edit(self, fn, message: str):
        try:
            custom = fn(self.store.custom)
        except TrapAutomatorError as e:
            self._warn(str(e))
            return
        self._apply(custom, message)

    def on_add_category(self):
        raw = self._ask("Add Category", "New category ID:")
        if raw is not None:
            self._run_edit(lambda c: edits.add_category(c, raw), f'Category "{raw}" added.')

    def on_add_subcategory(self):
        primary = self._pick("Add Sub-category", "Primary category:", self.store.primary_categories())
        if primary is None:
            return
        raw = self._ask("Add Sub-category", "New sub-category ID:")
        if raw is not None:
            self._run_edit(lambda c: edits.add_subcategory(c, primary, raw), f'Sub-category "{raw}" added under {primary}.')

    def _pick_trigger_category(self, title: str) -> Optional[str]:
        keys = sorted(set(self.store.primary_categories()) | set(self.store.trigger_category_keys()))
        return self._pick(title, "Category:", keys)

    def on_add_trigger(self):
        cat = self._pick_trigger_category("Add Trigger")
        if cat is None:
            return
        text = self._ask("Add Trigger", "Trigger text (reads as 'You <trigger> on the floor.'):")
        if text is not None:
            self._run_edit(lambda c: edits.add_trigger(self.store, c, cat, text), f'Trigger added under "{cat}".')

    def on_edit_trigger(self):
        cat = self._pick_trigger_category("Edit Trigger")
        if cat is None:
            return
        old = self._pick("Edit Trigger", "Trigger:", self.store.trigger_list(cat))
        if old is None:
            return
        new = self._ask("Edit Trigger", "New trigger text:", old)
        if new is not None:
            self._run_edit(lambda c: edits.edit_trigger(self.store, c, cat, old, new), f'Trigger updated under "{cat}".')

    def on_delete_trigger(self):
        cat = self._pick_trigger_category("Delete Trigger")
        if cat is None:
            return
        old = self._pick("Delete Trigger", "Trigger:", self.store.trigger_list(cat))
        if old is None:
            return
        if QMessageBox.question(self, TITLE, f'Delete "{old}" from "{cat}"?') != QMessageBox.Yes:
            return
        self._run_edit(lambda c: edits.delete_trigger(self.store, c, cat, old), f'Trigger "{old}" deleted from "{cat}".')

    def on_delete_definition(self):
        key = self.cmb_definition.currentData()
        if not key:
            return
        def_type = self.def_type
        if QMessageBox.question(self, TITLE, f'Delete custom {def_type} "{key}"?') != QMessageBox.Yes:
            return
        self._run_edit(lambda c: edits.delete_definition(c, def_type, key), f'{_title(def_type)} "{key}" deleted.')

    def on_add_definition(self):
        self._open_definition_dialog(None)

    def on_edit_definition(self):
        key = self.cmb_definition.currentData()
        if key:
            self._open_definition_dialog(key)

    def _open_definition_dialog(self, key: Optional[str]):
        def_type = self.def_type
        dlg = DefinitionDialog(def_type, self.store.all_categories(), self)
        if key:
            dlg.load_definition(self.store.get(def_type, key))
        elif def_type == "trap" and self.cmb_category.currentData():
            dlg.category.setCurrentText(self.cmb_subcategory.currentData() or self.cmb_category.currentData())
        if dlg.exec() != QDialog.Accepted:
            return
        self.save_definition(def_type, dlg.values(), key)

    def save_definition(self, def_type: str, values: Dict[str, Any], key: Optional[str] = None):
        """Add a definition, or override `key`, through the custom layer."""
        save = edits.save_trap if def_type == "trap" else edits.save_cache
        verb = "updated" if key else "added"
        self._run_edit(lambda c: save(c, key=key, **values), f'{_title(def_type)} "{values.get("name")}" {verb}.')

    def _custom_category_names(self):
        cats = self.store.custom.get("categories")
        return sorted(cats) if isinstance(cats, dict) else []

    def on_rename_category(self):
        old = self._pick("Rename Category", "Category:", self.store.all_categories())
        if old is None:
            return
        new = self._ask("Rename Category", "New category name:", old)
        if new is not None:
            self._run_edit(lambda c: edits.rename_category(c, old, new), f'Category "{old}" renamed to "{new}".')

    def on_delete_category(self):
        cat = self._pick("Delete Category", "Custom category:", self._custom_category_names())
        if cat is None:
            return
        subs = [s for s in self.store.subcategories(cat) if s != cat]
        extra = f"\nSub-categories removed with it: {', '.join(subs)}" if subs else ""
        if QMessageBox.question(self, TITLE, f'Delete category "{cat}" and its custom definitions?{extra}') != QMessageBox.Yes:
            return
        self._run_edit(lambda c: edits.delete_category(c, cat), f'Category "{cat}" deleted.')

    def on_import_json(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import Definitions", "", "JSON (*.json)")
        if not path:
            return
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self._warn(f"Could not read {path}:\n{e}")
            return
        self._run_edit(lambda c: edits.import_definitions(c, data), f"Imported definitions from {path}.")
