from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QComboBox,
    QSpinBox, QTextEdit, QPushButton, QTableWidget, QTableWidgetItem
)

from .definitions import DEFAULT_DC, LOCATIONS, SAVE_TYPES, TIERS
from .hints import as_hint_sets


def first_hint_sets(definition: Mapping[str, Any]) -> List[Dict[str, str]]:
    """Hint sets of the first location that has any, as editable rows."""
    hints = definition.get("hints") if isinstance(definition, Mapping) else None
    if not isinstance(hints, Mapping):
        return []
    for loc in LOCATIONS:
        sets = as_hint_sets(hints.get(loc))
        if sets:
            return sets
    return []


class DefinitionDialog(QDialog):
    """
    Add or edit one trap or cache. Saved hint sets apply to every location.
    """

    def __init__(self, def_type: str, categories: Sequence[str], parent=None):
        super().__init__(parent)
        self.def_type = def_type
        is_trap = def_type == "trap"
        self.setWindowTitle("Trap Definition" if is_trap else "Cache Definition")

        root = QVBoxLayout(self)

        row = QHBoxLayout()
        row.addWidget(QLabel("Name:"))
        self.name = QLineEdit()
        row.addWidget(self.name)
        row.addWidget(QLabel("Category:"))
        self.category = QComboBox()
        self.category.setEditable(True)
        self.category.addItems(list(categories))
        row.addWidget(self.category)
        root.addLayout(row)

        # Trap-only fields
        row = QHBoxLayout()
        row.addWidget(QLabel("Save:"))
        self.save = QComboBox()
        for s in SAVE_TYPES:
            self.save.addItem(s.upper(), s)
        row.addWidget(self.save)
        row.addWidget(QLabel("DC:"))
        self.dc = QSpinBox()
        self.dc.setRange(1, 30)
        self.dc.setValue(DEFAULT_DC)
        row.addWidget(self.dc)
        root.addLayout(row)

        self.flavor = self._text_box(root, "Flavor ({trigger} and {location} are filled in):")
        self.fail = self._text_box(root, "On a failed save:")
        self.success = self._text_box(root, "On a successful save:")
        self.found = self._text_box(root, "Found text:")
        for w in (self.save, self.dc, self.flavor, self.fail, self.success):
            w.setEnabled(is_trap)
        self.found.setEnabled(not is_trap)

        root.addWidget(QLabel("Hint sets (one row per set):"))
        self.hints = QTableWidget(0, len(TIERS))
        self.hints.setHorizontalHeaderLabels(list(TIERS))
        root.addWidget(self.hints)

        row = QHBoxLayout()
        self.btn_add_set = QPushButton("Add Hint Set")
        self.btn_add_set.clicked.connect(lambda: self.add_hint_set())
        row.addWidget(self.btn_add_set)
        row.addStretch(1)
        root.addLayout(row)
        self.add_hint_set()

        btns = QHBoxLayout()
        btns.addStretch(1)
        self.ok = QPushButton("OK")
        self.cancel = QPushButton("Cancel")
        btns.addWidget(self.ok)
        btns.addWidget(self.cancel)
        root.addLayout(btns)

        self.ok.clicked.connect(self.accept)
        self.cancel.clicked.connect(self.reject)

    def _text_box(self, root: QVBoxLayout, label: str) -> QTextEdit:
        root.addWidget(QLabel(label))
        box = QTextEdit()
        box.setMinimumHeight(50)
        root.addWidget(box)
        return box

    def add_hint_set(self, hint_set: Optional[Mapping[str, str]] = None) -> None:
        r = self.hints.rowCount()
        self.hints.insertRow(r)
        for col, tier in enumerate(TIERS):
            self.hints.setItem(r, col, QTableWidgetItem(str((hint_set or {}).get(tier) or "")))

    def load_definition(self, d: Mapping[str, Any]) -> None:
        self.name.setText(str(d.get("name") or ""))
        self.category.setCurrentText(str(d.get("category") or ""))
        desc = d.get("description") if isinstance(d.get("description"), Mapping) else {}
        if self.def_type == "trap":
            idx = self.save.findData(str(d.get("defaultSave") or "dex").lower())
            if idx >= 0:
                self.save.setCurrentIndex(idx)
            self.dc.setValue(int(d.get("defaultDC") or DEFAULT_DC))
            self.flavor.setPlainText(str(desc.get("flavor") or ""))
            self.fail.setPlainText(str(desc.get("fail") or ""))
            self.success.setPlainText(str(desc.get("success") or ""))
        else:
            self.found.setPlainText(str(desc.get("found") or ""))

        sets = first_hint_sets(d)
        if sets:
            self.hints.setRowCount(0)
            for s in sets:
                self.add_hint_set(s)

    def hint_sets(self) -> List[Dict[str, str]]:
        out = []
        for r in range(self.hints.rowCount()):
            row = {}
            for col, tier in enumerate(TIERS):
                item = self.hints.item(r, col)
                row[tier] = item.text().strip() if item else ""
            out.append(row)
        return out

    def values(self) -> Dict[str, Any]:
        """Keyword arguments for edits.save_trap / edits.save_cache."""
        common = {
            "name": self.name.text().strip(),
            "category": self.category.currentText().strip(),
            "hint_sets": self.hint_sets(),
        }
        if self.def_type == "trap":
            common.update(
                save=self.save.currentData(),
                dc=self.dc.value(),
                flavor=self.flavor.toPlainText().strip(),
                fail=self.fail.toPlainText().strip(),
                success=self.success.toPlainText().strip(),
            )
        else:
            common["found"] = self.found.toPlainText().strip()
        return common
