from __future__ import annotations

from typing import Any, Dict

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QSpinBox, QPushButton
)

from trap_forge.core.context import PROJECT_DEFAULTS


class ProjectSettingsDialog(QDialog):
    """Edits the per-project values kept in project.json."""

    def __init__(self, settings: Dict[str, Any], parent=None):
        super().__init__(parent)
        self.setWindowTitle("Project Settings")
        self.settings = settings

        root = QVBoxLayout(self)

        row = QHBoxLayout()
        row.addWidget(QLabel("Name:"))
        self.name = QLineEdit(str(settings.get("name", "")))
        row.addWidget(self.name)
        root.addLayout(row)

        row = QHBoxLayout()
        row.addWidget(QLabel("Master seed:"))
        self.seed = QSpinBox()
        self.seed.setRange(0, 2_147_483_647)
        self.seed.setValue(int(settings.get("master_seed", PROJECT_DEFAULTS["master_seed"])))
        row.addWidget(self.seed)
        root.addLayout(row)

        # Trap tiles
        row = QHBoxLayout()
        row.addWidget(QLabel("Trigger macro:"))
        self.macro_id = QLineEdit(str(settings.get("macro_id") or ""))
        self.macro_id.setPlaceholderText(PROJECT_DEFAULTS["macro_id"])
        row.addWidget(self.macro_id)
        root.addLayout(row)

        row = QHBoxLayout()
        row.addWidget(QLabel("Hint padding (px):"))
        self.hint_padding = QSpinBox()
        self.hint_padding.setRange(0, 1000)
        self.hint_padding.setValue(int(settings.get("hint_padding", PROJECT_DEFAULTS["hint_padding"])))
        row.addWidget(self.hint_padding)
        root.addLayout(row)

        row = QHBoxLayout()
        row.addWidget(QLabel("Export subfolder:"))
        self.export_subdir = QLineEdit(str(settings.get("export_subdir") or ""))
        self.export_subdir.setPlaceholderText("(exports/)")
        row.addWidget(self.export_subdir)
        root.addLayout(row)

        btns = QHBoxLayout()
        btns.addStretch(1)
        self.ok = QPushButton("OK")
        self.cancel = QPushButton("Cancel")
        btns.addWidget(self.ok)
        btns.addWidget(self.cancel)
        root.addLayout(btns)

        self.ok.clicked.connect(self.accept)
        self.cancel.clicked.connect(self.reject)

    def apply_to_settings(self) -> None:
        self.settings["name"] = self.name.text().strip() or self.settings.get("name", "")
        self.settings["master_seed"] = self.seed.value()
        self.settings["macro_id"] = self.macro_id.text().strip()
        self.settings["hint_padding"] = self.hint_padding.value()
        self.settings["export_subdir"] = self.export_subdir.text().strip()
