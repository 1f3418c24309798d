from __future__ import annotations

from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QTextEdit, QVBoxLayout, QLabel, QSplitter,
    QFileDialog, QInputDialog, QMessageBox
)

from trap_forge.core.app_settings import AppSettings
from trap_forge.core.context import ForgeContext
from trap_forge.plugins.trapautomator.errors import TrapAutomatorError
from trap_forge.plugins.trapautomator.plugin import load_plugin
from trap_forge.plugins.trapautomator.ui import TrapAutomatorWidget
from trap_forge.ui.project_settings import ProjectSettingsDialog

APP_TITLE = "Trap Forge"
STATE_SAVE_INTERVAL_MS = 30_000  # 30s


class MainWindow(QMainWindow):
    """
    One project at a time: the trap automator on top, the log below.
    Switching projects rebuilds the automator, since custom definitions
    live inside the project folder.
    """

    def __init__(self):
        super().__init__()
        self.setWindowTitle(APP_TITLE)

        self.settings = AppSettings()
        self.ctx = ForgeContext()
        self.plugin = load_plugin()
        self.automator: Optional[TrapAutomatorWidget] = None

        self.log_view = QTextEdit()
        self.log_view.setReadOnly(True)
        self.log_view.setPlaceholderText("Logs…")
        self.ctx.log = self.log_view.append

        self.host = QWidget()
        self.host_layout = QVBoxLayout(self.host)
        self.host_layout.setContentsMargins(8, 8, 8, 8)

        log_panel = QWidget()
        log_layout = QVBoxLayout(log_panel)
        log_layout.setContentsMargins(8, 0, 8, 8)
        log_layout.addWidget(QLabel("Log"))
        log_layout.addWidget(self.log_view)

        splitter = QSplitter(Qt.Vertical)
        splitter.addWidget(self.host)
        splitter.addWidget(log_panel)
        splitter.setStretchFactor(0, 4)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)

        self._build_menus()

        self._save_timer = QTimer(self)
        self._save_timer.setInterval(STATE_SAVE_INTERVAL_MS)
        self._save_timer.timeout.connect(self.save_all_state)
        self._save_timer.start()

        self._load_initial_project()

        geom = self.settings.get_window_geometry()
        if geom:
            self.restoreGeometry(geom)

    # ---------- menus ----------

    def _build_menus(self) -> None:
        file_menu = self.menuBar().addMenu("File")
        for label, slot in (
            ("New Project…", self._new_project),
            ("Open Project…", self._open_project),
            (None, None),
            ("Save", self.save_all_state),
            ("Project Settings…", self._edit_project_settings),
            (None, None),
            ("Quit", self.close),
        ):
            if label is None:
                file_menu.addSeparator()
                continue
            act = QAction(label, self)
            act.triggered.connect(slot)
            file_menu.addAction(act)

        # Forwarded to whichever automator the current project has.
        traps_menu = self.menuBar().addMenu("Traps")
        for label, slot_name in (
            ("Generate", "on_generate"),
            ("Copy Macro Args", "on_copy_macro_args"),
            ("Export", "on_export"),
            ("Import Definitions…", "on_import_json"),
        ):
            act = QAction(label, self)
            act.triggered.connect(lambda _checked=False, name=slot_name: self._forward(name))
            traps_menu.addAction(act)

    def _forward(self, slot_name: str) -> None:
        if self.automator is None:
            self.ctx.log("[TrapAutomator] Not loaded for this project.")
            return
        getattr(self.automator, slot_name)()
        self._show_counts()

    def _show_counts(self) -> None:
        if self.automator is None:
            return
        store = self.automator.store
        self.statusBar().showMessage(f"{len(store.traps)} traps, {len(store.caches)} caches")

    # ---------- project selection ----------

    def _load_initial_project(self) -> None:
        last = self.settings.get_last_project_dir()
        if last and last.exists():
            self.set_project(last)
            return
        default = Path.cwd() / "projects" / "default_project"
        default.mkdir(parents=True, exist_ok=True)
        self.set_project(default)

    def _new_project(self) -> None:
        parent_dir = QFileDialog.getExistingDirectory(self, "Choose parent folder for new project")
        if not parent_dir:
            return

        name, ok = QInputDialog.getText(self, "New Project", "Project name:")
        if not ok:
            return
        name = (name or "").strip()
        if not name:
            QMessageBox.warning(self, "New Project", "Project name cannot be empty.")
            return

        proj_dir = Path(parent_dir) / name
        if proj_dir.exists() and any(proj_dir.iterdir()):
            QMessageBox.warning(self, "New Project", "That folder already exists and is not empty.")
            return

        proj_dir.mkdir(parents=True, exist_ok=True)
        self.set_project(proj_dir)

    def _open_project(self) -> None:
        proj_dir = QFileDialog.getExistingDirectory(self, "Open Project")
        if proj_dir:
            self.set_project(Path(proj_dir))

    def set_project(self, proj_dir: Path) -> None:
        if self.automator is not None:
            self.save_all_state()

        proj_dir = Path(proj_dir)
        self.ctx.set_project_dir(proj_dir)
        self.settings.set_last_project_dir(proj_dir)
        self._update_title()
        self.ctx.log(f"Project: {proj_dir}")

        self._mount_automator()

    def _update_title(self) -> None:
        pname = str(self.ctx.project_settings.get("name") or self.ctx.project_dir.name)
        self.setWindowTitle(f"{APP_TITLE} — {pname}")

    def _edit_project_settings(self) -> None:
        dlg = ProjectSettingsDialog(self.ctx.project_settings, self)
        if dlg.exec() != ProjectSettingsDialog.Accepted:
            return
        dlg.apply_to_settings()
        try:
            self.ctx.save_project_settings()
        except (OSError, ValueError) as e:
            QMessageBox.warning(self, "Project Settings", f"Could not save project.json:\n{e}")
            return
        self._update_title()
        self.ctx.log("[Project] Settings saved.")

    # ---------- automator + state persistence ----------

    def _mount_automator(self) -> None:
        if self.automator is not None:
            self.host_layout.removeWidget(self.automator)
            self.automator.deleteLater()
            self.automator = None

        meta = self.plugin.meta
        try:
            self.automator = self.plugin.create_widget(self.ctx)
        except (TrapAutomatorError, OSError, ValueError) as e:
            self.ctx.log(f"[TrapAutomator] Failed to load {meta.name} {meta.version}: {e}")
            QMessageBox.warning(self, APP_TITLE, f"{meta.name} could not be loaded:\n{e}")
            return

        self.host_layout.addWidget(self.automator)
        state = self.ctx.load_json(meta.state_path, default=None)
        if state:
            try:
                self.automator.load_state(state)
            except (KeyError, TypeError, ValueError) as e:
                self.ctx.log(f"[State] Failed to restore {meta.plugin_id}: {e}")
        self._show_counts()

    def save_all_state(self) -> None:
        try:
            self.ctx.save_project_settings()
        except (OSError, ValueError) as e:
            self.ctx.log(f"[State] Failed to save project settings: {e}")

        if self.automator is None:
            return
        try:
            self.ctx.save_json(self.plugin.meta.state_path, self.automator.serialize_state())
        except (OSError, ValueError, TypeError) as e:
            self.ctx.log(f"[State] Failed saving {self.plugin.meta.plugin_id}: {e}")

    # ---------- events ----------

    def closeEvent(self, event) -> None:
        self.save_all_state()
        self.settings.set_window_geometry(self.saveGeometry())
        super().closeEvent(event)
