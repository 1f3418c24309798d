from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import hashlib
import json
import random
from typing import Any, Callable, Dict, Sequence

from .export_manager import ExportManager

PROJECT_DEFAULTS: Dict[str, Any] = {
    "master_seed": 1337,
    "export_subdir": "",  # optional extra folder inside exports
    "macro_id": "Macro.z9RXNw9fEKBIkxHW",  # macro run when a trap/cache tile is entered
    "hint_padding": 40,  # px between the anchor tile and each hint token
}


def _stable_int_from_parts(parts: Sequence[Any]) -> int:
    h = hashlib.sha256()
    for p in parts:
        h.update(str(p).encode("utf-8"))
        h.update(b"\x1f")
    # random.Random accepts up to 2**32-1 nicely, keep it compact
    return int.from_bytes(h.digest()[:4], "big")


@dataclass
class ForgeContext:
    """Shared context passed to plugins.

    Holds the project folder, project settings and the log sink. Seeded
    random sources come from derive_rng; plugins persist their own files
    through save_json/load_json.
    """

    project_dir: Path = field(default_factory=lambda: Path.cwd() / "projects" / "default_project")
    log: Callable[[str], None] = print

    # Project-level settings (persisted in project_dir/project.json)
    project_settings: Dict[str, Any] = field(default_factory=dict)

    def set_project_dir(self, new_dir: Path) -> None:
        self.project_dir = Path(new_dir)
        self.ensure_project_dirs()
        self.load_project_settings()

    # ---------- dirs / settings ----------

    def ensure_project_dirs(self) -> None:
        for sub in ("exports", "modules", "logs"):
            (self.project_dir / sub).mkdir(parents=True, exist_ok=True)

    def load_project_settings(self) -> None:
        self.project_settings = self.load_json("project.json", default={})
        if not isinstance(self.project_settings, dict):
            self.log("[Project] project.json is not an object; using defaults.")
            self.project_settings = {}

        self.project_settings.setdefault("name", self.project_dir.name)
        for k, v in PROJECT_DEFAULTS.items():
            self.project_settings.setdefault(k, v)

    def save_project_settings(self) -> None:
        self.save_json("project.json", self.project_settings)

    def setting(self, key: str, default: Any = None) -> Any:
        if default is None:
            default = PROJECT_DEFAULTS.get(key)
        v = self.project_settings.get(key)
        return default if v in (None, "") else v

    # ---------- RNG / reproducibility ----------

    @property
    def master_seed(self) -> int:
        try:
            return int(self.project_settings.get("master_seed", 1337))
        except (TypeError, ValueError):
            return 1337

    def derive_seed(self, *parts: Any) -> int:
        """Derive a deterministic sub-seed from the project seed + arbitrary parts."""
        return _stable_int_from_parts((self.master_seed, *parts))

    def derive_rng(self, *parts: Any) -> random.Random:
        return random.Random(self.derive_seed(*parts))

    # ---------- file helpers ----------

    def save_json(self, relpath: str, data: Any) -> None:
        p = (self.project_dir / relpath).resolve()
        root = self.project_dir.resolve()
        if root not in p.parents and p != root:
            raise ValueError("Refusing to write outside the project directory.")
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def load_json(self, relpath: str, default: Any = None) -> Any:
        p = (self.project_dir / relpath)
        if not p.exists():
            return default
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.log(f"[Project] Could not read {relpath}: {e}")
            return default

    # ---------- exports ----------

    @property
    def export_manager(self) -> ExportManager:
        export_subdir = str(self.project_settings.get("export_subdir", "") or "").strip()
        return ExportManager(self.project_dir, subdir=export_subdir or None)
