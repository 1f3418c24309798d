from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import time

from .text import slugify


@dataclass
class ExportManager:
    project_dir: Path
    subdir: Optional[str] = None

    def export_root(self) -> Path:
        p = self.project_dir / "exports"
        if self.subdir:
            p = p / self.subdir
        p.mkdir(parents=True, exist_ok=True)
        return p

    def make_filename(self, stem: str, ext: str, *, timestamp: bool = True, seed: Optional[int] = None) -> str:
        ext = ext.lstrip(".")
        parts = []
        if timestamp:
            parts.append(time.strftime("%Y%m%d_%H%M%S"))
        parts.append(slugify(stem)[:60])
        if seed is not None:
            parts.append(f"seed{seed}")
        return "_".join(parts) + f".{ext}"

    def create_session_pack(self, title: str, *, seed: Optional[int] = None) -> Path:
        """A fresh timestamped folder under exports/session_packs/."""
        folder = self.make_filename(title, "", seed=seed).rstrip(".")
        path = self.export_root() / "session_packs" / folder
        path.mkdir(parents=True, exist_ok=True)
        return path
