from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PluginMeta:
    """Identity of the tool hosted by the main window."""

    plugin_id: str
    name: str
    version: str = "0.1.0"
    description: str = ""

    @property
    def state_path(self) -> str:
        # Widget state (serialize_state/load_state), relative to the project dir.
        return f"modules/{self.plugin_id}.json"
