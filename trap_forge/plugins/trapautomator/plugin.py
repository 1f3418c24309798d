from trap_forge.core.plugin_api import PluginMeta
from .ui import TrapAutomatorWidget


class TrapAutomatorPlugin:
    meta = PluginMeta(
        plugin_id="trapautomator",
        name="Trap & Cache Automator",
        version="1.0.0",
        description="Compose trap and cache tiles with tiered hint tokens.",
    )

    def create_widget(self, ctx) -> TrapAutomatorWidget:
        return TrapAutomatorWidget(ctx)


def load_plugin():
    return TrapAutomatorPlugin()
