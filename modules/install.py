"""First-run setup wizard.

Reached directly or by the dispatcher rerouting requests while the settings
document is missing or incomplete.  The wizard starts from the bundled
template settings and writes the result to the primary settings file.
"""

from __future__ import annotations

from core import settings as settings_store
from core.registry import INSTALL_MODULE

from .base import BaseModule
from .configuration import DESCRIPTION, HELP


class InstallModule(BaseModule):
    name = INSTALL_MODULE
    layout = "install"
    post_actions = frozenset({"finish"})

    def build_action_map(self):
        return {
            "welcome": self.welcome,
            "advanced": self.advanced,
            "finish": self.finish,
        }

    def welcome(self):
        return {
            "setup_pending": self.context.setup_pending,
            "settings_file": str(self.context.settings_file),
        }

    def advanced(self):
        return {
            "settings": self.settings.as_dict(),
            "help": HELP,
            "description": DESCRIPTION,
            "required": settings_store.REQUIRED_FIELDS,
        }

    def finish(self):
        document = settings_store.merge_form(self.settings, self.context.form)
        stored = settings_store.save(document, self.context.settings_file)
        self.publish("settings_saved", {"path": str(self.context.settings_file), "install": True})
        return {
            "settings_file": str(stored.source),
            "binary": str(stored.binary()),
        }
