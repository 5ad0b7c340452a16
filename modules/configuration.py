"""Settings editor."""

from __future__ import annotations

from core import settings as settings_store

from .base import BaseModule

HELP = {
    "Path": {
        "BasePath": "Base directory",
        "Image": "Image directory",
        "Video": "Video directory",
        "Temp": "Temp directory",
    },
    "Files": {
        "BinaryPath": "Location of the slideshow binary.",
        "PidFile": "The daemon runs in this directory and writes slideshow.pid there.",
    },
    "Database": {
        "Password": "Leave blank to keep old password",
        "Hostname": "hostname[:port]",
        "Username": "Database user",
        "Name": "Name of the database",
    },
}

DESCRIPTION = {
    "Path": "The basepath is the homedirectory of the frontend. All other paths are relative to it.",
    "Files": "All file paths are either relative to BasePath or an absolute path.",
}


def _form_view(settings):
    view = settings.as_dict()
    # Never echo the stored password back into the form.
    view.setdefault("Database", {})["Password"] = ""
    return view


class ConfigurationModule(BaseModule):
    name = "configuration"
    post_actions = frozenset({"save"})

    def build_action_map(self):
        return {"index": self.index, "save": self.save}

    def index(self):
        return {
            "settings": _form_view(self.settings),
            "help": HELP,
            "description": DESCRIPTION,
            "saved": False,
        }

    def save(self):
        document = settings_store.merge_form(self.settings, self.context.form)
        stored = settings_store.save(document, self.context.settings_file)
        self.publish("settings_saved", {"path": str(self.context.settings_file)})
        return self.page(
            "save",
            {
                "settings": _form_view(stored),
                "help": HELP,
                "description": DESCRIPTION,
                "saved": True,
            },
            template="configuration/index.html",
        )
