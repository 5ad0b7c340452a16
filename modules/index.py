"""Landing page."""

from __future__ import annotations

from utils.daemon import SlideshowDaemon

from .base import BaseModule


class IndexModule(BaseModule):
    name = "index"

    def build_action_map(self):
        return {"index": self.index}

    def index(self):
        daemon = SlideshowDaemon.from_settings(self.settings)
        return {
            "daemon": daemon.status(),
            "paths": dict(self.settings.section("Path")),
            "database": {
                "hostname": self.settings.get("Database.Hostname"),
                "name": self.settings.get("Database.Name"),
            },
        }
