"""Daemon control pages."""

from __future__ import annotations

from utils.daemon import SlideshowDaemon

from .base import BaseModule


class DaemonModule(BaseModule):
    name = "daemon"
    post_actions = frozenset({"start", "stop"})

    def __init__(self, context, daemon_factory=SlideshowDaemon.from_settings) -> None:
        super().__init__(context)
        self.daemon = daemon_factory(self.settings)

    def build_action_map(self):
        return {
            "index": self.status,
            "status": self.status,
            "start": self.start,
            "stop": self.stop,
        }

    def status(self):
        return self.page("status", self.daemon.status())

    def start(self, collection_id=None):
        state = self.daemon.start(collection_id)
        self.publish("daemon_state", state)
        return self.page("start", state, template="daemon/status.html")

    def stop(self):
        state = self.daemon.stop()
        self.publish("daemon_state", state)
        return self.page("stop", state, template="daemon/status.html")
