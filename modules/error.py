"""Diagnostic module: shows failures caught by the dispatcher."""

from __future__ import annotations

from typing import Any, Dict

from core.errors import FailureRecord
from core.registry import DIAGNOSTIC_MODULE, Page

from .base import BaseModule

NO_EXIT_CODE = -1


def project(failure: FailureRecord) -> Dict[str, Any]:
    """Flatten ``failure`` into template data, filling absent process fields."""
    return {
        "message": failure.message,
        "code": failure.code,
        "exit_code": failure.exit_code if failure.exit_code is not None else NO_EXIT_CODE,
        "captured_output": failure.captured_output if failure.captured_output is not None else "",
    }


class ErrorModule(BaseModule):
    name = DIAGNOSTIC_MODULE

    def build_action_map(self):
        return {"display": self.display}

    def display(self, failure: FailureRecord) -> Page:
        layout = "install" if self.context.setup_pending else self.layout
        return self.page("display", project(failure), layout=layout, status=500)
