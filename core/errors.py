"""Failure types raised while handling a request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class FrontendError(Exception):
    """Base class for every failure the frontend raises on purpose."""


class HandlerFailure(FrontendError):
    """Failure raised by a handler; carries a message and an integer code."""

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.code = int(code)


class ModuleNotFound(HandlerFailure):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown module '{name}'", code=404)
        self.name = name


class ActionNotFound(HandlerFailure):
    def __init__(self, module: str, action: str) -> None:
        super().__init__(f"Module '{module}' has no action '{action}'", code=404)
        self.module = module
        self.action = action


class ActionMethodNotAllowed(HandlerFailure):
    def __init__(self, module: str, action: str, method: str) -> None:
        super().__init__(f"Action '{module}/{action}' does not accept {method} requests", code=405)
        self.module = module
        self.action = action
        self.method = method


class SettingsValidationError(HandlerFailure):
    """Submitted settings are missing required fields."""

    def __init__(self, missing) -> None:
        self.missing = tuple(missing)
        super().__init__("Missing or invalid settings: " + ", ".join(self.missing), code=422)


class ExternalProcessFailure(HandlerFailure):
    """A spawned process exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        code: int = 0,
        *,
        exit_code: int,
        output: Optional[str] = None,
    ) -> None:
        super().__init__(message, code)
        self.exit_code = int(exit_code)
        self.output = output or ""


class DiagnosticDispatchFailure(FrontendError):
    """The diagnostic module itself could not be dispatched."""


@dataclass(frozen=True)
class FailureRecord:
    """Snapshot of a failure caught at the dispatch boundary.

    ``exit_code`` and ``captured_output`` are only set for failures that came
    from an external process invocation.
    """

    message: str
    code: int = 0
    exit_code: Optional[int] = None
    captured_output: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FailureRecord":
        if isinstance(exc, ExternalProcessFailure):
            return cls(exc.message, exc.code, exc.exit_code, exc.output)
        if isinstance(exc, HandlerFailure):
            return cls(exc.message, exc.code)
        message = str(exc) or exc.__class__.__name__
        return cls(message, 0)


__all__ = [
    "ActionMethodNotAllowed",
    "ActionNotFound",
    "DiagnosticDispatchFailure",
    "ExternalProcessFailure",
    "FailureRecord",
    "FrontendError",
    "HandlerFailure",
    "ModuleNotFound",
    "SettingsValidationError",
]
