"""Request dispatch with first-run and failure recovery.

One call to :meth:`Dispatcher.dispatch` walks a small state machine::

    BOOTSTRAPPING -> READY -> DISPATCHING -> RENDERING
                                         \\-> RECOVERING -> RENDERING
    BOOTSTRAPPING / RECOVERING -> FATAL

Bootstrapping resolves the path and loads settings.  Corrupt settings are
fatal.  Invalid settings (first run) reroute the request to the install
module with the bundled template settings.  Any failure raised by the
selected handler is turned into a :class:`FailureRecord` and shown by the
diagnostic module; a failure of the diagnostic module itself is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Tuple

from . import settings as settings_store
from .errors import DiagnosticDispatchFailure, FailureRecord, HandlerFailure, ModuleNotFound
from .events import EventBus, event_bus as global_event_bus
from .path import RequestPath, resolve
from .registry import (
    DIAGNOSTIC_MODULE,
    INSTALL_MODULE,
    HandlerContext,
    HandlerNotFound,
    ModuleRegistry,
    Page,
)
from .settings import SettingsCorrupt, SettingsInvalid, SettingsLoadOutcome, SettingsOk

logger = logging.getLogger("slideshow.dispatch")

INSTALL_WELCOME_ACTION = "welcome"
DIAGNOSTIC_ACTION = "display"

CORRUPT_SETTINGS_MESSAGE = "The settings file is corrupt"
FATAL_MESSAGE = "An unrecoverable error occurred"

SettingsLoader = Callable[..., SettingsLoadOutcome]


class DispatchState(str, Enum):
    BOOTSTRAPPING = "bootstrapping"
    READY = "ready"
    DISPATCHING = "dispatching"
    RENDERING = "rendering"
    RECOVERING = "recovering"
    FATAL = "fatal"


@dataclass(frozen=True)
class DispatchResult:
    """Terminal outcome of one request."""

    state: DispatchState
    request_path: RequestPath
    page: Optional[Page] = None
    failure: Optional[FailureRecord] = None
    fatal_message: Optional[str] = None
    states: Tuple[DispatchState, ...] = ()

    @property
    def is_fatal(self) -> bool:
        return self.state is DispatchState.FATAL


class Dispatcher:
    """Routes a raw request path to a handler and renders failures."""

    def __init__(
        self,
        registry: ModuleRegistry,
        *,
        settings_file=None,
        default_settings_file=None,
        event_bus: Optional[EventBus] = None,
        settings_loader: Optional[SettingsLoader] = None,
    ) -> None:
        self.registry = registry
        self.settings_file = Path(settings_file or settings_store.SETTINGS_FILE)
        self.default_settings_file = Path(
            default_settings_file or settings_store.DEFAULT_SETTINGS_FILE
        )
        self.event_bus = event_bus or global_event_bus
        self._load = settings_loader or settings_store.load

    def dispatch(
        self,
        raw_path,
        form: Optional[Mapping[str, str]] = None,
        method: str = "GET",
    ) -> DispatchResult:
        states = [DispatchState.BOOTSTRAPPING]
        requested = resolve(raw_path)
        outcome = self._load_settings(self.settings_file)

        if isinstance(outcome, SettingsCorrupt):
            logger.error({"evt": "dispatch_aborted", "path": str(requested), "reason": outcome.reason})
            return self._fatal(requested, states, CORRUPT_SETTINGS_MESSAGE)

        request_path = requested
        setup_pending = isinstance(outcome, SettingsInvalid)
        if setup_pending:
            if requested.module != INSTALL_MODULE:
                request_path = RequestPath(INSTALL_MODULE, INSTALL_WELCOME_ACTION)
            fallback = self._load_settings(self.default_settings_file, template=True)
            if not isinstance(fallback, SettingsOk):
                logger.error(
                    {"evt": "default_settings_unusable", "path": str(self.default_settings_file)}
                )
                return self._fatal(request_path, states, FATAL_MESSAGE)
            settings = fallback.settings
            logger.info(
                {
                    "evt": "setup_redirect",
                    "requested": str(requested),
                    "path": str(request_path),
                    "missing": list(outcome.missing),
                }
            )
        else:
            settings = outcome.settings

        states.append(DispatchState.READY)
        context = HandlerContext(
            settings=settings,
            settings_file=self.settings_file,
            setup_pending=setup_pending,
            form=MappingProxyType(dict(form or {})),
            method=str(method).upper(),
            event_bus=self.event_bus,
        )

        states.append(DispatchState.DISPATCHING)
        try:
            page = self._invoke(request_path, context)
        except Exception as exc:
            states.append(DispatchState.RECOVERING)
            return self._recover(request_path, context, exc, states)

        states.append(DispatchState.RENDERING)
        logger.debug({"evt": "dispatch_ok", "path": str(request_path), "template": page.template})
        return DispatchResult(
            DispatchState.RENDERING, request_path, page=page, states=tuple(states)
        )

    def _load_settings(self, path, **kwargs) -> SettingsLoadOutcome:
        try:
            return self._load(path, **kwargs)
        except Exception as exc:
            logger.exception({"evt": "settings_loader_crashed", "path": str(path)})
            return SettingsCorrupt(f"cannot load {path}: {exc}")

    def _invoke(self, request_path: RequestPath, context: HandlerContext) -> Page:
        resolution = self.registry.resolve(request_path.module, context)
        if isinstance(resolution, HandlerNotFound):
            raise ModuleNotFound(resolution.name)
        return resolution.handler.execute(request_path.action, request_path.arguments)

    def _recover(self, request_path, context, exc, states) -> DispatchResult:
        failure = FailureRecord.from_exception(exc)
        logger.warning(
            {
                "evt": "dispatch_failure",
                "path": str(request_path),
                "message": failure.message,
                "code": failure.code,
                "exit_code": failure.exit_code,
            },
            exc_info=not isinstance(exc, HandlerFailure),
        )

        if request_path.module == DIAGNOSTIC_MODULE:
            logger.error({"evt": "diagnostic_module_failed", "message": failure.message})
            return self._fatal(request_path, states, FATAL_MESSAGE, failure)

        self.event_bus.publish("dispatch_failure", dict(asdict(failure), path=str(request_path)))
        try:
            page = self._display_failure(failure, context)
        except Exception as diag_exc:
            logger.error({"evt": "diagnostic_dispatch_failed", "error": str(diag_exc)})
            return self._fatal(request_path, states, FATAL_MESSAGE, failure)

        states.append(DispatchState.RENDERING)
        return DispatchResult(
            DispatchState.RENDERING,
            request_path,
            page=page,
            failure=failure,
            states=tuple(states),
        )

    def _display_failure(self, failure: FailureRecord, context: HandlerContext) -> Page:
        resolution = self.registry.resolve(DIAGNOSTIC_MODULE, context)
        if isinstance(resolution, HandlerNotFound):
            raise DiagnosticDispatchFailure(f"Diagnostic module '{DIAGNOSTIC_MODULE}' is not registered")
        return resolution.handler.execute(DIAGNOSTIC_ACTION, (failure,))

    @staticmethod
    def _fatal(request_path, states, message, failure=None) -> DispatchResult:
        states.append(DispatchState.FATAL)
        return DispatchResult(
            DispatchState.FATAL,
            request_path,
            failure=failure,
            fatal_message=message,
            states=tuple(states),
        )


__all__ = [
    "CORRUPT_SETTINGS_MESSAGE",
    "DIAGNOSTIC_ACTION",
    "FATAL_MESSAGE",
    "INSTALL_WELCOME_ACTION",
    "DispatchResult",
    "DispatchState",
    "Dispatcher",
]
