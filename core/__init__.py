"""Routing and recovery core: path parsing, settings, registry and dispatcher."""

from .dispatcher import DispatchResult, DispatchState, Dispatcher
from .errors import ExternalProcessFailure, FailureRecord, HandlerFailure, ModuleNotFound
from .events import EventBus, event_bus
from .path import RequestPath, resolve
from .registry import HandlerContext, ModuleRegistry, Page

__all__ = [
    "DispatchResult",
    "DispatchState",
    "Dispatcher",
    "EventBus",
    "ExternalProcessFailure",
    "FailureRecord",
    "HandlerContext",
    "HandlerFailure",
    "ModuleNotFound",
    "ModuleRegistry",
    "Page",
    "RequestPath",
    "event_bus",
    "resolve",
]
