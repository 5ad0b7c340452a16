"""Handler contract and the name -> constructor registry used for routing."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence, Union

from .events import EventBus, event_bus as global_event_bus
from .settings import Settings

DIAGNOSTIC_MODULE = "error"
INSTALL_MODULE = "install"


@dataclass(frozen=True)
class Page:
    """Renderable result of a handler action."""

    module: str
    action: str
    data: Mapping[str, Any] = field(default_factory=dict)
    template: Optional[str] = None
    layout: str = "default"
    status: int = 200

    def __post_init__(self) -> None:
        if self.template is None:
            object.__setattr__(self, "template", f"{self.module}/{self.action}.html")


@dataclass(frozen=True)
class HandlerContext:
    """Per-request state handed to every handler at construction time."""

    settings: Settings
    settings_file: Path
    setup_pending: bool = False
    form: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    method: str = "GET"
    event_bus: EventBus = global_event_bus


class Handler(Protocol):
    """Interface every routable module implements."""

    name: str

    def execute(self, action: str, arguments: Sequence[Any]) -> Page: ...


HandlerFactory = Callable[[HandlerContext], Handler]


@dataclass(frozen=True)
class HandlerFound:
    handler: Handler


@dataclass(frozen=True)
class HandlerNotFound:
    name: str


HandlerResolution = Union[HandlerFound, HandlerNotFound]


class ModuleRegistry:
    """Maps canonical module names to handler constructors."""

    def __init__(self, factories: Optional[Mapping[str, HandlerFactory]] = None) -> None:
        self._factories: Dict[str, HandlerFactory] = {}
        if factories:
            for name, factory in factories.items():
                self.register(name, factory)

    def register(self, name: str, factory: HandlerFactory) -> None:
        if name in self._factories:
            raise ValueError(f"Module '{name}' already registered")
        self._factories[name] = factory

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)

    def resolve(self, name: str, context: HandlerContext) -> HandlerResolution:
        factory = self._factories.get(name)
        if factory is None:
            return HandlerNotFound(name)
        return HandlerFound(factory(context))


__all__ = [
    "DIAGNOSTIC_MODULE",
    "INSTALL_MODULE",
    "Handler",
    "HandlerContext",
    "HandlerFactory",
    "HandlerFound",
    "HandlerNotFound",
    "HandlerResolution",
    "ModuleRegistry",
    "Page",
]
