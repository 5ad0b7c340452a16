"""Default set of routable modules."""

from __future__ import annotations

from core.registry import ModuleRegistry

from .configuration import ConfigurationModule
from .daemon import DaemonModule
from .error import ErrorModule
from .index import IndexModule
from .install import InstallModule

DEFAULT_MODULES = (
    IndexModule,
    ConfigurationModule,
    DaemonModule,
    InstallModule,
    ErrorModule,
)


def build_registry() -> ModuleRegistry:
    registry = ModuleRegistry()
    for module_cls in DEFAULT_MODULES:
        registry.register(module_cls.name, module_cls)
    return registry
