"""Base class for request handlers."""

from __future__ import annotations

from typing import Any, Callable, Dict, FrozenSet, Mapping, Sequence

from core.errors import ActionMethodNotAllowed, ActionNotFound
from core.registry import HandlerContext, Page

ActionHandler = Callable[..., Any]


class BaseModule:
    """Default handler implementation that concrete modules extend.

    Subclasses declare their actions in :meth:`build_action_map`; each action
    receives the path arguments positionally and returns either a mapping of
    template data or a complete :class:`Page`.  Actions listed in
    ``post_actions`` change state and refuse anything but POST.
    """

    name = "base"
    layout = "default"
    post_actions: FrozenSet[str] = frozenset()

    def __init__(self, context: HandlerContext) -> None:
        self.context = context
        self._action_map: Dict[str, ActionHandler] = self.build_action_map() or {}

    def build_action_map(self) -> Dict[str, ActionHandler]:
        """Modules override to declare actions -> callables."""
        return {}

    # Execution -----------------------------------------------------------
    def execute(self, action: str, arguments: Sequence[Any]) -> Page:
        handler = self._action_map.get(action)
        if handler is None:
            raise ActionNotFound(self.name, action)
        if action in self.post_actions and self.context.method != "POST":
            raise ActionMethodNotAllowed(self.name, action, self.context.method)
        result = handler(*arguments)
        if isinstance(result, Page):
            return result
        return self.page(action, result or {})

    def page(self, action: str, data: Mapping[str, Any], **kwargs) -> Page:
        kwargs.setdefault("layout", self.layout)
        return Page(module=self.name, action=action, data=dict(data), **kwargs)

    # Utilities -----------------------------------------------------------
    @property
    def settings(self):
        return self.context.settings

    def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.context.event_bus.publish(event_type, payload)
