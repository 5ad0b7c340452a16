"""Split request paths into module, action and arguments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_MODULE = "index"
DEFAULT_ACTION = "index"


@dataclass(frozen=True)
class RequestPath:
    """Routing target of one request: ``/module/action/arg1/arg2/...``."""

    module: str = DEFAULT_MODULE
    action: str = DEFAULT_ACTION
    arguments: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(self.arguments))

    def __str__(self) -> str:
        return "/" + "/".join((self.module, self.action) + self.arguments)


def resolve(raw_path) -> RequestPath:
    """Parse ``raw_path`` into a :class:`RequestPath`.

    Never raises. Empty segments produced by doubled or trailing slashes are
    dropped, and missing module/action segments fall back to the defaults.
    Argument segments are kept verbatim.
    """
    if raw_path is None:
        raw_path = ""
    raw_path = str(raw_path)
    segments = [segment for segment in raw_path.split("/") if segment]

    module = segments[0] if len(segments) > 0 else DEFAULT_MODULE
    action = segments[1] if len(segments) > 1 else DEFAULT_ACTION
    return RequestPath(module=module, action=action, arguments=tuple(segments[2:]))


__all__ = ["DEFAULT_ACTION", "DEFAULT_MODULE", "RequestPath", "resolve"]
