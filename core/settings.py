#!/usr/bin/env python3
"""Persisted frontend settings: loading, validation and saving.

The settings document is a JSON object of sections (``Path``, ``Files``,
``Database``), each mapping keys to string values.  Loading never raises;
it returns one of three outcomes so the dispatcher can pick a recovery path:

- :class:`SettingsOk` when the document parses and every required field is set
- :class:`SettingsCorrupt` when the document cannot be read or parsed at all
- :class:`SettingsInvalid` when it parses but required fields are missing
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import SettingsValidationError

logger = logging.getLogger("slideshow.settings")

SECTIONS: Tuple[str, ...] = ("Path", "Files", "Database")

# Fields that must hold a non-empty string.
REQUIRED_FIELDS: Tuple[str, ...] = (
    "Path.BasePath",
    "Path.Image",
    "Path.Video",
    "Path.Temp",
    "Files.BinaryPath",
    "Files.PidFile",
    "Database.Hostname",
    "Database.Username",
    "Database.Name",
)
# Fields that must be present as strings but may be empty.
OPTIONAL_FIELDS: Tuple[str, ...] = ("Database.Password",)

_REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_TEMPLATE_FILE = Path(__file__).with_name("settings.json.default")
SETTINGS_FILE = Path(os.getenv("SLIDESHOW_SETTINGS_FILE", str(_REPO_ROOT / "settings.json")))
DEFAULT_SETTINGS_FILE = Path(
    os.getenv("SLIDESHOW_DEFAULT_SETTINGS_FILE", str(DEFAULT_TEMPLATE_FILE))
)


def _split(key: str) -> Tuple[str, str]:
    section, _, name = key.partition(".")
    if not section or not name:
        raise KeyError(f"Settings keys look like 'Section.Key', got '{key}'")
    return section, name


class Settings:
    """Read-only view over a validated settings document."""

    def __init__(
        self,
        data: Mapping[str, Mapping[str, str]],
        *,
        source: Optional[Path] = None,
        is_template: bool = False,
    ) -> None:
        self._data = MappingProxyType(
            {section: MappingProxyType(dict(values)) for section, values in data.items()}
        )
        self.source = Path(source) if source is not None else None
        self.is_template = is_template

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        try:
            section, name = _split(key)
        except KeyError:
            return default
        return self._data.get(section, {}).get(name, default)

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def section(self, name: str) -> Mapping[str, str]:
        return self._data.get(name, MappingProxyType({}))

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {section: dict(values) for section, values in self._data.items()}

    def resolve_path(self, key: str) -> Path:
        """Return the path stored at ``key``; relative values hang off BasePath."""
        value = Path(self[key])
        if value.is_absolute():
            return value
        return Path(self["Path.BasePath"]) / value

    def binary(self) -> Path:
        return self.resolve_path("Files.BinaryPath")

    def pid_file(self) -> Path:
        return self.resolve_path("Files.PidFile")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Settings):
            return NotImplemented
        return self.as_dict() == other.as_dict() and self.is_template == other.is_template

    def __repr__(self) -> str:
        return f"Settings(source={str(self.source)!r}, is_template={self.is_template})"


@dataclass(frozen=True)
class SettingsOk:
    settings: Settings


@dataclass(frozen=True)
class SettingsCorrupt:
    reason: str


@dataclass(frozen=True)
class SettingsInvalid:
    missing: Tuple[str, ...] = field(default_factory=tuple)


SettingsLoadOutcome = Union[SettingsOk, SettingsCorrupt, SettingsInvalid]


def find_missing(document: Any) -> Tuple[str, ...]:
    """Return dotted names of required fields that are absent or malformed."""
    if not isinstance(document, dict):
        return REQUIRED_FIELDS + OPTIONAL_FIELDS
    missing = []
    for key in REQUIRED_FIELDS + OPTIONAL_FIELDS:
        section, name = _split(key)
        values = document.get(section)
        value = values.get(name) if isinstance(values, dict) else None
        if not isinstance(value, str):
            missing.append(key)
        elif key in REQUIRED_FIELDS and not value.strip():
            missing.append(key)
    return tuple(missing)


def _normalize(document: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
    # Unknown sections and non-string extras are kept only when they are strings.
    normalized: Dict[str, Dict[str, str]] = {}
    for section, values in document.items():
        if not isinstance(values, dict):
            continue
        normalized[section] = {
            str(name): value for name, value in values.items() if isinstance(value, str)
        }
    return normalized


def load(path, *, template: bool = False) -> SettingsLoadOutcome:
    """Load the settings document at ``path``.  Never raises."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        logger.info({"evt": "settings_missing", "path": str(path)})
        return SettingsInvalid(REQUIRED_FIELDS + OPTIONAL_FIELDS)
    except (OSError, ValueError) as exc:
        logger.error({"evt": "settings_unreadable", "path": str(path), "error": str(exc)})
        return SettingsCorrupt(f"cannot read {path}: {exc}")

    try:
        document = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        logger.error({"evt": "settings_corrupt", "path": str(path), "error": str(exc)})
        return SettingsCorrupt(f"cannot parse {path}: {exc}")

    missing = find_missing(document)
    if missing:
        logger.warning({"evt": "settings_invalid", "path": str(path), "missing": list(missing)})
        return SettingsInvalid(missing)

    return SettingsOk(Settings(_normalize(document), source=path, is_template=template))


def merge_form(base: Optional[Settings], form: Mapping[str, str]) -> Dict[str, Dict[str, str]]:
    """Overlay ``Section.Key`` form fields on ``base``.

    A blank ``Database.Password`` keeps the previously stored password.
    """
    document = base.as_dict() if base is not None else {}
    for section in SECTIONS:
        document.setdefault(section, {})
    for key, value in form.items():
        if "." not in key:
            continue
        section, name = key.split(".", 1)
        if section not in SECTIONS or not name:
            continue
        value = str(value).strip()
        if key == "Database.Password" and not value:
            value = base.get(key, "") if base is not None else ""
        document[section][name] = value
    return document


def save(document: Mapping[str, Mapping[str, str]], path) -> Settings:
    """Validate and write ``document`` to ``path``; returns the stored settings."""
    document = {section: dict(values) for section, values in document.items()}
    missing = find_missing(document)
    if missing:
        raise SettingsValidationError(missing)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(document, indent=2, sort_keys=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".settings-", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload + "\n")
        os.replace(tmp_name, path)
    except OSError:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
    logger.info({"evt": "settings_saved", "path": str(path)})
    return Settings(_normalize(document), source=path)


__all__ = [
    "DEFAULT_SETTINGS_FILE",
    "OPTIONAL_FIELDS",
    "REQUIRED_FIELDS",
    "SECTIONS",
    "SETTINGS_FILE",
    "Settings",
    "SettingsCorrupt",
    "SettingsInvalid",
    "SettingsLoadOutcome",
    "SettingsOk",
    "find_missing",
    "load",
    "merge_form",
    "save",
]
