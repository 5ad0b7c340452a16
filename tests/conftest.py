"""
Pytest configuration file.

Puts the repo root on sys.path so that 'import core...' works, and provides
settings documents on disk.
"""
import json
import sys
from pathlib import Path

import pytest

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from core.settings import DEFAULT_TEMPLATE_FILE  # noqa: E402


def make_document(base_path="/srv/slideshow"):
    return {
        "Path": {"BasePath": base_path, "Image": "image", "Video": "video", "Temp": "temp"},
        "Files": {"BinaryPath": "bin/slideshow", "PidFile": "slideshow.pid"},
        "Database": {
            "Hostname": "db.local",
            "Username": "slideshow",
            "Password": "secret",
            "Name": "slideshow",
        },
    }


@pytest.fixture
def document():
    return make_document()


@pytest.fixture
def settings_file(tmp_path, document):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(document))
    return path


@pytest.fixture
def corrupt_settings_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{"Path": {"BasePath": ')
    return path


@pytest.fixture
def missing_settings_file(tmp_path):
    return tmp_path / "nothing-here.json"


@pytest.fixture
def default_settings_file():
    return DEFAULT_TEMPLATE_FILE
