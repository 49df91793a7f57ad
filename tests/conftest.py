"""
Shared pytest fixtures.

Widgets are created on Qt's offscreen platform so the suite runs headless.
"""

import json
import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

ROOT = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, ROOT)

SPECS_DIR = os.path.join(ROOT, "examples_specs")


def _write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


@pytest.fixture(scope="session")
def qapp():
    """The process-wide QApplication."""
    from PyQt5.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def specs_dir():
    """Directory holding the sample YAML dialog files."""
    return SPECS_DIR


@pytest.fixture
def temp_config_file(tmp_path):
    """A current-version defaults file."""
    return _write_json(tmp_path / "qtprompt.json", {
        "_version": 1,
        "font": {"family": "Arial", "size": 11, "color": None},
        "colors": {"background": "#fafafa", "accent": None},
        "min_width": 400,
        "owner_dim_opacity": 0.5,
    })


@pytest.fixture
def temp_config_v0(tmp_path):
    """An unversioned defaults file using the old flat keys."""
    return _write_json(tmp_path / "qtprompt.json", {
        "font_family": "Courier",
        "font_size": 9,
        "background_color": "#202020",
    })


@pytest.fixture
def corrupted_config_file(tmp_path):
    """A defaults file that is not valid JSON, alone in its directory."""
    path = tmp_path / "qtprompt.json"
    path.write_text("{ invalid json content", encoding="utf-8")
    return str(path)


@pytest.fixture
def mock_config_service():
    from qtprompt.services.config_service import MockConfigService
    return MockConfigService()


@pytest.fixture
def mock_services():
    """DialogServices wired to recording mocks."""
    from qtprompt.services.dialog_services import MockDialogServices
    return MockDialogServices()
