"""
Unit tests for the command line interface.
"""

import json
import os
from dataclasses import dataclass
from unittest.mock import patch

import pytest

from qtprompt import cli
from qtprompt.dialog.parser import SpecParseError
from qtprompt.dialog.result_map import ResultMap
from qtprompt.dialog.schema import SecureText


@dataclass
class Server:
    host: str
    port: int


class TestResultToJson:
    def test_masks_passwords(self):
        result = ResultMap({"User": "bob", "Password": SecureText("hunter2"), "OK": True})

        data = json.loads(cli.result_to_json(result))

        assert data == {"User": "bob", "Password": "********", "OK": True}

    def test_grid_selections(self):
        result = ResultMap({
            "grid_select1": Server("db", 5432),
            "grid_select2": [{"Name": "a"}, {"Name": "b"}],
            "grid_select3": None,
        })

        data = json.loads(cli.result_to_json(result))

        assert data["grid_select1"] == {"host": "db", "port": 5432}
        assert data["grid_select2"] == [{"Name": "a"}, {"Name": "b"}]
        assert data["grid_select3"] is None


class TestCheck:
    def test_outline_of_sample(self, specs_dir):
        text = cli.check(os.path.join(specs_dir, "new_account.yaml"), config="/nonexistent/qtprompt.json")

        assert text.splitlines()[0] == "Dialog"
        assert "Group 'Identity'" in text
        assert "Tab 'Access'" in text
        assert "Prompt Role [set:radio] top" in text
        assert "Countdown 120s" in text
        assert "Buttons Create | Copy | Cancel" in text

    def test_grid_sample(self, specs_dir):
        text = cli.check(os.path.join(specs_dir, "pick_server.yaml"), config="/nonexistent/qtprompt.json")

        assert "Grid 1 (3 row(s))" in text
        assert "Buttons Connect | Explore | Save | Cancel" in text

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("prompts:\n  - message: x\n    input_type: slider\n")

        with pytest.raises(SpecParseError):
            cli.check(str(path))


class TestShow:
    def test_show_prints_result(self, specs_dir):
        spec_path = os.path.join(specs_dir, "pick_server.yaml")
        with patch.object(cli, "show_dialog", return_value=ResultMap({"Connect": True, "grid_select1": None})) as show:
            output = cli.show(spec_path, config="/nonexistent/qtprompt.json")

        assert json.loads(output) == {"Connect": True, "grid_select1": None}
        spec = show.call_args[0][0]
        assert spec.title == "Pick a Server"


class TestDefaults:
    def test_prints_builtin_defaults(self, tmp_path):
        output = cli.defaults(config=str(tmp_path / "qtprompt.json"))

        data = json.loads(output)
        assert data["min_width"] == 320
        assert not (tmp_path / "qtprompt.json").exists()

    def test_changes_are_saved(self, tmp_path):
        path = str(tmp_path / "qtprompt.json")

        cli.defaults(config=path, font_size=12, accent_color="#0078d4")

        data = json.loads(cli.defaults(config=path))
        assert data["font"]["size"] == 12
        assert data["colors"]["accent"] == "#0078d4"
