"""
Unit tests for the Result Map.
"""

import datetime

import pytest

from qtprompt.dialog.schema import (
    Button,
    DialogSpec,
    GridOptions,
    InputType,
    Prompt,
    SecureText,
)
from qtprompt.dialog.parser import DialogSpecParser
from qtprompt.dialog.result_map import ResultMap, ResultMapFrozenError


def _from(**kwargs) -> ResultMap:
    return ResultMap.from_spec(DialogSpecParser.normalize(DialogSpec(**kwargs)))


class TestFromSpec:
    def test_prompt_defaults(self):
        result = _from(prompts=[
            Prompt(name="text", default_value=42),
            Prompt(name="empty"),
            Prompt(name="check", input_type=InputType.CHECKBOX),
            Prompt(name="link", input_type=InputType.LINK, default_value="https://example.com"),
            Prompt(name="pw", input_type=InputType.PASSWORD, default_value="s3cret"),
            Prompt(name="day", input_type=InputType.DATE),
            Prompt(name="choice", validate_set=["a", "b"]),
        ])

        assert result["text"] == "42"
        assert result["empty"] == ""
        assert result["check"] is False
        assert result["link"] is False
        assert result["pw"] == SecureText("s3cret")
        assert result["day"] == datetime.date.today().isoformat()
        assert result["choice"] is None

    def test_buttons_start_false(self):
        result = _from(buttons=["Yes", "No"])
        assert result["Yes"] is False
        assert result["No"] is False

    def test_custom_and_reserved_buttons_have_no_entry(self):
        result = _from(
            buttons=["Go", Button("Help", on_click=lambda ctx: None)],
            grid=GridOptions(data=[1]),
        )

        assert "Go" in result
        assert "Help" not in result
        assert "Explore" not in result
        assert "Save" not in result

    def test_timed_out_only_with_timeout(self):
        assert "TimedOut" not in _from()
        assert _from(timeout=5)["TimedOut"] is False

    def test_grid_keys(self):
        result = _from(grid=GridOptions(data=[[1], [2], [3]], multi=True))
        assert [result[f"grid_select{k}"] for k in (1, 2, 3)] == [None, None, None]

    def test_independent_maps(self):
        spec = DialogSpecParser.normalize(DialogSpec(prompts=["A"]))
        first = ResultMap.from_spec(spec)
        second = ResultMap.from_spec(spec)

        first["Input_0"] = "changed"
        assert second["Input_0"] == ""


class TestFreeze:
    def test_writes_fail_once_frozen(self):
        result = ResultMap({"a": 1})
        result.freeze()

        assert result.is_frozen
        with pytest.raises(ResultMapFrozenError) as exc_info:
            result["a"] = 2
        assert exc_info.value.key == "a"
        with pytest.raises(ResultMapFrozenError):
            del result["a"]
        assert result["a"] == 1

    def test_mapping_behaviour(self):
        result = ResultMap({"a": 1, "b": 2})

        assert len(result) == 2
        assert list(result) == ["a", "b"]
        assert result.to_dict() == {"a": 1, "b": 2}
        assert "live" in repr(result)


class TestSecureText:
    def test_repr_hides_value(self):
        secret = SecureText("hunter2")

        assert "hunter2" not in repr(secret)
        assert "hunter2" not in str(secret)
        assert secret.reveal() == "hunter2"
        assert len(secret) == 7
