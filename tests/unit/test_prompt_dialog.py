"""
Unit tests for the Dialog Builder and the PromptDialog lifecycle.

Note: These tests require a Qt application instance.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from PyQt5.QtWidgets import QDialog, QLayout, QTabWidget, QWidget

from qtprompt.dialog.schema import (
    Button,
    DialogSpec,
    GridOptions,
    IconKind,
    InputType,
    Prompt,
    ResizeMode,
    WindowOptions,
)
from qtprompt.dialog.parser import SpecParseError
from qtprompt.dialog.ui.dialog_builder import (
    DialogBuilder,
    DialogConstructionError,
    DialogState,
    PromptDialog,
    show_dialog,
)
from qtprompt.dialog.ui.widgets.collapsible import CollapsibleSection
from qtprompt.models.config import DefaultsConfig
from qtprompt.services.config_service import CONFIG_ENV_VAR
from qtprompt.services.dialog_services import (
    MockClipboardService,
    MockDialogServices,
    MockFileDialogService,
)


ROWS = [{"Name": "Alice"}, {"Name": "Bob"}]


def _build(spec, services=None, message_box=None, parent=None) -> PromptDialog:
    return DialogBuilder.build(
        spec,
        services=services or MockDialogServices(),
        config=DefaultsConfig(),
        message_box=message_box or MagicMock(),
        parent=parent,
    )


def _login_spec(**kwargs) -> DialogSpec:
    return DialogSpec(
        title="Login",
        prompts=[
            Prompt(name="User", message="User", validate_not_empty=True),
            Prompt(name="Remember", message="Remember me", input_type=InputType.CHECKBOX),
        ],
        buttons=["OK", "Cancel"],
        cancel_button="Cancel",
        **kwargs,
    )


class TestValidatedClose:
    def test_ok_closes_with_values(self, qapp):
        dialog = _build(_login_spec())
        dialog.show()
        assert dialog.state() == DialogState.SHOWN

        dialog.fieldWidget("User").inputWidget().setText("bob")
        dialog.button("OK").click()

        result = dialog.resultMap()
        assert dialog.state() == DialogState.CLOSED
        assert dialog.result() == QDialog.Accepted
        assert result.is_frozen
        assert result["User"] == "bob"
        assert result["OK"] is True
        assert result["Cancel"] is False

    def test_validation_failure_keeps_dialog_open(self, qapp):
        message_box = MagicMock()
        dialog = _build(_login_spec(), message_box=message_box)
        dialog.show()
        before = dialog.resultMap().to_dict()

        dialog.button("OK").click()

        message_box.assert_called_once()
        assert "User" in message_box.call_args[0][2]
        assert dialog.state() == DialogState.SHOWN
        assert dialog.isVisible()
        assert dialog.resultMap().to_dict() == before
        assert not dialog.resultMap().is_frozen

    def test_cancel_skips_validation(self, qapp):
        message_box = MagicMock()
        dialog = _build(_login_spec(), message_box=message_box)
        dialog.show()

        dialog.button("Cancel").click()

        result = dialog.resultMap()
        message_box.assert_not_called()
        assert dialog.result() == QDialog.Rejected
        assert result["Cancel"] is True
        assert result["OK"] is False

    def test_escape_marks_cancel(self, qapp):
        dialog = _build(_login_spec())
        dialog.show()

        dialog.reject()

        assert dialog.resultMap()["Cancel"] is True
        assert dialog.state() == DialogState.CLOSED

    def test_escape_without_cancel_button(self, qapp):
        dialog = _build(DialogSpec(buttons=["Yes", "No"]))
        dialog.show()

        dialog.reject()

        result = dialog.resultMap()
        assert result["Yes"] is False
        assert result["No"] is False
        assert result.is_frozen

    def test_exactly_one_button_true(self, qapp):
        dialog = _build(DialogSpec(buttons=["A", "B", "C"]))
        dialog.show()

        dialog.button("B").click()

        result = dialog.resultMap()
        assert [name for name in ("A", "B", "C") if result[name]] == ["B"]

    def test_clicks_after_close_are_ignored(self, qapp):
        dialog = _build(DialogSpec(buttons=["A", "B"]))
        dialog.show()
        dialog.button("A").click()

        dialog.button("B").click()

        assert dialog.resultMap()["B"] is False

    def test_independent_invocations(self, qapp):
        spec = _login_spec()
        first = _build(spec)
        second = _build(spec)
        first.show()
        second.show()

        first.fieldWidget("User").inputWidget().setText("one")
        first.button("OK").click()

        assert second.resultMap()["User"] == ""
        assert second.resultMap()["OK"] is False
        assert first.resultMap() is not second.resultMap()
        second.reject()


class TestRevealOnFailure:
    def test_failing_prompt_tab_is_selected(self, qapp):
        spec = DialogSpec(prompts=[
            Prompt(name="a", tab="First"),
            Prompt(name="b", tab="Second", validate_not_empty=True),
        ])
        dialog = _build(spec)
        dialog.show()
        tabs = dialog.findChild(QTabWidget)
        tabs.setCurrentIndex(0)

        dialog.button("OK").click()

        assert tabs.currentIndex() == 1
        dialog.reject()

    def test_collapsed_group_is_expanded(self, qapp):
        spec = DialogSpec(
            prompts=[Prompt(name="a", group="Advanced", validate_not_empty=True)],
            collapsible_groups=True,
            collapsed_groups=True,
        )
        dialog = _build(spec)
        dialog.show()
        section = dialog.findChild(CollapsibleSection)
        assert not section.isExpanded()

        dialog.button("OK").click()

        assert section.isExpanded()
        dialog.reject()


class TestCustomHandlers:
    def test_handler_close_skips_validation(self, qapp):
        def apply(ctx):
            ctx.result["User"] = "from handler"
            ctx.close()

        spec = _login_spec()
        spec.buttons = ["OK", Button("Apply", on_click=apply), "Cancel"]
        dialog = _build(spec)
        dialog.show()

        dialog.button("Apply").click()

        result = dialog.resultMap()
        assert dialog.state() == DialogState.CLOSED
        assert result["User"] == "from handler"
        assert "Apply" not in result
        assert result["OK"] is False

    def test_handler_receives_widgets(self, qapp):
        seen = {}

        def inspect(ctx):
            seen.update(ctx.widgets)
            seen["button"] = ctx.button

        spec = DialogSpec(prompts=["Name"], buttons=["OK", Button("Check", on_click=inspect)])
        dialog = _build(spec)
        dialog.show()

        dialog.button("Check").click()

        assert "Input_0" in seen
        assert "OK" in seen
        assert seen["button"].name == "Check"
        assert dialog.isVisible()
        dialog.reject()

    def test_handler_error_is_reported(self, qapp):
        def broken(ctx):
            raise ValueError("boom")

        message_box = MagicMock()
        dialog = _build(DialogSpec(buttons=["OK", Button("Run", on_click=broken)]), message_box=message_box)
        dialog.show()

        dialog.button("Run").click()

        message_box.assert_called_once()
        assert "boom" in message_box.call_args[0][2]
        assert dialog.state() == DialogState.SHOWN
        dialog.reject()

    def test_prep_hook_runs_once_on_show(self, qapp):
        calls = []
        spec = DialogSpec(prompts=["Name"], prep_hook=lambda ctx: calls.append(sorted(ctx.widgets)))
        dialog = _build(spec)

        dialog.show()
        dialog.hide()
        dialog.show()

        assert calls == [["Input_0", "OK"]]
        dialog.reject()


class TestReservedButtons:
    def test_explore_and_save(self, qapp):
        services = MockDialogServices(file_dialog=MockFileDialogService(["/tmp/rows.csv"]))
        dialog = _build(DialogSpec(buttons=["Go"], grid=GridOptions(data=ROWS)), services=services)
        dialog.show()

        dialog.button("Explore").click()
        dialog.button("Save").click()

        assert services.table_viewer.opened == [ROWS]
        assert services.csv_writer.writes == [(ROWS, "/tmp/rows.csv")]
        assert services.opener.opened == ["/tmp/rows.csv"]
        assert dialog.state() == DialogState.SHOWN
        dialog.reject()

    def test_active_grid(self, qapp):
        services = MockDialogServices()
        spec = DialogSpec(grid=GridOptions(data=[ROWS, [{"Name": "Zed"}]], multi=True))
        dialog = _build(spec, services=services)
        dialog.show()

        assert dialog.activeGrid() is dialog.grids()[0]
        dialog.grids()[1].activated.emit(2)
        dialog.button("Explore").click()

        assert services.table_viewer.opened == [[{"Name": "Zed"}]]
        dialog.reject()

    def test_grid_selection_in_result(self, qapp):
        dialog = _build(DialogSpec(grid=GridOptions(data=ROWS)))
        dialog.show()

        dialog.grids()[0].table().selectRow(1)
        dialog.button("OK").click()

        assert dialog.resultMap()["grid_select1"] == ROWS[1]

    def test_copy_message(self, qapp):
        services = MockDialogServices()
        dialog = _build(DialogSpec(message=["Hello", "World"], copy_button=True), services=services)
        dialog.show()

        dialog.button("Copy").click()

        assert services.clipboard.texts == ["Hello\nWorld"]
        assert "Copy" not in dialog.resultMap()
        dialog.reject()

    def test_copy_failure_is_reported(self, qapp):
        services = MockDialogServices(clipboard=MockClipboardService(succeed=False))
        message_box = MagicMock()
        dialog = _build(DialogSpec(message=["Hello"], copy_button=True), services=services, message_box=message_box)
        dialog.show()

        dialog.button("Copy").click()

        message_box.assert_called_once()
        assert message_box.call_args[0][1] == "Copy Failed"
        dialog.reject()


class TestTimeout:
    def test_timeout_closes_with_defaults(self, qapp):
        dialog = _build(_login_spec(timeout=1))

        result = dialog.run()

        assert result.is_frozen
        assert result["TimedOut"] is True
        assert result["User"] == ""
        assert result["OK"] is False
        assert result["Cancel"] is False

    def test_countdown_label(self, qapp):
        dialog = _build(DialogSpec(timeout=5, countdown=True))
        assert dialog.countdownLabel().text() == "Closing in 5 seconds..."
        dialog.reject()

    def test_show_dialog_from_mapping(self, qapp):
        result = show_dialog(
            {"title": "Quick", "prompts": ["Name"], "timeout": 1},
            services=MockDialogServices(),
            config=DefaultsConfig(),
        )

        assert result["TimedOut"] is True
        assert result["Input_0"] == ""


class TestConstruction:
    def test_owner_is_dimmed_and_restored(self, qapp):
        owner = QWidget()
        owner.show()
        dialog = _build(DialogSpec(), parent=owner)

        dialog.show()
        assert owner.windowOpacity() == pytest.approx(0.5, abs=0.01)

        dialog.button("OK").click()
        assert owner.windowOpacity() == pytest.approx(1.0, abs=0.01)
        owner.close()

    def test_unreadable_image_is_omitted(self, qapp):
        services = MockDialogServices()
        dialog = _build(DialogSpec(image="missing.png", message=["Hi"]), services=services)

        assert services.images.sources == ["missing.png"]
        assert dialog.state() == DialogState.CONSTRUCTING

    def test_fixed_size_window(self, qapp):
        dialog = _build(DialogSpec(window=WindowOptions(resize_mode=ResizeMode.NO_RESIZE)))
        assert dialog.layout().sizeConstraint() == QLayout.SetFixedSize

    def test_min_width_from_config(self, qapp):
        dialog = DialogBuilder.build(
            DialogSpec(), services=MockDialogServices(), config=DefaultsConfig(min_width=500)
        )
        assert dialog.minimumWidth() == 500

    def test_parse_errors_propagate(self, qapp):
        with pytest.raises(SpecParseError):
            _build({"prompts": [{"message": "x", "input_type": "slider"}]})

    def test_toolkit_failure_is_wrapped(self, qapp):
        services = MockDialogServices()
        services.icons.icon = MagicMock(side_effect=RuntimeError("no style"))

        with pytest.raises(DialogConstructionError) as exc_info:
            _build(DialogSpec(icon=IconKind.ERROR), services=services)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_defaults_file_is_not_rewritten(self, qapp, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "qtprompt.json"
        path.write_text(json.dumps({"font_family": "Courier"}), encoding="utf-8")
        before = path.read_text(encoding="utf-8")

        dialog = DialogBuilder.build(DialogSpec(prompts=["a"]), services=MockDialogServices())

        assert dialog.spec().font.family == "Courier"
        assert path.read_text(encoding="utf-8") == before


class TestNestedModals:
    def test_validation_message_uses_engine_dialog(self, qapp):
        dialog = DialogBuilder.build(_login_spec(), services=MockDialogServices(), config=DefaultsConfig())
        dialog.show()

        with patch.object(PromptDialog, "run", autospec=True) as run:
            dialog.button("OK").click()

        message = run.call_args[0][0]
        assert isinstance(message, PromptDialog)
        assert message is not dialog
        assert message.parent() is dialog
        assert message.spec().title == "Validation"
        assert message.spec().icon == IconKind.WARNING
        assert "User" in "\n".join(message.spec().message)
        assert message.button("OK") is not None
        assert dialog.state() == DialogState.SHOWN
        dialog.reject()

    def test_timeout_during_validation_message(self, qapp):
        holder = {}
        dialog = _build(_login_spec(timeout=1), message_box=lambda *args: holder["dialog"]._on_tick())
        holder["dialog"] = dialog
        dialog.show()

        dialog.button("OK").click()

        result = dialog.resultMap()
        assert dialog.state() == DialogState.CLOSED
        assert result.is_frozen
        assert result["TimedOut"] is True
        assert result["OK"] is False

        dialog.button("OK").click()
        assert dialog.state() == DialogState.CLOSED

    def test_prep_hook_may_close(self, qapp):
        dialog = _build(DialogSpec(prompts=["Name"], timeout=5, prep_hook=lambda ctx: ctx.close()))

        dialog.show()

        assert dialog.state() == DialogState.CLOSED
        assert dialog.resultMap().is_frozen
        assert dialog.resultMap()["OK"] is False
