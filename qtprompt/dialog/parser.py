"""
Dialog Specification Parser

Handles loading of YAML dialog specifications, conversion of plain mappings
to schema objects, and normalization of a DialogSpec before it is built.
"""

import dataclasses
import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..models.config import DefaultsConfig
from .logging import logger
from .schema import (
    Alignment,
    Button,
    COPY_BUTTON,
    DialogSpec,
    EXPLORE_BUTTON,
    FontSpec,
    GridOptions,
    IconKind,
    InputType,
    MessagePosition,
    Prompt,
    ResizeMode,
    SAVE_BUTTON,
    SelectionMode,
    SetPresentation,
    TIMED_OUT_KEY,
    WindowOptions,
    WindowStyle,
    GRID_SELECT_PREFIX,
)


class SpecParseError(Exception):
    """Exception raised when a dialog specification is malformed."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        location = f" in {source}" if source else ""
        super().__init__(f"{message}{location}")


_ROOT_KEYS = {
    "title", "icon", "image", "message", "prompts", "buttons",
    "cancel_button", "default_button", "button_rows", "comment",
    "content_alignment", "font", "background_color", "accent_color",
    "window", "timeout", "countdown", "grid", "copy_button",
    "collapsible_groups", "collapsed_groups",
}

_PROMPT_KEYS = {
    "message", "name", "input_type", "validate_set", "show_set_as",
    "default_value", "read_only", "line_height", "alignment", "font",
    "message_position", "collapsible", "collapsed", "group", "tab",
    "radio_group", "show_separator", "tooltip", "validate_not_empty",
    "validate_pattern", "validation_message",
}

_BUTTON_KEYS = {"text", "name", "is_cancel", "is_default", "tooltip"}

_WINDOW_KEYS = {f.name for f in dataclasses.fields(WindowOptions)}
_GRID_KEYS = {f.name for f in dataclasses.fields(GridOptions)}
_FONT_KEYS = {"family", "size", "color"}


def _squash(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


class DialogSpecParser:
    """
    Parser for dialog specifications.

    Converts YAML files or plain dictionaries into DialogSpec objects and
    normalizes them (names, button roles, reserved buttons, inherited fonts).
    """

    @classmethod
    def load(cls, path: Union[str, Path]) -> DialogSpec:
        """
        Load and parse a YAML dialog specification file.

        Args:
            path: Path to the YAML file

        Returns:
            DialogSpec object (not yet normalized)

        Raises:
            SpecParseError: If parsing or validation fails
        """
        path = Path(path)
        if not path.exists():
            raise SpecParseError(f"File not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SpecParseError(f"Invalid YAML syntax: {e}", str(path))

        if data is None:
            raise SpecParseError("Empty YAML file", str(path))

        return cls.parse(data, str(path))

    @classmethod
    def loads(cls, yaml_str: str, source: str = "<string>") -> DialogSpec:
        """
        Parse a YAML string.

        Args:
            yaml_str: YAML content as string
            source: Source identifier for error messages

        Returns:
            DialogSpec object (not yet normalized)
        """
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise SpecParseError(f"Invalid YAML syntax: {e}", source)

        if data is None:
            raise SpecParseError("Empty YAML content", source)

        return cls.parse(data, source)

    @classmethod
    def parse(cls, data: dict[str, Any], source: str = "<dict>") -> DialogSpec:
        """
        Parse a dictionary into a DialogSpec.

        Args:
            data: Dictionary from parsed YAML or built by the caller
            source: Source identifier for error messages

        Returns:
            DialogSpec object (not yet normalized)
        """
        parser = cls(source)
        return parser._parse_root(data)

    @classmethod
    def normalize(
        cls,
        spec: DialogSpec,
        defaults: Optional[DefaultsConfig] = None,
    ) -> DialogSpec:
        """
        Resolve a DialogSpec into the form the engine builds from.

        Bare strings become Prompt/Button objects, prompt names are
        generated, button roles are assigned, engine buttons are inserted
        and unset fonts and alignments are inherited. The caller's objects
        are never mutated.

        Args:
            spec: Specification to normalize
            defaults: Styling defaults for unset dialog-level attributes

        Returns:
            New, normalized DialogSpec

        Raises:
            SpecParseError: On duplicate names or conflicting roles
        """
        parser = cls("<spec>")
        return parser._normalize(spec, defaults)

    def __init__(self, source: str = "<unknown>"):
        self.source = source

    def _error(self, message: str) -> SpecParseError:
        """Create a parse error with source context."""
        return SpecParseError(message, self.source)

    def _require(self, data: dict, key: str, context: str = "") -> Any:
        """Require a key to be present in a dictionary."""
        if key not in data:
            ctx = f" in {context}" if context else ""
            raise self._error(f"Missing required field '{key}'{ctx}")
        return data[key]

    def _get(self, data: dict, key: str, default: Any = None) -> Any:
        """Get a value with a default."""
        value = data.get(key, default)
        return default if value is None else value

    def _check_keys(self, data: Any, allowed: set[str], context: str):
        """Reject mappings carrying unknown keys."""
        if not isinstance(data, dict):
            raise self._error(f"Expected a mapping for {context}")
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise self._error(f"Unknown field(s) {unknown} in {context}")

    def _enum(self, enum_cls: type[Enum], value: Any, context: str) -> Any:
        """Convert a loose string (e.g. 'FileOpen', 'file_open') to an enum."""
        if isinstance(value, enum_cls):
            return value
        wanted = _squash(str(value))
        for member in enum_cls:
            if wanted in (_squash(member.value), _squash(member.name)):
                return member
        choices = [m.value for m in enum_cls]
        raise self._error(f"Invalid value '{value}' for {context}. Expected one of {choices}")

    def _lines(self, value: Any) -> list[str]:
        """Accept a single string or a list of lines."""
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(line) for line in value]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse_root(self, data: dict) -> DialogSpec:
        """Parse the root dialog specification."""
        self._check_keys(data, _ROOT_KEYS, "root")

        prompts = [
            self._parse_prompt(p, i) for i, p in enumerate(self._get(data, "prompts", []))
        ]
        buttons = [
            self._parse_button(b, i) for i, b in enumerate(self._get(data, "buttons", []))
        ]

        grid = None
        if "grid" in data:
            grid = self._parse_grid(data["grid"])

        timeout = self._get(data, "timeout")
        if timeout is not None:
            timeout = int(timeout)

        spec = DialogSpec(
            title=str(self._get(data, "title", "")),
            icon=self._enum(IconKind, self._get(data, "icon", IconKind.NONE), "icon"),
            image=self._get(data, "image"),
            message=self._lines(data.get("message")),
            prompts=prompts,
            buttons=buttons,
            cancel_button=self._get(data, "cancel_button"),
            default_button=self._get(data, "default_button"),
            button_rows=int(self._get(data, "button_rows", 1)),
            comment=self._lines(data.get("comment")),
            content_alignment=self._enum(
                Alignment, self._get(data, "content_alignment", Alignment.LEFT), "content_alignment"
            ),
            font=self._parse_font(data.get("font"), "root"),
            background_color=self._get(data, "background_color"),
            accent_color=self._get(data, "accent_color"),
            window=self._parse_window(data.get("window")),
            timeout=timeout,
            countdown=bool(self._get(data, "countdown", False)),
            grid=grid,
            copy_button=bool(self._get(data, "copy_button", False)),
            collapsible_groups=bool(self._get(data, "collapsible_groups", False)),
            collapsed_groups=bool(self._get(data, "collapsed_groups", False)),
        )
        logger.debug(
            f"Parsed dialog spec from {self.source}: "
            f"{len(prompts)} prompt(s), {len(buttons)} button(s)"
        )
        return spec

    def _parse_font(self, data: Optional[dict], context: str) -> FontSpec:
        """Parse a font mapping."""
        if data is None:
            return FontSpec()
        self._check_keys(data, _FONT_KEYS, f"font of {context}")
        size = self._get(data, "size")
        return FontSpec(
            family=self._get(data, "family"),
            size=int(size) if size is not None else None,
            color=self._get(data, "color"),
        )

    def _parse_prompt(self, data: Any, index: int) -> Prompt:
        """Parse a prompt mapping or bare string."""
        if isinstance(data, str):
            return Prompt(message=data)

        context = f"prompt #{index}"
        self._check_keys(data, _PROMPT_KEYS, context)

        validate_set = data.get("validate_set")
        if validate_set is not None:
            validate_set = [str(option) for option in validate_set]

        alignment = self._get(data, "alignment")
        if alignment is not None:
            alignment = self._enum(Alignment, alignment, f"alignment of {context}")

        return Prompt(
            message=str(self._get(data, "message", "")),
            name=self._get(data, "name"),
            input_type=self._enum(
                InputType, self._get(data, "input_type", InputType.PLAIN_TEXT), f"input_type of {context}"
            ),
            validate_set=validate_set,
            show_set_as=self._enum(
                SetPresentation, self._get(data, "show_set_as", SetPresentation.COMBO), f"show_set_as of {context}"
            ),
            default_value=data.get("default_value"),
            read_only=bool(self._get(data, "read_only", False)),
            line_height=int(self._get(data, "line_height", 1)),
            alignment=alignment,
            font=self._parse_font(data.get("font"), context),
            message_position=self._enum(
                MessagePosition, self._get(data, "message_position", MessagePosition.TOP),
                f"message_position of {context}",
            ),
            collapsible=bool(self._get(data, "collapsible", False)),
            collapsed=bool(self._get(data, "collapsed", False)),
            group=self._optional_str(data.get("group")),
            tab=self._optional_str(data.get("tab")),
            radio_group=self._optional_str(data.get("radio_group")),
            show_separator=bool(self._get(data, "show_separator", False)),
            tooltip=self._get(data, "tooltip"),
            validate_not_empty=bool(self._get(data, "validate_not_empty", False)),
            validate_pattern=self._get(data, "validate_pattern"),
            validation_message=self._get(data, "validation_message"),
        )

    def _optional_str(self, value: Any) -> Optional[str]:
        # Group keys like 1 or 2 come out of YAML as ints
        return None if value is None else str(value)

    def _parse_button(self, data: Any, index: int) -> Button:
        """Parse a button mapping or bare string."""
        if isinstance(data, str):
            return Button(text=data)

        context = f"button #{index}"
        self._check_keys(data, _BUTTON_KEYS, context)
        return Button(
            text=str(self._require(data, "text", context)),
            name=self._get(data, "name"),
            is_cancel=bool(self._get(data, "is_cancel", False)),
            is_default=bool(self._get(data, "is_default", False)),
            tooltip=self._get(data, "tooltip"),
        )

    def _parse_window(self, data: Optional[dict]) -> WindowOptions:
        """Parse window chrome options."""
        if data is None:
            return WindowOptions()
        self._check_keys(data, _WINDOW_KEYS, "window")
        options = WindowOptions(
            style=self._enum(WindowStyle, self._get(data, "style", WindowStyle.NORMAL), "window.style"),
            resize_mode=self._enum(
                ResizeMode, self._get(data, "resize_mode", ResizeMode.CAN_RESIZE), "window.resize_mode"
            ),
            topmost=bool(self._get(data, "topmost", False)),
            hide_taskbar_icon=bool(self._get(data, "hide_taskbar_icon", False)),
        )
        for key in ("min_width", "min_height", "max_width", "max_height"):
            if data.get(key) is not None:
                setattr(options, key, int(data[key]))
        return options

    def _parse_grid(self, data: Any) -> GridOptions:
        """Parse grid options; a bare list is shorthand for grid data."""
        if isinstance(data, list):
            return GridOptions(data=data)

        self._check_keys(data, _GRID_KEYS, "grid")
        rows = self._require(data, "data", "grid")
        if not isinstance(rows, list):
            raise self._error("grid.data must be a list")

        multi = bool(self._get(data, "multi", False))
        if multi and not all(isinstance(seq, list) for seq in rows):
            raise self._error("grid.data must be a list of lists when grid.multi is set")

        return GridOptions(
            data=rows,
            multi=multi,
            as_list=bool(self._get(data, "as_list", False)),
            selection_mode=self._enum(
                SelectionMode, self._get(data, "selection_mode", SelectionMode.SINGLE_ROW),
                "grid.selection_mode",
            ),
            hide_search=bool(self._get(data, "hide_search", False)),
        )

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def _normalize(self, spec: DialogSpec, defaults: Optional[DefaultsConfig]) -> DialogSpec:
        """Resolve names, roles and inherited attributes."""
        font = spec.font
        background = spec.background_color
        accent = spec.accent_color
        if defaults is not None:
            font = font.inherit(
                FontSpec(defaults.font_family, defaults.font_size, defaults.font_color)
            )
            background = background or defaults.background_color
            accent = accent or defaults.accent_color

        message = self._lines(spec.message)
        comment = self._lines(spec.comment)

        prompts = self._normalize_prompts(spec, font)
        buttons = self._normalize_buttons(spec, prompts)

        # Engine buttons go immediately after the first caller button
        reserved = []
        if spec.grid is not None and not spec.grid.hide_search:
            reserved.append(Button(text=EXPLORE_BUTTON, reserved=True))
            reserved.append(Button(text=SAVE_BUTTON, reserved=True))
        if spec.copy_button and message:
            reserved.append(Button(text=COPY_BUTTON, reserved=True))
        taken = {b.name for b in buttons}
        for button in reserved:
            if button.name in taken:
                raise self._error(f"Button name '{button.name}' is reserved for this dialog")
        buttons[1:1] = reserved

        if spec.timeout is not None and spec.timeout <= 0:
            raise self._error(f"timeout must be positive, got {spec.timeout}")

        return dataclasses.replace(
            spec,
            message=message,
            comment=comment,
            prompts=prompts,
            buttons=buttons,
            font=font,
            background_color=background,
            accent_color=accent,
            button_rows=max(1, spec.button_rows),
        )

    def _normalize_prompts(self, spec: DialogSpec, font: FontSpec) -> list[Prompt]:
        """Copy prompts, generating names and inheriting styling."""
        prompts: list[Prompt] = []
        seen: set[str] = set()

        for index, entry in enumerate(spec.prompts):
            if isinstance(entry, str):
                entry = Prompt(message=entry)
            elif not isinstance(entry, Prompt):
                raise self._error(f"Prompt #{index} must be a Prompt or a string")

            name = entry.name or f"Input_{index}"
            if name in seen:
                raise self._error(f"Duplicate prompt name '{name}'")
            if name == TIMED_OUT_KEY or name.startswith(GRID_SELECT_PREFIX):
                raise self._error(f"Prompt name '{name}' is reserved")
            seen.add(name)

            if entry.validate_set is not None and not entry.validate_set:
                raise self._error(f"Prompt '{name}' has an empty validate_set")
            if (
                entry.validate_set
                and entry.default_value is not None
                and str(entry.default_value) not in [str(option) for option in entry.validate_set]
            ):
                raise self._error(
                    f"Default value '{entry.default_value}' of prompt '{name}' is not one of its choices"
                )

            if entry.validate_pattern:
                try:
                    re.compile(entry.validate_pattern)
                except re.error as e:
                    raise self._error(f"Invalid validate_pattern for prompt '{name}': {e}")

            prompts.append(
                dataclasses.replace(
                    entry,
                    name=name,
                    font=entry.font.inherit(font),
                    alignment=entry.alignment or spec.content_alignment,
                    validate_set=list(entry.validate_set) if entry.validate_set is not None else None,
                )
            )

        return prompts

    def _normalize_buttons(self, spec: DialogSpec, prompts: list[Prompt]) -> list[Button]:
        """Copy caller buttons and assign default/cancel roles."""
        buttons: list[Button] = []
        for index, entry in enumerate(spec.buttons):
            if isinstance(entry, str):
                entry = Button(text=entry)
            elif not isinstance(entry, Button):
                raise self._error(f"Button #{index} must be a Button or a string")
            if entry.reserved:
                continue  # Re-synthesized below
            buttons.append(dataclasses.replace(entry))

        if not buttons:
            buttons.append(Button(text="OK"))

        for role_name, attr in ((spec.cancel_button, "is_cancel"), (spec.default_button, "is_default")):
            if not role_name:
                continue
            matches = [b for b in buttons if role_name in (b.name, b.text)]
            if not matches:
                raise self._error(f"No button named '{role_name}' for {attr}")
            setattr(matches[0], attr, True)

        if len(buttons) == 1 and not buttons[0].has_role:
            buttons[0].is_default = True

        if sum(1 for b in buttons if b.is_default) > 1:
            raise self._error("More than one default button")
        if sum(1 for b in buttons if b.is_cancel) > 1:
            raise self._error("More than one cancel button")

        prompt_names = {p.name for p in prompts}
        seen: set[str] = set()
        for button in buttons:
            if button.name in seen:
                raise self._error(f"Duplicate button name '{button.name}'")
            if button.name in prompt_names:
                raise self._error(f"Button name '{button.name}' collides with a prompt name")
            seen.add(button.name)

        return buttons
