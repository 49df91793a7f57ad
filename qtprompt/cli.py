"""
Command line entry point: show a YAML dialog, check its layout or edit
the dialog defaults file.
"""

import dataclasses
import json
import logging
from typing import Any, Optional

import fire

from qtprompt.dialog.layout import compile_layout, outline
from qtprompt.dialog.logging import configure_logging, level_from_env
from qtprompt.dialog.parser import DialogSpecParser
from qtprompt.dialog.schema import SecureText
from qtprompt.dialog.ui.dialog_builder import show_dialog
from qtprompt.services.config_service import ConfigService


def _json_safe(value: Any) -> Any:
    if isinstance(value, SecureText):
        return "********"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "__dict__"):
        return {k: _json_safe(v) for k, v in vars(value).items() if not k.startswith("_")}
    return str(value)


def result_to_json(result: Any) -> str:
    """Serialize a Result Map; password values are masked."""
    return json.dumps({key: _json_safe(value) for key, value in result.items()}, indent=2)


def show(path: str, config: Optional[str] = None, debug: bool = False, log_file: Optional[str] = None) -> str:
    """
    Show the dialog described by a YAML file and return its Result Map as JSON.

    Args:
        path: YAML dialog specification
        config: Defaults file; $QTPROMPT_CONFIG or ./qtprompt.json when omitted
        debug: Enable debug logging
        log_file: Also write log records to this file
    """
    configure_logging(logging.DEBUG if debug else level_from_env(), log_file=log_file)
    spec = DialogSpecParser.load(path)
    defaults = ConfigService(config).read()
    return result_to_json(show_dialog(spec, config=defaults))


def check(path: str, config: Optional[str] = None) -> str:
    """
    Parse a YAML dialog specification and return its layout outline.

    Nothing is shown; parse errors are raised as SpecParseError.
    """
    spec = DialogSpecParser.load(path)
    defaults = ConfigService(config).read()
    normalized = DialogSpecParser.normalize(spec, defaults)
    return "\n".join(outline(compile_layout(normalized)))


def defaults(config: Optional[str] = None, **changes) -> str:
    """
    Print the effective dialog defaults as JSON.

    Keyword arguments (e.g. --font_size=12) are saved to the defaults file first.
    """
    service = ConfigService(config)
    current = service.update(**changes) if changes else service.load()
    return json.dumps(current.to_dict(), indent=2)


def main():
    fire.Fire({"show": show, "check": check, "defaults": defaults})
