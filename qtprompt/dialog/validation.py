"""
Validation Engine

Checks every prompt's constraints against the live Result Map before a
validated close. The Result Map is only read, never written.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .logging import logger
from .schema import Prompt, SecureText


@dataclass
class ValidationOutcome:
    """Result of a validation pass."""
    passed: bool
    prompt: Optional[Prompt] = None
    message: str = ""


def _as_text(value: Any) -> str:
    """Textual form of a Result Map value for constraint checks."""
    if value is None:
        return ""
    if isinstance(value, SecureText):
        return value.reveal()
    return str(value)


def check_prompt(prompt: Prompt, value: Any) -> tuple[bool, str]:
    """
    Validate one prompt's current value.

    Returns:
        Tuple of (is_valid, error_message)
    """
    text = _as_text(value)

    if prompt.validate_not_empty and not text.strip():
        return False, prompt.validation_message or f"'{prompt.label}' is required."

    # Empty optional fields are valid
    if not text:
        return True, ""

    if prompt.validate_pattern and not re.fullmatch(prompt.validate_pattern, text):
        return False, (
            prompt.validation_message
            or f"'{prompt.label}' does not match the expected format."
        )

    if prompt.validate_script is not None:
        script_value = value.reveal() if isinstance(value, SecureText) else value
        try:
            ok = bool(prompt.validate_script(script_value))
        except Exception as e:
            return False, f"'{prompt.label}' could not be validated: {e}"
        if not ok:
            return False, prompt.validation_message or f"'{prompt.label}' is not valid."

    return True, ""


def validate(prompts: Iterable[Prompt], result: Mapping) -> ValidationOutcome:
    """
    Run all prompt constraints in declaration order.

    Args:
        prompts: Normalized prompts of the dialog
        result: The dialog's Result Map

    Returns:
        ValidationOutcome naming the first failing prompt, or passed=True
    """
    for prompt in prompts:
        if not prompt.has_constraint():
            continue
        is_valid, message = check_prompt(prompt, result.get(prompt.name))
        if not is_valid:
            logger.info(f"Validation failed for prompt '{prompt.name}': {message}")
            return ValidationOutcome(passed=False, prompt=prompt, message=message)
    return ValidationOutcome(passed=True)
