"""
Result Map

The single mutable record shared by every widget binding of one dialog.
It is frozen when the dialog closes and handed back to the caller.
"""

from collections.abc import MutableMapping
from typing import Any, Iterator, Optional

from .schema import (
    DialogSpec,
    Prompt,
    TIMED_OUT_KEY,
    grid_select_key,
)


class ResultMapFrozenError(RuntimeError):
    """Raised when a closed dialog's Result Map is written to."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Result map is frozen; cannot set '{key}'")


class ResultMap(MutableMapping):
    """
    Mapping from prompt/button name to current value.

    All writes happen on the GUI thread, so no locking is done.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = dict(initial or {})
        self._frozen = False

    @classmethod
    def from_spec(cls, spec: DialogSpec) -> "ResultMap":
        """
        Build the initial Result Map for a normalized dialog spec.

        Args:
            spec: Normalized DialogSpec (prompts and buttons resolved)

        Returns:
            ResultMap with one entry per prompt, per non-custom button,
            plus TimedOut and grid_select<k> when applicable
        """
        result = cls()
        for prompt in spec.prompts:
            if isinstance(prompt, Prompt):
                result[prompt.name] = prompt.initial_value()

        for button in spec.buttons:
            if not button.has_handler:
                result[button.name] = False

        if spec.timeout:
            result[TIMED_OUT_KEY] = False

        for index, _rows in enumerate(spec.grid_sequences(), start=1):
            result[grid_select_key(index)] = None

        return result

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any):
        if self._frozen:
            raise ResultMapFrozenError(key)
        self._data[key] = value

    def __delitem__(self, key: str):
        if self._frozen:
            raise ResultMapFrozenError(key)
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "live"
        return f"ResultMap({self._data!r}, {state})"

    def freeze(self):
        """Make the map read-only."""
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict copy."""
        return dict(self._data)
