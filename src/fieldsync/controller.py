"""
Controller contract consumed by synchronized fields.

The controller owns the authoritative value (A) and the validation error (E)
of one form field. A field only reads them and requests changes through
set_value(); it never writes A directly.

ValueController is an in-memory implementation for hosts without a form
library of their own. It keeps a saved baseline next to the live value, so
hosts can reset a field to its last saved state and ask whether it is dirty.
"""

from abc import ABC, abstractmethod
import copy
import logging
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

# Default for reset(): restore the initial value
_INITIAL = object()


class FieldController(ABC):
    """Source of truth for one form field."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable field identifier (used for accessible labeling)."""

    @property
    @abstractmethod
    def value(self) -> Any:
        """Current authoritative value."""

    @property
    @abstractmethod
    def error(self) -> Optional[str]:
        """Validation error message, or None."""

    @abstractmethod
    def set_value(self, value: Any) -> None:
        """Replace the authoritative value."""

    def add_value_listener(self, callback: Callable[[Any], None]) -> bool:
        """Subscribe to authoritative value changes.

        Controllers without explicit change notification keep this default,
        and fields fall back to comparing on every render pass.

        Returns:
            True if the controller will notify the callback
        """
        return False

    def remove_value_listener(self, callback: Callable[[Any], None]) -> None:
        """Unsubscribe from authoritative value changes."""


class ValueController(FieldController):
    """In-memory controller with explicit change notification.

    Listeners are notified only when the value actually changes, so setting
    the same value twice is silent. Listener failures are logged and do not
    stop the remaining listeners from running.
    """

    def __init__(self, name: str, value: Any = None, error: Optional[str] = None):
        self._name = name
        self._value = value
        self._error = error
        self._initial_value = copy.deepcopy(value)
        self._saved_value = copy.deepcopy(value)
        self._value_listeners: List[Callable[[Any], None]] = []
        self._error_listeners: List[Callable[[Optional[str]], None]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> Any:
        return self._value

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def saved_value(self) -> Any:
        """Value at the last mark_saved() (or construction)."""
        return self._saved_value

    @property
    def is_dirty(self) -> bool:
        """True if the live value differs from the saved baseline."""
        return self._value != self._saved_value

    def set_value(self, value: Any) -> None:
        if value == self._value:
            return
        old_value = self._value
        self._value = value
        logger.debug(f"Controller {self._name!r}: {old_value!r} -> {value!r}")
        self._fire_value_listeners(value)

    def set_error(self, message: Optional[str]) -> None:
        """Set (or clear, with None) the validation error."""
        if message == self._error:
            return
        self._error = message
        for callback in list(self._error_listeners):
            try:
                callback(message)
            except Exception as e:
                logger.warning(f"Error in error listener for {self._name!r}: {e}")

    def clear_error(self) -> None:
        """Clear the validation error."""
        self.set_error(None)

    def reset(self, value: Any = _INITIAL) -> None:
        """Programmatic reset.

        Args:
            value: New value (None allowed). If omitted, restore the value
                   the controller was created with.
        """
        target = copy.deepcopy(self._initial_value) if value is _INITIAL else value
        self.set_value(target)

    def mark_saved(self) -> None:
        """Make the current value the saved baseline."""
        self._saved_value = copy.deepcopy(self._value)

    def restore_saved(self) -> None:
        """Reset the live value to the saved baseline."""
        self.set_value(copy.deepcopy(self._saved_value))

    def add_value_listener(self, callback: Callable[[Any], None]) -> bool:
        if callback not in self._value_listeners:
            self._value_listeners.append(callback)
        return True

    def remove_value_listener(self, callback: Callable[[Any], None]) -> None:
        if callback in self._value_listeners:
            self._value_listeners.remove(callback)

    def add_error_listener(self, callback: Callable[[Optional[str]], None]) -> None:
        """Subscribe to validation error changes."""
        if callback not in self._error_listeners:
            self._error_listeners.append(callback)

    def remove_error_listener(self, callback: Callable[[Optional[str]], None]) -> None:
        """Unsubscribe from validation error changes."""
        if callback in self._error_listeners:
            self._error_listeners.remove(callback)

    def _fire_value_listeners(self, value: Any) -> None:
        for callback in list(self._value_listeners):
            try:
                callback(value)
            except Exception as e:
                logger.warning(f"Error in value listener for {self._name!r}: {e}")

    def __repr__(self) -> str:
        return f"ValueController(name={self._name!r}, value={self._value!r}, error={self._error!r})"
