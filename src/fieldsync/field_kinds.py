"""
Value adapters per field kind.

A FieldKind turns raw input from a widget into the typed value stored in
the local buffer, and formats a typed value for display. Kinds carry no
synchronization logic; every kind goes through the same SynchronizedField.
"""

from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class FieldKind:
    """Text-like default behaviour shared by all kinds."""

    name = "text"
    empty_value: Any = ""

    def coerce(self, raw: Any) -> Any:
        """Convert raw widget input to a typed value.

        Raises:
            ValueError: If raw cannot be represented by this kind
        """
        return raw

    def is_empty(self, value: Any) -> bool:
        return value is None or value == ""

    def to_display(self, value: Any) -> str:
        return "" if value is None else str(value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class TextKind(FieldKind):

    def __init__(self, name: str = "text"):
        self.name = name

    def coerce(self, raw: Any) -> Any:
        if raw is None:
            return ""
        return raw if isinstance(raw, str) else str(raw)


class NumericKind(FieldKind):
    """Integer or real numbers with optional bounds.

    Empty input ("" or None) is stored as None so an optional numeric field
    can be cleared. Booleans are rejected even though they are ints.
    """

    name = "number"
    empty_value = None

    def __init__(self, integer: bool = False, minimum: Optional[float] = None, maximum: Optional[float] = None):
        self.integer = integer
        self.minimum = minimum
        self.maximum = maximum

    def coerce(self, raw: Any) -> Any:
        if raw is None or (isinstance(raw, str) and raw.strip() == ""):
            return None
        if isinstance(raw, bool):
            raise ValueError(f"Expected a number, got boolean {raw!r}")

        if isinstance(raw, str):
            try:
                number = Decimal(raw.strip())
            except InvalidOperation:
                raise ValueError(f"Not a number: {raw!r}") from None
            if not number.is_finite():
                raise ValueError(f"Not a finite number: {raw!r}")
            if self.integer:
                if number != number.to_integral_value():
                    raise ValueError(f"Not an integer: {raw!r}")
                value = int(number)
            else:
                value = float(number)
        elif isinstance(raw, (int, float, Decimal)):
            if self.integer:
                if raw != int(raw):
                    raise ValueError(f"Not an integer: {raw!r}")
                value = int(raw)
            else:
                value = float(raw)
        else:
            raise ValueError(f"Expected a number, got {type(raw).__name__}")

        if self.minimum is not None and value < self.minimum:
            raise ValueError(f"{value} is below the minimum {self.minimum}")
        if self.maximum is not None and value > self.maximum:
            raise ValueError(f"{value} is above the maximum {self.maximum}")
        return value

    def to_display(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, float) and value.is_integer() and not self.integer:
            return str(int(value)) if abs(value) < 1e16 else str(value)
        return str(value)

    def __repr__(self) -> str:
        return f"NumericKind(integer={self.integer}, minimum={self.minimum}, maximum={self.maximum})"


class BooleanKind(FieldKind):
    """Checkbox-style values. A boolean is never empty."""

    name = "boolean"
    empty_value = False

    TRUE_STRINGS = frozenset({"true", "1", "yes", "on", "y", "t"})
    FALSE_STRINGS = frozenset({"false", "0", "no", "off", "n", "f", ""})

    def coerce(self, raw: Any) -> Any:
        if isinstance(raw, bool):
            return raw
        if raw is None:
            return False
        if isinstance(raw, int) and raw in (0, 1):
            return bool(raw)
        if isinstance(raw, str):
            text = raw.strip().lower()
            if text in self.TRUE_STRINGS:
                return True
            if text in self.FALSE_STRINGS:
                return False
        raise ValueError(f"Not a boolean: {raw!r}")

    def is_empty(self, value: Any) -> bool:
        return False

    def to_display(self, value: Any) -> str:
        return "true" if value else "false"


class ChoiceKind(FieldKind):
    """Selection from a fixed list of (value, label) pairs."""

    name = "choice"
    empty_value = None

    def __init__(self, choices: Iterable[Any] = ()):
        self.choices: Tuple[Tuple[Any, str], ...] = tuple(_normalize_choice(c) for c in choices)

    @property
    def values(self) -> Sequence[Any]:
        return [value for value, _ in self.choices]

    def coerce(self, raw: Any) -> Any:
        if raw is None or raw == "":
            return None
        for value, _ in self.choices:
            if raw == value:
                return value
        # Widgets often hand back the string form of the value
        for value, _ in self.choices:
            if isinstance(raw, str) and str(value) == raw:
                return value
        raise ValueError(f"{raw!r} is not one of {self.values!r}")

    def to_display(self, value: Any) -> str:
        for choice_value, label in self.choices:
            if choice_value == value:
                return label
        return "" if value is None else str(value)

    def __repr__(self) -> str:
        return f"ChoiceKind(choices={self.choices!r})"


def _normalize_choice(choice: Any) -> Tuple[Any, str]:
    if isinstance(choice, dict):
        value = choice.get("value")
        return value, str(choice.get("display_name", choice.get("label", value)))
    if isinstance(choice, (tuple, list)) and len(choice) == 2:
        return choice[0], str(choice[1])
    return choice, str(choice)


# ========== KIND REGISTRY ==========

_kind_factories: Dict[str, Callable[..., FieldKind]] = {}


def register_field_kind(name: str, factory: Callable[..., FieldKind]) -> None:
    """Register a factory for a field type name.

    Args:
        name: Field type as it appears in form definitions (e.g. "email")
        factory: Callable accepting keyword options, returning a FieldKind
    """
    if name in _kind_factories:
        logger.warning(f"Overwriting field kind registration: {name}")
    _kind_factories[name] = factory


def get_field_kind(name: str, **options) -> FieldKind:
    """Build the FieldKind registered for a field type name.

    Raises:
        KeyError: If no kind is registered under name
    """
    try:
        factory = _kind_factories[name]
    except KeyError:
        raise KeyError(f"Unknown field kind: {name!r}") from None
    return factory(**options)


def registered_field_kinds() -> Sequence[str]:
    return sorted(_kind_factories)


for _text_name in ("text", "string", "password", "email", "url"):
    register_field_kind(_text_name, lambda _n=_text_name, **_: TextKind(_n))
register_field_kind("number", lambda **opts: NumericKind(**opts))
register_field_kind("float", lambda **opts: NumericKind(integer=False, **opts))
register_field_kind("decimal", lambda **opts: NumericKind(integer=False, **opts))
register_field_kind("integer", lambda **opts: NumericKind(integer=True, **opts))
register_field_kind("boolean", lambda **_: BooleanKind())
register_field_kind("choice", lambda **opts: ChoiceKind(**opts))
