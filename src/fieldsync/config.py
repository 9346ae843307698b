"""
Field configuration.

Holds the per-field options that shape rendering and commit timing, plus a
module-level default used when a field is built without an explicit config.

Only ``debounce_ms`` affects synchronization. ``required`` gates the clear
affordance; ``label``, ``field_type`` and ``placeholder`` are pass-through
rendering options.
"""

from dataclasses import dataclass, fields, replace
import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 250


@dataclass(frozen=True)
class FieldConfig:
    """Options for a single synchronized field."""
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    required: bool = False
    label: Optional[str] = None
    field_type: str = "text"
    placeholder: Optional[str] = None

    def __post_init__(self):
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")

    @classmethod
    def from_definition(cls, definition: Mapping[str, Any], base: Optional['FieldConfig'] = None) -> 'FieldConfig':
        """Build a config from a form field definition.

        Definitions come from API form metadata and carry many keys that are
        irrelevant here (help text, model names, ...). Only keys matching a
        config field are used; everything else is ignored.

        Args:
            definition: Field definition mapping
            base: Config providing values for keys the definition omits
                  (defaults to the module default)

        Returns:
            New FieldConfig
        """
        base = base or get_default_field_config()
        known = {f.name for f in fields(cls)}
        overrides = {k: v for k, v in definition.items() if k in known and v is not None}
        return replace(base, **overrides)


_default_field_config: FieldConfig = FieldConfig()


def set_default_field_config(config: FieldConfig) -> None:
    """Set the config used by fields created without one."""
    global _default_field_config
    _default_field_config = config
    logger.debug(f"Default field config set: {config}")


def get_default_field_config() -> FieldConfig:
    """Get the config used by fields created without one."""
    return _default_field_config


def reset_default_field_config() -> None:
    """Restore the built-in default config."""
    set_default_field_config(FieldConfig())
