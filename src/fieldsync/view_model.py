"""
Immutable render and diagnostic snapshots of a synchronized field.

FieldView is everything a widget adapter needs to draw the field. It is
built from the local buffer, never from the authoritative value.
FieldSnapshot exposes the full synchronization state for logging and tests.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class FieldPhase(Enum):
    """Synchronization phase of one field instance."""
    IDLE = "idle"
    EDITING = "editing"
    PENDING_FLUSH = "pending_flush"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class FieldView:
    """What the field renders.

    value is the local buffer. display_text is value formatted by the
    field kind. clearable is true only for optional fields with a
    non-empty buffer.
    """
    name: str
    accessible_name: str
    value: Any
    display_text: str
    error: Optional[str]
    label: Optional[str]
    field_type: str
    placeholder: Optional[str]
    clearable: bool
    phase: FieldPhase

    def to_dict(self) -> Dict[str, Any]:
        """Export to a JSON-friendly dict."""
        data = asdict(self)
        data['phase'] = self.phase.value
        return data


@dataclass(frozen=True)
class FieldSnapshot:
    """Full synchronization state at a point in time."""
    name: str
    local_value: Any
    authoritative_value: Any
    pending_value: Any
    last_committed: Any
    phase: FieldPhase
    timer_pending: bool

    def to_dict(self) -> Dict[str, Any]:
        """Export to a JSON-friendly dict."""
        data = asdict(self)
        data['phase'] = self.phase.value
        return data
