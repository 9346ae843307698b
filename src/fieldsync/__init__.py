"""
Debounced controlled-field synchronization for editable forms.

A synchronized field sits between a form controller, which owns the
authoritative value of a field, and the widget the user types into. It keeps
a local buffer for instant rendering, commits upward after a quiet debounce
window or on blur, and never echoes back a value the controller already has.

Key Features:
- One synchronization core for every field kind (text, numeric, boolean, choice)
- Sliding debounce window with flush-on-blur
- Echo suppression and recognition of the field's own commit coming back
- Guaranteed timer cancellation on destroy
- Pluggable timers (virtual clock, asyncio, Qt)

Quick Start:
    >>> from fieldsync import ManualScheduler, SynchronizedField, ValueController
    >>>
    >>> controller = ValueController("name", "foo")
    >>> scheduler = ManualScheduler()
    >>> field = SynchronizedField(controller, controller.set_value, scheduler=scheduler)
    >>>
    >>> field.on_user_edit("foobar")
    >>> controller.value
    'foo'
    >>> scheduler.advance(250)
    1
    >>> controller.value
    'foobar'

Architecture:
    controller (A) -> field: local buffer (L) -> render
    user input -> L -> debounce -> pending (P) -> on_commit(P) if P != A
    controller change -> field resyncs L (unless it is the echo of our commit)

Modules:
    - synchronized_field: The synchronization core
    - controller: Controller contract and in-memory implementation
    - scheduler: Cancelable single-shot timers
    - field_kinds: Value adapters per field kind
    - view_model: Render and diagnostic snapshots
    - config: Field configuration and module default
    - form: Patch collection and per-form field ownership
    - qt: PyQt6 widget adapters (imported explicitly, not re-exported here)
"""

# Configuration
from fieldsync.config import (
    DEFAULT_DEBOUNCE_MS,
    FieldConfig,
    set_default_field_config,
    get_default_field_config,
    reset_default_field_config,
)

# Controller
from fieldsync.controller import FieldController, ValueController

# Scheduling
from fieldsync.scheduler import (
    TimerHandle,
    Scheduler,
    ManualScheduler,
    AsyncioScheduler,
)

# Field kinds
from fieldsync.field_kinds import (
    FieldKind,
    TextKind,
    NumericKind,
    BooleanKind,
    ChoiceKind,
    register_field_kind,
    get_field_kind,
    registered_field_kinds,
)

# View model
from fieldsync.view_model import FieldPhase, FieldView, FieldSnapshot

# Core
from fieldsync.synchronized_field import SynchronizedField

# Form hosting
from fieldsync.form import PatchBuffer, FieldRegistry

__all__ = [
    # Configuration
    'DEFAULT_DEBOUNCE_MS',
    'FieldConfig',
    'set_default_field_config',
    'get_default_field_config',
    'reset_default_field_config',
    # Controller
    'FieldController',
    'ValueController',
    # Scheduling
    'TimerHandle',
    'Scheduler',
    'ManualScheduler',
    'AsyncioScheduler',
    # Field kinds
    'FieldKind',
    'TextKind',
    'NumericKind',
    'BooleanKind',
    'ChoiceKind',
    'register_field_kind',
    'get_field_kind',
    'registered_field_kinds',
    # View model
    'FieldPhase',
    'FieldView',
    'FieldSnapshot',
    # Core
    'SynchronizedField',
    # Form hosting
    'PatchBuffer',
    'FieldRegistry',
]

__version__ = '1.0.0'
__description__ = 'Debounced controlled-field synchronization for editable forms'
