"""
SynchronizedField: debounced synchronization between a controller and a widget.

Three values are kept apart:

- authoritative value (A): owned by the FieldController
- local buffer (L): what the user is typing, and the only thing rendered
- pending value (P): L captured after a quiet debounce window

Flow:
    controller -> field (A seeds L) -> user edits L -> debounce -> P
    -> on_commit(P) if P != A -> host may update the controller -> field
    observes the new A and resynchronizes L

Rules:
- An external change of A overwrites L and cancels the debounce timer.
  Unsaved keystrokes lose (last writer wins).
- on_commit is never called with a value equal to the current A.
- Blur commits L immediately and cancels the timer.
- After destroy no timer fires and no callback runs.

The field recognizes the echo of its own commit: when A becomes exactly the
value it last committed, L is left alone, so keystrokes typed while the
commit was in flight survive.

Thread safety: none. All handlers are expected on one event loop thread.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from fieldsync.config import FieldConfig, get_default_field_config
from fieldsync.controller import FieldController
from fieldsync.field_kinds import FieldKind, get_field_kind
from fieldsync.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from fieldsync.view_model import FieldPhase, FieldSnapshot, FieldView

logger = logging.getLogger(__name__)

# Marks "no value" where None is a legitimate field value
_UNSET = object()


class SynchronizedField:
    """Debounced editable field bound to a FieldController.

    Args:
        controller: Owner of the authoritative value and validation error
        on_commit: Called with a value the host should persist
        config: Field options (defaults to the module default config)
        scheduler: Timer source. Defaults to the running asyncio loop;
                   ValueError if there is none
        kind: Value adapter (defaults to the kind registered for
              config.field_type, or plain pass-through if none is)

    Example:
        field = SynchronizedField(controller, on_commit=save, scheduler=scheduler)
        field.on_user_edit("foob")
        field.on_blur()          # save("foob") if it differs from controller.value
        field.on_destroy()
    """

    def __init__(
        self,
        controller: FieldController,
        on_commit: Callable[[Any], None],
        *,
        config: Optional[FieldConfig] = None,
        scheduler: Optional[Scheduler] = None,
        kind: Optional[FieldKind] = None,
    ):
        self._controller = controller
        self._on_commit = on_commit
        self._config = config or get_default_field_config()
        self._scheduler = scheduler or _default_scheduler()
        self._kind = kind or _kind_for_field_type(self._config.field_type)

        initial = controller.value
        self._authoritative: Any = initial
        self._local: Any = initial
        self._pending: Any = None
        self._last_committed: Any = _UNSET
        self._awaiting_echo: Any = _UNSET

        self._timer: Optional[TimerHandle] = None
        self._phase = FieldPhase.IDLE

        self._listening = controller.add_value_listener(self._on_controller_value)
        logger.debug(f"Field {self.name!r} created: value={initial!r}, listening={self._listening}")

    # ========== READ-ONLY STATE ==========

    @property
    def name(self) -> str:
        return self._controller.name

    @property
    def controller(self) -> FieldController:
        return self._controller

    @property
    def config(self) -> FieldConfig:
        return self._config

    @property
    def kind(self) -> FieldKind:
        return self._kind

    @property
    def value(self) -> Any:
        """Local buffer (L): the value being rendered."""
        return self._local

    @property
    def authoritative_value(self) -> Any:
        """Last observed controller value (A)."""
        return self._authoritative

    @property
    def pending_value(self) -> Any:
        """Value captured at the last quiet window or flush (P), or None."""
        return self._pending

    @property
    def last_committed(self) -> Any:
        """Value last passed to on_commit, or None if nothing was committed."""
        return None if self._last_committed is _UNSET else self._last_committed

    @property
    def error(self) -> Optional[str]:
        return self._controller.error

    @property
    def phase(self) -> FieldPhase:
        return self._phase

    @property
    def is_destroyed(self) -> bool:
        return self._phase is FieldPhase.DESTROYED

    @property
    def has_pending_commit(self) -> bool:
        """True while a debounce timer is running."""
        return self._timer is not None and self._timer.active

    @property
    def is_dirty(self) -> bool:
        """True if the local buffer differs from the authoritative value."""
        return self._local != self._authoritative

    @property
    def can_clear(self) -> bool:
        """Whether the clear affordance is offered."""
        return (not self.is_destroyed
                and not self._config.required
                and not self._kind.is_empty(self._local))

    # ========== EVENTS ==========

    def on_external_value_change(self, new_value: Any) -> None:
        """The authoritative value changed for a reason other than our commit.

        Overwrites the local buffer and drops any pending debounce, so no
        commit fires for edits made before the change. Never commits.
        """
        if self._ignore_after_destroy("external value change"):
            return
        self._cancel_timer()
        self._authoritative = new_value
        self._local = new_value
        self._awaiting_echo = _UNSET
        self._phase = FieldPhase.IDLE
        logger.debug(f"Field {self.name!r} resynced to external value {new_value!r}")

    def on_user_edit(self, raw: Any) -> None:
        """Keystroke or input event: update L now, restart the debounce window."""
        if self._ignore_after_destroy("user edit"):
            return
        try:
            value = self._kind.coerce(raw)
        except ValueError as e:
            logger.warning(f"Field {self.name!r} rejected input {raw!r}: {e}")
            return
        self._local = value
        self._restart_timer()
        self._phase = FieldPhase.EDITING

    def on_debounce_elapsed(self) -> None:
        """Quiet window over: capture P and commit it if it differs from A."""
        if self._ignore_after_destroy("debounce elapsed"):
            return
        self._cancel_timer()
        self.sync()
        if self.is_destroyed:
            return
        self._pending = self._local
        self._phase = FieldPhase.IDLE
        if self._pending != self._authoritative:
            self._commit(self._pending)
        else:
            logger.debug(f"Field {self.name!r}: {self._pending!r} already authoritative, not committing")

    def on_blur(self) -> None:
        """Finalize: commit L immediately, bypassing the debounce window."""
        if self._ignore_after_destroy("blur"):
            return
        self.sync()
        if self.is_destroyed:
            return
        self._cancel_timer()
        self._phase = FieldPhase.PENDING_FLUSH
        try:
            self._pending = self._local
            if self._local != self._authoritative:
                self._commit(self._local)
        finally:
            # The callback may have destroyed the field or started a new edit
            if self._phase is FieldPhase.PENDING_FLUSH:
                self._phase = FieldPhase.IDLE

    def on_destroy(self) -> None:
        """Tear down: cancel the timer and refuse every later event."""
        if self.is_destroyed:
            return
        self._cancel_timer()
        if self._listening:
            self._controller.remove_value_listener(self._on_controller_value)
            self._listening = False
        self._phase = FieldPhase.DESTROYED
        logger.debug(f"Field {self.name!r} destroyed")

    def clear(self) -> None:
        """Clear affordance: edit L to the empty value.

        Does not finalize. The commit still waits for the debounce window or
        a later blur.
        """
        self.on_user_edit(self._kind.empty_value)

    # ========== RENDERING ==========

    def sync(self) -> None:
        """Compare the controller value with the last observed one.

        Hosts whose controller has no change notification call this (through
        render()) on every render pass.
        """
        if self.is_destroyed:
            return
        self._observe_authoritative(self._controller.value)

    def render(self) -> FieldView:
        """Resynchronize, then describe what the widget should show."""
        self.sync()
        return FieldView(
            name=self.name,
            accessible_name=f"{self._config.field_type}-field-{self.name}",
            value=self._local,
            display_text=self._kind.to_display(self._local),
            error=self.error,
            label=self._config.label,
            field_type=self._config.field_type,
            placeholder=self._config.placeholder,
            clearable=self.can_clear,
            phase=self._phase,
        )

    def snapshot(self) -> FieldSnapshot:
        return FieldSnapshot(
            name=self.name,
            local_value=self._local,
            authoritative_value=self._authoritative,
            pending_value=self._pending,
            last_committed=self.last_committed,
            phase=self._phase,
            timer_pending=self.has_pending_commit,
        )

    # ========== CONTEXT MANAGER ==========

    def __enter__(self) -> 'SynchronizedField':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.on_destroy()

    def __repr__(self) -> str:
        return f"SynchronizedField(name={self.name!r}, value={self._local!r}, phase={self._phase.value})"

    # ========== INTERNALS ==========

    def _on_controller_value(self, value: Any) -> None:
        if self.is_destroyed:
            return
        self._observe_authoritative(value)

    def _observe_authoritative(self, value: Any) -> None:
        if value == self._authoritative:
            return
        if self._awaiting_echo is not _UNSET and value == self._awaiting_echo:
            # Our own commit coming back: adopt it as A, keep the buffer
            self._authoritative = value
            self._awaiting_echo = _UNSET
            logger.debug(f"Field {self.name!r} acknowledged commit {value!r}")
            return
        self.on_external_value_change(value)

    def _commit(self, value: Any) -> None:
        self._last_committed = value
        self._awaiting_echo = value
        logger.debug(f"Field {self.name!r} committing {value!r}")
        try:
            self._on_commit(value)
        except Exception as e:
            logger.warning(f"Commit callback failed for field {self.name!r}: {e}")

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = self._scheduler.call_later(self._config.debounce_ms, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self.on_debounce_elapsed()

    def _ignore_after_destroy(self, event: str) -> bool:
        if self.is_destroyed:
            logger.debug(f"Field {self.name!r} ignoring {event} after destroy")
            return True
        return False


def _default_scheduler() -> Scheduler:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        raise ValueError(
            "SynchronizedField needs a scheduler when no asyncio loop is running "
            "(pass ManualScheduler, AsyncioScheduler(loop) or QtTimerScheduler)"
        ) from None
    return AsyncioScheduler(loop)


def _kind_for_field_type(field_type: str) -> FieldKind:
    try:
        return get_field_kind(field_type)
    except KeyError:
        logger.debug(f"No field kind registered for {field_type!r}, using pass-through")
        return FieldKind()
