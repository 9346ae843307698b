"""
PyQt6 rendering adapters for synchronized fields.

Each adapter is a thin VIEW over a SynchronizedField MODEL: widget signals
become field events, and the widget is redrawn from field.render(). Redraws
run with the editor's signals blocked so programmatic updates never come
back as user edits.

Adapters:
- SyncedLineEdit: text kinds (QLineEdit)
- SyncedSpinBox: numeric kinds (QSpinBox / QDoubleSpinBox)
- SyncedCheckBox: boolean kind (QCheckBox)
- SyncedComboBox: choice kind (QComboBox)

Text and numeric widgets commit through the debounce window and on
editingFinished. Check boxes and combo boxes have no typing phase, so each
change is finalized immediately.
"""

import logging
from typing import Any, Callable, Optional

from PyQt6.QtCore import QObject, QTimer
from PyQt6.QtWidgets import (
    QCheckBox, QComboBox, QDoubleSpinBox, QHBoxLayout, QLabel, QLineEdit,
    QSpinBox, QToolButton, QVBoxLayout, QWidget,
)

from fieldsync.controller import ValueController
from fieldsync.field_kinds import BooleanKind, ChoiceKind, NumericKind
from fieldsync.scheduler import Scheduler, TimerHandle
from fieldsync.synchronized_field import SynchronizedField
from fieldsync.view_model import FieldView

logger = logging.getLogger(__name__)

INT_MIN = -2 ** 31
INT_MAX = 2 ** 31 - 1
FLOAT_LIMIT = 1e12


class _QtTimerHandle(TimerHandle):
    """Owns one single-shot QTimer until it fires or is cancelled.

    The QTimer is parented to the scheduler's owner object, so dropping the
    Python handle inside the timeout slot does not delete the C++ timer
    mid-emission. The handle keeps the owner alive while the timer runs.
    Finished timers are released with deleteLater() and never touched again.
    """

    def __init__(self, owner: QObject, timer: QTimer, callback: Callable[[], None]):
        self._owner = owner
        self._timer = timer
        self._callback = callback
        self._done = False
        # Lambda keeps the handle alive until the timer is deleted; a bound
        # method slot would only hold it weakly
        timer.timeout.connect(lambda: self._on_timeout())

    def cancel(self) -> None:
        if self._done:
            return
        self._done = True
        self._timer.stop()
        self._timer.deleteLater()

    @property
    def active(self) -> bool:
        return not self._done

    def _on_timeout(self) -> None:
        if self._done:
            return
        self._done = True
        self._timer.deleteLater()
        self._callback()


class QtTimerScheduler(Scheduler):
    """Scheduler backed by single-shot QTimers on the Qt event loop.

    Args:
        parent: QObject owning the timers. Defaults to a private owner
                that lives as long as the scheduler.
    """

    def __init__(self, parent: Optional[QObject] = None):
        self._owner = parent if parent is not None else QObject()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer(self._owner)
        timer.setSingleShot(True)
        handle = _QtTimerHandle(self._owner, timer, callback)
        timer.start(int(delay_ms))
        return handle


class SyncedFieldWidget(QWidget):
    """Base adapter: optional label, editor row with clear button, error line.

    Subclasses build the editor in _create_editor(), connect its signals in
    _connect_editor() and draw a FieldView into it in _apply_value().
    """

    def __init__(self, field: SynchronizedField, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._field = field

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.label: Optional[QLabel] = None
        if field.config.label:
            self.label = QLabel(field.config.label)
            layout.addWidget(self.label)

        row = QHBoxLayout()
        self.editor = self._create_editor()
        row.addWidget(self.editor)

        self.clear_button = QToolButton()
        self.clear_button.setText("✕")
        self.clear_button.setToolTip("Clear")
        self.clear_button.clicked.connect(self._on_clear_clicked)
        row.addWidget(self.clear_button)
        layout.addLayout(row)

        self.error_label = QLabel()
        self.error_label.setStyleSheet("color: red;")
        layout.addWidget(self.error_label)

        self._connect_editor()
        self._connect_controller()
        self.refresh()

    @property
    def field(self) -> SynchronizedField:
        return self._field

    def refresh(self) -> FieldView:
        """Redraw from the field's current view."""
        view = self._field.render()
        was_blocked = self.editor.blockSignals(True)
        try:
            self._apply_value(view)
        finally:
            self.editor.blockSignals(was_blocked)
        self.editor.setAccessibleName(view.accessible_name)
        self.clear_button.setVisible(view.clearable)
        self.error_label.setText(view.error or "")
        self.error_label.setVisible(bool(view.error))
        return view

    # ---- subclass hooks ----

    def _create_editor(self) -> QWidget:
        raise NotImplementedError

    def _connect_editor(self) -> None:
        raise NotImplementedError

    def _apply_value(self, view: FieldView) -> None:
        raise NotImplementedError

    # ---- event plumbing ----

    def _user_edit(self, raw: Any) -> None:
        self._field.on_user_edit(raw)
        self.refresh()

    def _finalize(self) -> None:
        self._field.on_blur()
        self.refresh()

    def _on_clear_clicked(self) -> None:
        self._field.clear()
        self.refresh()

    def _connect_controller(self) -> None:
        controller = self._field.controller
        field = self._field
        on_value = lambda _value: self.refresh()
        on_error = lambda _message: self.refresh()
        subscribed = controller.add_value_listener(on_value)
        if isinstance(controller, ValueController):
            controller.add_error_listener(on_error)

        # Must not reference self: runs after the C++ widget is gone
        def _teardown():
            if subscribed:
                controller.remove_value_listener(on_value)
            if isinstance(controller, ValueController):
                controller.remove_error_listener(on_error)
            field.on_destroy()

        self.destroyed.connect(_teardown)


class SyncedLineEdit(SyncedFieldWidget):
    """Text input; password field_type masks the echo."""

    def _create_editor(self) -> QWidget:
        editor = QLineEdit()
        config = self._field.config
        if config.field_type == "password":
            editor.setEchoMode(QLineEdit.EchoMode.Password)
        if config.placeholder:
            editor.setPlaceholderText(config.placeholder)
        return editor

    def _connect_editor(self) -> None:
        # textEdited fires for user input only, not for setText()
        self.editor.textEdited.connect(self._user_edit)
        self.editor.editingFinished.connect(self._finalize)

    def _apply_value(self, view: FieldView) -> None:
        # Only touch the text when it differs so the cursor stays put
        if self.editor.text() != view.display_text:
            self.editor.setText(view.display_text)


class SyncedSpinBox(SyncedFieldWidget):
    """Numeric input.

    An empty value (None) is held by a sentinel one step below the valid
    range, displayed as blank through the spin box's special value text.
    """

    EMPTY_TEXT = " "

    def _create_editor(self) -> QWidget:
        kind = self._field.kind
        integer = isinstance(kind, NumericKind) and kind.integer
        if integer:
            editor = QSpinBox()
            # Leave room for the empty sentinel below the range
            low, high = INT_MIN + 1, INT_MAX
        else:
            editor = QDoubleSpinBox()
            editor.setDecimals(6)
            low, high = -FLOAT_LIMIT, FLOAT_LIMIT
        if isinstance(kind, NumericKind):
            if kind.minimum is not None:
                low = kind.minimum
            if kind.maximum is not None:
                high = kind.maximum
        if integer:
            low, high = int(low), int(high)
        self._empty_sentinel = low - editor.singleStep()
        editor.setRange(self._empty_sentinel, high)
        editor.setSpecialValueText(self.EMPTY_TEXT)
        return editor

    def _connect_editor(self) -> None:
        self.editor.valueChanged.connect(self._on_value_changed)
        self.editor.editingFinished.connect(self._finalize)

    def _on_value_changed(self, value: Any) -> None:
        self._user_edit(None if value == self._empty_sentinel else value)

    def _apply_value(self, view: FieldView) -> None:
        value = view.value if view.value is not None else self._empty_sentinel
        if self.editor.value() != value:
            self.editor.setValue(value)


class SyncedCheckBox(SyncedFieldWidget):

    def _create_editor(self) -> QWidget:
        return QCheckBox()

    def _connect_editor(self) -> None:
        self.editor.toggled.connect(self._on_toggled)

    def _on_toggled(self, checked: bool) -> None:
        self._field.on_user_edit(checked)
        self._finalize()

    def _apply_value(self, view: FieldView) -> None:
        self.editor.setChecked(bool(view.value))


class SyncedComboBox(SyncedFieldWidget):
    """Choice input. Optional fields get a leading empty entry."""

    def _create_editor(self) -> QWidget:
        editor = QComboBox()
        if not self._field.config.required:
            editor.addItem("", None)
        kind = self._field.kind
        if isinstance(kind, ChoiceKind):
            for value, label in kind.choices:
                editor.addItem(label, value)
        return editor

    def _connect_editor(self) -> None:
        self.editor.currentIndexChanged.connect(self._on_index_changed)

    def _on_index_changed(self, index: int) -> None:
        self._field.on_user_edit(self.editor.itemData(index))
        self._finalize()

    def _apply_value(self, view: FieldView) -> None:
        # -1 shows no selection, so picking any item afterwards emits a change
        index = self._index_for(view.value)
        if self.editor.currentIndex() != index:
            self.editor.setCurrentIndex(index)

    def _index_for(self, value: Any) -> int:
        for index in range(self.editor.count()):
            if self.editor.itemData(index) == value:
                return index
        return -1


def create_synced_widget(field: SynchronizedField, parent: Optional[QWidget] = None) -> SyncedFieldWidget:
    """Pick the adapter matching the field's kind."""
    kind = field.kind
    if isinstance(kind, BooleanKind):
        widget_type = SyncedCheckBox
    elif isinstance(kind, NumericKind):
        widget_type = SyncedSpinBox
    elif isinstance(kind, ChoiceKind):
        widget_type = SyncedComboBox
    else:
        widget_type = SyncedLineEdit
    logger.debug(f"Creating {widget_type.__name__} for field {field.name!r}")
    return widget_type(field, parent)
