"""Pytest configuration and shared fixtures."""
import os

import pytest

from fieldsync import field_kinds
from fieldsync import (
    FieldConfig,
    ManualScheduler,
    SynchronizedField,
    ValueController,
    get_default_field_config,
    set_default_field_config,
)

# Qt adapter tests run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class CommitRecorder:
    """Records on_commit calls; optionally applies them to a controller."""

    def __init__(self, controller=None):
        self.calls = []
        self.times = []
        self._controller = controller
        self.scheduler = None

    def __call__(self, value):
        self.calls.append(value)
        if self.scheduler is not None:
            self.times.append(self.scheduler.now)
        if self._controller is not None:
            self._controller.set_value(value)


@pytest.fixture(autouse=True)
def restore_default_config():
    """Restore the module default field config after each test."""
    original = get_default_field_config()
    yield
    set_default_field_config(original)


@pytest.fixture(autouse=True)
def restore_field_kind_registry():
    """Drop field kinds registered by a test."""
    original = dict(field_kinds._kind_factories)
    yield
    field_kinds._kind_factories.clear()
    field_kinds._kind_factories.update(original)


@pytest.fixture
def scheduler():
    """Virtual clock starting at t=0."""
    return ManualScheduler()


@pytest.fixture
def controller():
    """Text field controller holding "foo"."""
    return ValueController("name", "foo")


@pytest.fixture
def commits(scheduler):
    """Recording commit callback that does not touch the controller."""
    recorder = CommitRecorder()
    recorder.scheduler = scheduler
    return recorder


@pytest.fixture
def field(controller, commits, scheduler):
    """Text field with the default 250 ms window."""
    f = SynchronizedField(controller, commits, config=FieldConfig(), scheduler=scheduler)
    yield f
    f.on_destroy()
