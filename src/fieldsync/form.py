"""
Hosting layer for forms made of several synchronized fields.

PatchBuffer turns per-field commits into partial-record updates (the body of
a PATCH request). FieldRegistry owns the fields of each open form so the
whole form can be flushed on submit and torn down on close.

Neither class validates across fields; that belongs to the form library.
"""

from contextlib import contextmanager
import logging
from typing import Any, Callable, Dict, Generator, List, Optional

from fieldsync.synchronized_field import SynchronizedField

logger = logging.getLogger(__name__)

SCOPE_SEPARATOR = "::"


class PatchBuffer:
    """Collect committed field values into a partial update.

    With auto_send=True every commit is forwarded to sender immediately as a
    single-field patch, the way an edit form sends one update per changed
    field. Otherwise commits accumulate until take() or send().

    Sender failures are logged. The failed patch is not retried and not
    kept; the host learns about the failure through its own request layer.

    Args:
        sender: Called with a {field_name: value} dict
        auto_send: Forward each commit as it arrives
    """

    def __init__(self, sender: Optional[Callable[[Dict[str, Any]], None]] = None, auto_send: bool = False):
        if auto_send and sender is None:
            raise ValueError("auto_send requires a sender")
        self._sender = sender
        self._auto_send = auto_send
        self._pending: Dict[str, Any] = {}

    @property
    def pending(self) -> Dict[str, Any]:
        """Copy of the values not yet taken or sent."""
        return dict(self._pending)

    def callback_for(self, field_name: str) -> Callable[[Any], None]:
        """Build the on_commit callback for one field."""
        def _on_commit(value: Any) -> None:
            self.record(field_name, value)
        return _on_commit

    def record(self, field_name: str, value: Any) -> None:
        """Record one committed value (later commits overwrite earlier ones)."""
        if self._auto_send:
            self._dispatch({field_name: value})
        else:
            self._pending[field_name] = value

    def take(self) -> Dict[str, Any]:
        """Return the pending patch and start a new one."""
        patch, self._pending = self._pending, {}
        return patch

    def send(self) -> bool:
        """Send the pending patch, if any.

        Returns:
            True if a non-empty patch was handed to the sender
        """
        if self._sender is None:
            raise ValueError("PatchBuffer has no sender")
        patch = self.take()
        if not patch:
            return False
        self._dispatch(patch)
        return True

    def _dispatch(self, patch: Dict[str, Any]) -> None:
        logger.debug(f"Sending patch: {patch}")
        try:
            self._sender(patch)
        except Exception as e:
            logger.warning(f"Patch sender failed for fields {sorted(patch)}: {e}")


class FieldRegistry:
    """Live fields keyed by form scope and field name.

    Keys have the form "<scope>::<field name>". Destroying a scope destroys
    every field registered under it, so closing a form can never leave a
    debounce timer behind.

    Thread safety: not thread-safe (all operations expected on the UI thread).
    """

    def __init__(self):
        self._fields: Dict[str, SynchronizedField] = {}

    @staticmethod
    def make_key(scope: str, field_name: str) -> str:
        return f"{scope}{SCOPE_SEPARATOR}{field_name}"

    def register(self, scope: str, field: SynchronizedField) -> str:
        """Register a field under a scope.

        A field already registered under the same key is destroyed and
        replaced.

        Returns:
            The registry key
        """
        key = self.make_key(scope, field.name)
        previous = self._fields.get(key)
        if previous is not None and previous is not field:
            logger.warning(f"Replacing field registered at {key!r}")
            previous.on_destroy()
        self._fields[key] = field
        logger.debug(f"Registered field {key!r}")
        return key

    def unregister(self, scope: str, field_name: str, destroy: bool = True) -> Optional[SynchronizedField]:
        """Remove a field, destroying it unless destroy=False."""
        field = self._fields.pop(self.make_key(scope, field_name), None)
        if field is not None and destroy:
            field.on_destroy()
        return field

    def get(self, scope: str, field_name: str) -> Optional[SynchronizedField]:
        return self._fields.get(self.make_key(scope, field_name))

    def fields_in_scope(self, scope: str) -> List[SynchronizedField]:
        prefix = scope + SCOPE_SEPARATOR
        return [field for key, field in self._fields.items() if key.startswith(prefix)]

    def scopes(self) -> List[str]:
        seen: Dict[str, None] = {}
        for key in self._fields:
            seen[key.rsplit(SCOPE_SEPARATOR, 1)[0]] = None
        return list(seen)

    def flush_scope(self, scope: str) -> int:
        """Blur every field in a scope, committing unsaved edits (submit).

        Returns:
            Number of fields flushed
        """
        fields = self.fields_in_scope(scope)
        for field in fields:
            field.on_blur()
        return len(fields)

    def destroy_scope(self, scope: str) -> int:
        """Destroy and unregister every field in a scope.

        Returns:
            Number of fields destroyed
        """
        prefix = scope + SCOPE_SEPARATOR
        keys = [key for key in self._fields if key.startswith(prefix)]
        for key in keys:
            self._fields.pop(key).on_destroy()
        if keys:
            logger.info(f"Destroyed {len(keys)} field(s) for scope={scope!r}")
        return len(keys)

    def destroy_all(self) -> int:
        count = 0
        for scope in self.scopes():
            count += self.destroy_scope(scope)
        return count

    @contextmanager
    def scope(self, name: str, flush_on_exit: bool = False) -> Generator['FieldRegistry', None, None]:
        """Own the fields of one form for the duration of a block.

        Every field registered under name is destroyed when the block exits,
        however it exits. With flush_on_exit=True fields are blurred first,
        but only on normal exit.

        Example:
            with registry.scope("company/7") as forms:
                forms.register("company/7", name_field)
                ...
            # name_field destroyed here
        """
        try:
            yield self
            if flush_on_exit:
                self.flush_scope(name)
        finally:
            self.destroy_scope(name)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, key: str) -> bool:
        return key in self._fields
