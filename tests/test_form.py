"""Tests for patch collection and per-form field ownership."""
import pytest

from fieldsync import (
    FieldConfig,
    FieldRegistry,
    PatchBuffer,
    SynchronizedField,
    ValueController,
)


def make_field(name, value, on_commit, scheduler, **config):
    return SynchronizedField(ValueController(name, value), on_commit,
                             config=FieldConfig(**config), scheduler=scheduler)


class TestPatchBuffer:

    def test_collects_commits_per_field(self, scheduler):
        buffer = PatchBuffer()
        name = make_field("name", "Acme", buffer.callback_for("name"), scheduler)
        phone = make_field("phone", "", buffer.callback_for("phone"), scheduler)

        name.on_user_edit("Acme Inc")
        phone.on_user_edit("555")
        phone.on_blur()
        assert buffer.pending == {"phone": "555"}

        scheduler.run_pending()
        assert buffer.take() == {"name": "Acme Inc", "phone": "555"}
        assert buffer.pending == {}

    def test_later_commit_overwrites(self):
        buffer = PatchBuffer()
        buffer.record("name", "a")
        buffer.record("name", "b")
        assert buffer.take() == {"name": "b"}

    def test_auto_send_forwards_single_field_patches(self, scheduler):
        sent = []
        buffer = PatchBuffer(sender=sent.append, auto_send=True)
        field = make_field("website", "", buffer.callback_for("website"), scheduler)
        field.on_user_edit("https://example.com")
        field.on_blur()
        assert sent == [{"website": "https://example.com"}]
        assert buffer.pending == {}

    def test_send(self):
        sent = []
        buffer = PatchBuffer(sender=sent.append)
        assert buffer.send() is False
        buffer.record("email", "a@b.c")
        assert buffer.send() is True
        assert sent == [{"email": "a@b.c"}]

    def test_sender_failure_is_logged_not_retried(self, caplog):
        attempts = []

        def sender(patch):
            attempts.append(patch)
            raise IOError("400 Bad Request")

        buffer = PatchBuffer(sender=sender, auto_send=True)
        buffer.record("name", "x")
        assert attempts == [{"name": "x"}]
        assert buffer.pending == {}
        assert "400 Bad Request" in caplog.text

    def test_configuration_errors(self):
        with pytest.raises(ValueError):
            PatchBuffer(auto_send=True)
        with pytest.raises(ValueError):
            PatchBuffer().send()


class TestFieldRegistry:

    def test_register_and_lookup(self, scheduler):
        registry = FieldRegistry()
        field = make_field("name", "", lambda v: None, scheduler)
        key = registry.register("company/1", field)
        assert key == "company/1::name"
        assert key in registry
        assert registry.get("company/1", "name") is field
        assert registry.fields_in_scope("company/1") == [field]
        assert registry.scopes() == ["company/1"]

    def test_replacing_destroys_previous(self, scheduler):
        registry = FieldRegistry()
        first = make_field("name", "", lambda v: None, scheduler)
        second = make_field("name", "", lambda v: None, scheduler)
        registry.register("form", first)
        registry.register("form", second)
        assert first.is_destroyed
        assert not second.is_destroyed
        assert len(registry) == 1

    def test_destroy_scope_cancels_pending_commits(self, scheduler):
        commits = []
        registry = FieldRegistry()
        a = make_field("a", "", commits.append, scheduler)
        b = make_field("b", "", commits.append, scheduler)
        other = make_field("c", "", commits.append, scheduler)
        registry.register("form/1", a)
        registry.register("form/1", b)
        registry.register("form/10", other)

        a.on_user_edit("x")
        b.on_user_edit("y")
        other.on_user_edit("z")
        assert registry.destroy_scope("form/1") == 2

        scheduler.run_pending()
        assert commits == ["z"]
        assert a.is_destroyed and b.is_destroyed
        assert registry.fields_in_scope("form/10") == [other]

    def test_flush_scope_commits_unsaved_edits(self, scheduler):
        buffer = PatchBuffer()
        registry = FieldRegistry()
        for name in ("name", "email"):
            registry.register("form", make_field(name, "", buffer.callback_for(name), scheduler))

        registry.get("form", "name").on_user_edit("Acme")
        assert registry.flush_scope("form") == 2
        assert buffer.take() == {"name": "Acme"}

    def test_unregister(self, scheduler):
        registry = FieldRegistry()
        kept = make_field("kept", "", lambda v: None, scheduler)
        dropped = make_field("dropped", "", lambda v: None, scheduler)
        registry.register("form", kept)
        registry.register("form", dropped)

        assert registry.unregister("form", "kept", destroy=False) is kept
        assert not kept.is_destroyed
        assert registry.unregister("form", "dropped") is dropped
        assert dropped.is_destroyed
        assert registry.unregister("form", "missing") is None

    def test_scope_context_destroys_on_error(self, scheduler):
        commits = []
        registry = FieldRegistry()
        field = make_field("name", "", commits.append, scheduler)

        with pytest.raises(KeyError):
            with registry.scope("form") as forms:
                forms.register("form", field)
                field.on_user_edit("unsaved")
                raise KeyError("missing panel")

        assert field.is_destroyed
        assert len(registry) == 0
        scheduler.run_pending()
        assert commits == []

    def test_scope_context_flushes_on_normal_exit(self, scheduler):
        commits = []
        registry = FieldRegistry()
        field = make_field("name", "", commits.append, scheduler)

        with registry.scope("form", flush_on_exit=True):
            registry.register("form", field)
            field.on_user_edit("saved")

        assert commits == ["saved"]
        assert field.is_destroyed

    def test_destroy_all(self, scheduler):
        registry = FieldRegistry()
        registry.register("a", make_field("x", "", lambda v: None, scheduler))
        registry.register("b", make_field("y", "", lambda v: None, scheduler))
        assert registry.destroy_all() == 2
        assert len(registry) == 0
