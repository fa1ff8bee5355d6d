"""Tests for FieldStore."""

import pytest

from forms.lib.errors import FieldError
from forms.lib.store import FieldStore
from forms.models import FieldDescriptor, FieldSource


@pytest.fixture
def store():
    return FieldStore(
        [
            FieldDescriptor("name", default="Ada"),
            FieldDescriptor("tags", default=["a"]),
            FieldDescriptor("age"),
        ]
    )


class TestFieldStore:
    def test_install_seeds_defaults(self, store):
        assert store.get_all() == {"name": "Ada", "tags": ["a"], "age": None}
        assert store.names == ["name", "tags", "age"]
        assert store.record("name").source == FieldSource.DEFAULT

    def test_defaults_are_copied(self):
        default = ["a"]
        store = FieldStore([FieldDescriptor("tags", default=default)])
        store.get("tags").append("b")
        assert default == ["a"]
        assert store.initial == {"tags": ["a"]}

    def test_write_reports_change(self, store):
        assert store.write("age", 30)
        assert not store.write("age", 30)
        assert store.write("age", 30.0)
        assert store.record("age").source == FieldSource.LOCAL

    def test_get_all_is_a_copy(self, store):
        snapshot = store.get_all()
        snapshot["name"] = "Grace"
        assert store.get("name") == "Ada"

    def test_unknown_field(self, store):
        with pytest.raises(FieldError, match="Unknown field 'missing'"):
            store.get("missing")
        with pytest.raises(FieldError):
            store.write("missing", 1)

    def test_reset_returns_changed_names(self, store):
        store.write("name", "Grace")
        store.write("age", 40)
        store.set_error("name", "bad")
        assert store.reset() == ["name", "age"]
        assert store.get_all() == {"name": "Ada", "tags": ["a"], "age": None}
        assert store.errors() == {}

    def test_clear(self, store):
        assert store.clear() == ["name", "tags"]
        assert store.get_all() == {"name": None, "tags": None, "age": None}
        assert store.record("name").source == FieldSource.CLEARED

    def test_snapshot_and_restore(self, store):
        store.set_error("name", "Required")
        saved = store.snapshot()
        store.write("name", "Grace")
        store.write("age", 36)
        store.set_error("name", None)

        store.restore(saved)
        assert store.get_all() == {"name": "Ada", "tags": ["a"], "age": None}
        assert store.record("name").source == FieldSource.DEFAULT
        assert store.errors() == {"name": "Required"}

    def test_errors(self, store):
        store.set_error("name", "Required")
        store.set_error("age", None)
        assert store.errors() == {"name": "Required"}
        assert store.get_error("name") == "Required"
        store.clear_errors()
        assert store.errors() == {}

    def test_container_protocol(self, store):
        assert "name" in store
        assert "missing" not in store
        assert len(store) == 3
        assert list(store) == ["name", "tags", "age"]
