from __future__ import annotations

import re
from typing import Iterator, Optional

import pytest
from pydantic import Field

from dustydb import Database, MemoryStore, Model, Record
from dustydb.errors import MissingKeyError, PersistenceError, SchemaMismatchError
from dustydb.stores.abstract import AbstractStore, StoredItem

AUTHOR_KEY = '["chromatic"]'
AUTHOR_EMAIL = "c@example.com"


class _Ticket(Record):
    key_fields = ("id",)

    id: int = 0
    title: Optional[str] = None


class _Contact(Record):
    key_fields = ("name",)

    name: Optional[str] = None
    email: Optional[str] = Field(None, alias="mail")


class _UnreachableStore(AbstractStore):
    """Store whose every operation fails like a lost connection."""

    name = "unreachable"

    def get(self, namespace: str, key: str) -> Optional[bytes]:
        raise PersistenceError("store unreachable")

    def put(self, namespace: str, key: str, value: bytes) -> None:
        raise PersistenceError("store unreachable")

    def delete(self, namespace: str, key: str) -> bool:
        raise PersistenceError("store unreachable")

    def scan(self, namespace: str) -> Iterator[StoredItem]:
        raise PersistenceError("store unreachable")


class TestConstruct:
    def test_construct_does_not_touch_the_store(self, authors: Model, store: MemoryStore):
        record = authors.construct(name="chromatic", email=AUTHOR_EMAIL)

        assert record.name == "chromatic"
        assert record.email == AUTHOR_EMAIL
        assert list(store.scan(authors.table)) == []

    def test_construct_accepts_partial_or_absent_key(self, authors: Model):
        record = authors.construct(email=AUTHOR_EMAIL)

        assert record.name is None
        assert record.bound_model is authors

    def test_construct_accepts_mapping_and_keywords(self, authors: Model):
        record = authors.construct({"name": "chromatic", "email": "old@example.com"}, email=AUTHOR_EMAIL)

        assert record.email == AUTHOR_EMAIL

    def test_constructed_record_saves_through_its_model(self, authors: Model):
        record = authors.construct(name="chromatic")
        assert authors.load(name="chromatic") is None

        record.save()

        assert authors.load(name="chromatic") == record


class TestCreateAndLoad:
    def test_create_then_load_round_trips_given_attributes(self, authors: Model):
        authors.create(name="chromatic", email=AUTHOR_EMAIL)

        loaded = authors.load(name="chromatic")

        assert loaded is not None
        assert loaded.model_dump() == {"name": "chromatic", "email": AUTHOR_EMAIL}

    def test_absent_attributes_load_as_unset_defaults(self, books: Model):
        books.create(author="chromatic", title="Modern Perl")

        loaded = books.load(author="chromatic", title="Modern Perl")

        assert loaded.year is None
        assert loaded.tags == []
        assert loaded.model_fields_set == {"author", "title"}

    def test_create_writes_json_at_encoded_key(self, authors: Model, store: MemoryStore):
        authors.create(name="chromatic", email=AUTHOR_EMAIL)

        assert store.get("Author", AUTHOR_KEY) == b'{"name":"chromatic","email":"c@example.com"}'

    def test_create_without_key_raises_missing_key(self, authors: Model, store: MemoryStore):
        with pytest.raises(MissingKeyError) as excinfo:
            authors.create(email=AUTHOR_EMAIL)

        assert excinfo.value.missing == ("name",)
        assert list(store.scan("Author")) == []

    def test_create_with_partial_composite_key_raises(self, books: Model):
        with pytest.raises(MissingKeyError) as excinfo:
            books.create(author="chromatic", year=2010)

        assert excinfo.value.missing == ("title",)

    def test_key_holding_only_its_default_counts_as_missing(self, db: Database, store: MemoryStore):
        tickets = db.model(_Ticket)

        with pytest.raises(MissingKeyError) as excinfo:
            tickets.create(title="no id given")

        assert excinfo.value.missing == ("id",)
        assert list(store.scan(tickets.table)) == []

    def test_key_equal_to_its_default_is_accepted_when_given(self, db: Database):
        tickets = db.model(_Ticket)

        tickets.create(id=0, title="first")

        assert tickets.load(id=0).title == "first"

    def test_aliased_attribute_round_trips_by_field_name(self, db: Database, store: MemoryStore):
        contacts = db.model(_Contact)

        contacts.create(name="chromatic", email=AUTHOR_EMAIL)
        loaded = contacts.load(name="chromatic")

        assert loaded.email == AUTHOR_EMAIL
        assert store.get(contacts.table, AUTHOR_KEY) == (
            b'{"name":"chromatic","email":"c@example.com"}'
        )

    def test_create_propagates_store_failure(self):
        model = Database(_UnreachableStore()).model("Author")

        with pytest.raises(PersistenceError, match="unreachable"):
            model.create(name="chromatic")

    def test_load_miss_returns_none(self, authors: Model):
        assert authors.load(name="nobody") is None

    def test_load_ignores_non_key_params(self, authors: Model):
        authors.create(name="chromatic", email=AUTHOR_EMAIL)

        loaded = authors.load(name="chromatic", email="ignored@example.com")

        assert loaded.email == AUTHOR_EMAIL

    def test_load_requires_every_key_attribute(self, books: Model):
        with pytest.raises(MissingKeyError):
            books.load(author="chromatic")

    def test_load_coerces_key_values_like_stored_records(self, counters: Model):
        counters.create(id=7, hits=3)

        loaded = counters.load(id="7")

        assert loaded is not None
        assert loaded.hits == 3

    def test_load_propagates_store_failure(self):
        model = Database(_UnreachableStore()).model("Author")

        with pytest.raises(PersistenceError):
            model.load(name="chromatic")

    def test_loaded_record_is_bound_to_model(self, authors: Model):
        authors.create(name="chromatic")

        assert authors.load(name="chromatic").bound_model is authors


class TestLoadOrCreate:
    def test_miss_persists_what_create_would(self, authors: Model, store: MemoryStore):
        record = authors.load_or_create(name="chromatic", email=AUTHOR_EMAIL)
        via_load_or_create = store.get("Author", AUTHOR_KEY)

        other = Database(MemoryStore()).model("Author")
        other.create(name="chromatic", email=AUTHOR_EMAIL)

        assert record.email == AUTHOR_EMAIL
        assert via_load_or_create == other.store.get("Author", AUTHOR_KEY)

    def test_hit_returns_stored_record_unmodified(self, authors: Model, store: MemoryStore):
        authors.create(name="chromatic", email=AUTHOR_EMAIL)
        before = store.get("Author", AUTHOR_KEY)

        record = authors.load_or_create(name="chromatic", email="new@example.com")

        assert record.email == AUTHOR_EMAIL
        assert store.get("Author", AUTHOR_KEY) == before

    def test_concurrent_misses_resolve_last_writer_wins(self, authors: Model, monkeypatch):
        # Both callers observe the miss before either writes.
        monkeypatch.setattr(authors.schema, "load_instance", lambda model, params: None)

        authors.load_or_create(name="chromatic", email="first@example.com")
        authors.load_or_create(name="chromatic", email="second@example.com")

        monkeypatch.undo()
        assert authors.load(name="chromatic").email == "second@example.com"


class TestSave:
    def test_save_on_miss_creates(self, authors: Model):
        record = authors.save(name="chromatic", email=AUTHOR_EMAIL)

        assert record.email == AUTHOR_EMAIL
        assert authors.load(name="chromatic").email == AUTHOR_EMAIL

    def test_save_on_hit_replaces_and_clears_omitted(self, books: Model):
        books.create(author="chromatic", title="Modern Perl", year=2010, tags=["perl"])

        record = books.save(author="chromatic", title="Modern Perl", year=2012)

        loaded = books.load(author="chromatic", title="Modern Perl")
        assert record.year == 2012
        assert loaded.year == 2012
        assert loaded.tags == []
        assert "tags" not in loaded.model_fields_set

    def test_save_with_none_clears_attribute(self, authors: Model):
        authors.create(name="chromatic", email=AUTHOR_EMAIL)

        authors.save(name="chromatic", email=None)

        loaded = authors.load(name="chromatic")
        assert loaded.email is None
        assert "email" not in loaded.model_fields_set

    def test_cleared_attribute_falls_back_to_its_default(self, counters: Model):
        counters.create(id=1, hits=5)

        counters.save(id=1)

        assert counters.load(id=1).hits == 0

    def test_save_is_idempotent(self, books: Model, store: MemoryStore):
        params = {"author": "chromatic", "title": "Modern Perl", "year": 2010, "tags": ["perl"]}

        books.save(params)
        once = dict(store.scan("books"))
        books.save(params)
        twice = dict(store.scan("books"))

        assert once == twice

    def test_save_on_miss_and_hit_write_identical_bytes(self, authors: Model, store: MemoryStore):
        authors.save(name="chromatic", email=None)
        after_create = store.get("Author", AUTHOR_KEY)
        authors.save(name="chromatic", email=None)

        assert store.get("Author", AUTHOR_KEY) == after_create

    def test_save_validates_assigned_values(self, counters: Model):
        counters.create(id=1, hits=5)

        record = counters.save(id=1, hits="9")

        assert record.hits == 9

    def test_load_and_update_or_create_is_save(self):
        assert Model.load_and_update_or_create is Model.save

    def test_alias_has_full_replace_semantics(self, authors: Model):
        authors.create(name="chromatic", email=AUTHOR_EMAIL)

        authors.load_and_update_or_create(name="chromatic")

        assert authors.load(name="chromatic").email is None


class TestDelete:
    def test_record_delete_then_load_returns_none(self, authors: Model):
        record = authors.create(name="chromatic", email=AUTHOR_EMAIL)

        assert record.delete() is True
        assert authors.load(name="chromatic") is None

    def test_model_delete_by_key(self, authors: Model):
        authors.create(name="chromatic")

        assert authors.delete(name="chromatic") is True
        assert authors.delete(name="chromatic") is False
        assert authors.load(name="chromatic") is None

    def test_delete_requires_key(self, books: Model):
        with pytest.raises(MissingKeyError):
            books.delete(title="Modern Perl")


class TestScans:
    @pytest.fixture
    def populated(self, authors: Model) -> Model:
        for name in ("Randall Schwartz", "damian", "Damian Conway", "chromatic"):
            authors.create(name=name)
        authors.save(name="chromatic", email=AUTHOR_EMAIL)
        return authors

    def test_all_returns_every_record_in_key_order(self, populated: Model):
        names = [record.name for record in populated.all()]

        assert names == sorted(names)
        assert set(names) == {"Randall Schwartz", "damian", "Damian Conway", "chromatic"}

    def test_all_where_regex(self, populated: Model):
        matched = {record.name for record in populated.all_where(name=re.compile(r"^d", re.I))}

        assert matched == {"damian", "Damian Conway"}

    def test_all_where_regex_never_matches_unset(self, populated: Model):
        matched = [record.name for record in populated.all_where(email=re.compile(".*"))]

        assert matched == ["chromatic"]

    def test_all_where_regex_skips_unset_attribute_with_default(self, counters: Model):
        counters.create(id=1)
        counters.create(id=2, hits=10)

        matched = [record.id for record in counters.all_where(hits=re.compile("0"))]

        assert matched == [2]

    def test_all_where_value_still_sees_defaults(self, counters: Model):
        counters.create(id=1)

        assert [record.id for record in counters.all_where(hits=0)] == [1]

    def test_all_where_value_and_predicate(self, populated: Model):
        by_value = [r.name for r in populated.all_where(email=AUTHOR_EMAIL)]
        by_predicate = [r.name for r in populated.all_where(name=lambda v: " " in v)]

        assert by_value == ["chromatic"]
        assert sorted(by_predicate) == ["Damian Conway", "Randall Schwartz"]

    def test_all_where_rejects_unknown_attribute(self, populated: Model):
        with pytest.raises(SchemaMismatchError):
            populated.all_where(nickname="chromatic")

    def test_count(self, populated: Model, books: Model):
        assert populated.count() == 4
        assert books.count() == 0


class TestUnknownAttributes:
    def test_ignored_by_default(self, authors: Model):
        record = authors.create(name="chromatic", nickname="c")

        assert not hasattr(record, "nickname")
        assert authors.load(name="chromatic", nickname="c") is not None

    def test_rejected_when_configured(self, store: MemoryStore):
        model = Database(store, unknown_attributes="reject").model("Author")

        with pytest.raises(SchemaMismatchError) as excinfo:
            model.create(name="chromatic", nickname="c")

        assert excinfo.value.unknown == ("nickname",)
        assert list(store.scan("Author")) == []

    def test_rejection_is_a_value_error(self, store: MemoryStore):
        model = Database(store, unknown_attributes="reject").model("Author")

        with pytest.raises(ValueError):
            model.save(name="chromatic", nickname="c")


def test_end_to_end_save_clears_email(authors: Model):
    authors.create(name="chromatic", email=AUTHOR_EMAIL)
    assert authors.load(name="chromatic").model_dump() == {"name": "chromatic", "email": AUTHOR_EMAIL}

    authors.save(name="chromatic", email=None)

    loaded = authors.load(name="chromatic")
    assert loaded.model_dump(exclude_unset=True) == {"name": "chromatic"}


def test_model_is_immutable(authors: Model):
    with pytest.raises(AttributeError):
        authors.store = MemoryStore()  # type: ignore[misc]


def test_models_of_different_types_share_the_store(authors: Model, books: Model, store: MemoryStore):
    authors.create(name="chromatic")
    books.create(author="chromatic", title="Modern Perl")

    assert authors.store is books.store is store
    assert [key for key, _ in store.scan("books")] == ['["chromatic","Modern Perl"]']
