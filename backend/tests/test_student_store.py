"""Tests for the persistence adapter and the model's write-time rules."""

import pytest

from student_service.errors import DuplicateEmailError, StoreError, StudentValidationError
from student_service.services.student_store import StudentStore, parse_student_id


@pytest.fixture
def db(store):
    session = store.session()
    yield session
    session.close()


@pytest.fixture
def student_store(db):
    return StudentStore(db)


@pytest.fixture
def fields(sample_student):
    return dict(sample_student)


def test_insert_sets_id_and_timestamps(student_store, fields):
    student = student_store.insert(fields)
    assert parse_student_id(student.id) == student.id
    assert student.created_at is not None
    assert student.updated_at is not None


def test_insert_trims_and_lowercases(student_store, fields):
    fields.update(name="\tAda  ", phone=" 555-0100 ", email=" ADA@Example.com\n")
    student = student_store.insert(fields)
    assert student.name == "Ada"
    assert student.phone == "555-0100"
    assert student.email == "ada@example.com"


def test_unique_index_rejects_duplicate_without_precheck(student_store, fields):
    student_store.insert(fields)
    with pytest.raises(DuplicateEmailError):
        student_store.insert({**fields, "email": "Ada@Example.com"})
    assert len(student_store.find_all()) == 1


def test_insert_blank_field(student_store, fields):
    with pytest.raises(StudentValidationError) as exc_info:
        student_store.insert({**fields, "state": "  "})
    assert exc_info.value.field == "state"
    assert str(exc_info.value) == "Student validation failed: state: state is required"


@pytest.mark.parametrize("email", [
    "john.doe@example.com",
    "john-doe@mail.example.co",
    "j_d@example.co.uk",
])
def test_valid_emails_accepted(student_store, fields, email):
    assert student_store.insert({**fields, "email": email}).email == email


@pytest.mark.parametrize("email", [
    "john..doe@example.com",
    "john@example.c",
    "@example.com",
    "jöhn@example.com",
])
def test_invalid_emails_rejected(student_store, fields, email):
    with pytest.raises(StudentValidationError) as exc_info:
        student_store.insert({**fields, "email": email})
    assert exc_info.value.reason == "Please enter a valid email address"


def test_long_malformed_email_fails_fast(student_store, fields):
    with pytest.raises(StudentValidationError):
        student_store.insert({**fields, "email": "a" * 5000 + "!"})


def test_find_one_by_email_normalizes(student_store, fields):
    created = student_store.insert(fields)
    assert student_store.find_one_by_email("  ADA@example.COM ").id == created.id
    assert student_store.find_one_by_email("nobody@example.com") is None


def test_find_one_by_email_excludes_id(student_store, fields):
    created = student_store.insert(fields)
    assert student_store.find_one_by_email(fields["email"], exclude_id=created.id) is None


def test_update_replaces_fields_and_keeps_created_at(student_store, fields):
    created = student_store.insert(fields)
    created_at = created.created_at
    updated_at = created.updated_at

    updated = student_store.update_by_id(created.id, {**fields, "city": "Bath"})
    assert updated.city == "Bath"
    assert updated.created_at == created_at
    assert updated.updated_at >= updated_at


def test_update_duplicate_key_leaves_record(student_store, fields):
    student_store.insert(fields)
    other = student_store.insert({**fields, "email": "other@example.com"})

    with pytest.raises(DuplicateEmailError):
        student_store.update_by_id(other.id, {**fields, "name": "Changed"})

    reloaded = student_store.find_by_id(other.id)
    assert reloaded.name == fields["name"]
    assert reloaded.email == "other@example.com"


def test_update_missing_returns_none(student_store, fields):
    assert student_store.update_by_id("00000000-0000-4000-8000-000000000000", fields) is None


def test_delete(student_store, fields):
    created = student_store.insert(fields)
    student_id = created.id
    assert student_store.delete_by_id(student_id) is not None
    assert student_store.find_by_id(student_id) is None
    assert student_store.delete_by_id(student_id) is None


def test_find_all_newest_first(student_store, fields):
    ids = [student_store.insert({**fields, "email": f"s{i}@example.com"}).id for i in range(3)]
    assert [s.id for s in student_store.find_all()] == list(reversed(ids))


def test_parse_student_id_canonicalizes():
    raw = "0F8FAD5B-D9CB-469F-A165-70867728950E"
    assert parse_student_id(raw) == raw.lower()


@pytest.mark.parametrize("bad", ["", "123", "not-an-id"])
def test_parse_student_id_rejects_malformed(bad):
    with pytest.raises(StoreError):
        parse_student_id(bad)
