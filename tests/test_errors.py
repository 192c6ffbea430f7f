"""Tests for rapport.errors: taxonomy, store-error translation, operation stamping."""

from __future__ import annotations

import asyncpg
import pytest

from rapport.errors import (
    ConstraintViolationError,
    InvalidArgumentError,
    NotFoundError,
    RapportError,
    StoreUnavailableError,
    UnknownInteractionTypeError,
    operation_errors,
    translate_store_error,
)

pytestmark = pytest.mark.unit


class TestTaxonomy:
    def test_invalid_argument_is_value_error(self):
        exc = InvalidArgumentError("bad")
        assert isinstance(exc, ValueError)
        assert exc.code == "VALIDATION_ERROR"

    def test_not_found_is_lookup_error(self):
        assert isinstance(NotFoundError("missing"), LookupError)

    def test_unknown_type_carries_valid_types(self):
        exc = UnknownInteractionTypeError("carrier_pigeon", ["phone_call", "email"])
        assert isinstance(exc, InvalidArgumentError)
        assert exc.type_name == "carrier_pigeon"
        assert exc.valid_types == ("phone_call", "email")
        assert "carrier_pigeon" in str(exc)
        assert "phone_call, email" in str(exc)
        assert exc.code == "UNKNOWN_INTERACTION_TYPE"

    def test_str_prefixes_operation(self):
        exc = NotFoundError("Contact x not found", operation="get_contact_stats")
        assert str(exc) == "get_contact_stats: Contact x not found"
        assert exc.message == "Contact x not found"


class TestTranslateStoreError:
    def test_unique_violation_becomes_constraint_violation(self):
        exc = asyncpg.exceptions.UniqueViolationError("duplicate key")
        exc.constraint_name = "uq_contacts_name"
        translated = translate_store_error(exc, "create_contact", {"name": "Alice"})
        assert isinstance(translated, ConstraintViolationError)
        assert "uq_contacts_name" in translated.message
        assert translated.operation == "create_contact"
        assert translated.context == {"name": "Alice"}

    def test_foreign_key_violation_becomes_constraint_violation(self):
        exc = asyncpg.exceptions.ForeignKeyViolationError("fk")
        assert isinstance(translate_store_error(exc), ConstraintViolationError)

    def test_data_error_becomes_invalid_argument(self):
        exc = asyncpg.exceptions.NumericValueOutOfRangeError("out of range")
        assert isinstance(translate_store_error(exc), InvalidArgumentError)

    @pytest.mark.parametrize(
        "exc",
        [
            ConnectionRefusedError("refused"),
            TimeoutError("slow"),
            OSError("network down"),
            asyncpg.exceptions.InterfaceError("pool is closing"),
            asyncpg.exceptions.QueryCanceledError("statement timeout"),
            asyncpg.exceptions.DeadlockDetectedError("deadlock detected"),
            asyncpg.exceptions.SerializationError("could not serialize access"),
            asyncpg.exceptions.AdminShutdownError("terminating connection"),
        ],
    )
    def test_connectivity_becomes_store_unavailable(self, exc):
        assert isinstance(translate_store_error(exc), StoreUnavailableError)

    def test_rapport_error_passes_through(self):
        exc = NotFoundError("gone")
        assert translate_store_error(exc) is exc

    def test_other_server_error_becomes_base_error(self):
        exc = asyncpg.exceptions.UndefinedTableError('relation "contacts" does not exist')
        translated = translate_store_error(exc, "list_contacts")
        assert type(translated) is RapportError
        assert translated.code == "INTERNAL_ERROR"
        assert translated.operation == "list_contacts"

    def test_unrelated_error_is_not_translated(self):
        assert translate_store_error(KeyError("x")) is None


class TestOperationErrors:
    def test_stamps_operation_on_rapport_error(self):
        with pytest.raises(NotFoundError) as exc_info:
            with operation_errors("get_contact_details", contact_id="abc"):
                raise NotFoundError("Contact abc not found")
        assert exc_info.value.operation == "get_contact_details"
        assert exc_info.value.context == {"contact_id": "abc"}

    def test_keeps_existing_operation(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            with operation_errors("outer"):
                raise InvalidArgumentError("bad", operation="inner")
        assert exc_info.value.operation == "inner"

    def test_translates_and_chains_store_errors(self):
        original = asyncpg.exceptions.UniqueViolationError("duplicate key")
        with pytest.raises(ConstraintViolationError) as exc_info:
            with operation_errors("create_contact", name="Alice"):
                raise original
        assert exc_info.value.__cause__ is original
        assert exc_info.value.operation == "create_contact"
        assert "create_contact" in str(exc_info.value)

    def test_unknown_errors_propagate_unchanged(self):
        with pytest.raises(RuntimeError):
            with operation_errors("list_contacts"):
                raise RuntimeError("boom")

    def test_every_error_is_a_rapport_error(self):
        for cls in (
            InvalidArgumentError,
            NotFoundError,
            ConstraintViolationError,
            StoreUnavailableError,
        ):
            assert issubclass(cls, RapportError)
