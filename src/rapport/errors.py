"""Error taxonomy for rapport operations.

Every failure surfaced by the tracker is one of:

- ``InvalidArgumentError``: malformed or missing input (also a ``ValueError``)
- ``UnknownInteractionTypeError``: type name outside the seeded catalog
- ``NotFoundError``: referenced id does not exist (also a ``LookupError``)
- ``ConstraintViolationError``: foreign-key / uniqueness breach in the store
- ``StoreUnavailableError``: connectivity or transient store failure

Store-layer exceptions raised by asyncpg are translated at the operation
boundary by :func:`operation_errors`, which also stamps the operation name and
its key inputs onto the error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)


class RapportError(Exception):
    """Base class for all rapport errors."""

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.context = dict(context or {})

    def __str__(self) -> str:
        if self.operation is None:
            return self.message
        return f"{self.operation}: {self.message}"


class InvalidArgumentError(RapportError, ValueError):
    """Raised when caller input is malformed or a required field is missing."""

    code = "VALIDATION_ERROR"


class UnknownInteractionTypeError(InvalidArgumentError):
    """Raised when an interaction type name is not in the catalog."""

    code = "UNKNOWN_INTERACTION_TYPE"

    def __init__(self, type_name: str, valid_types: Sequence[str] = ()) -> None:
        self.type_name = type_name
        self.valid_types = tuple(valid_types)
        message = f"Unknown interaction type: {type_name!r}"
        if self.valid_types:
            message += f". Valid types: {', '.join(self.valid_types)}"
        super().__init__(message)


class NotFoundError(RapportError, LookupError):
    """Raised when a lookup by identity returns nothing."""

    code = "NOT_FOUND"


class ConstraintViolationError(RapportError):
    """Raised when the store rejects a write on a referential or uniqueness rule."""

    code = "CONSTRAINT_VIOLATION"


class StoreUnavailableError(RapportError):
    """Raised when the store cannot be reached or fails transiently."""

    code = "STORE_UNAVAILABLE"


_UNAVAILABLE_TYPES: tuple[type[BaseException], ...] = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.InterfaceError,
    # Deadlocks, serialization failures, statement timeouts and admin shutdowns
    asyncpg.exceptions.TransactionRollbackError,
    asyncpg.exceptions.OperatorInterventionError,
    ConnectionError,
    TimeoutError,
    OSError,
)


def translate_store_error(
    exc: BaseException,
    operation: str | None = None,
    context: dict[str, Any] | None = None,
) -> RapportError | None:
    """Map a store-layer exception onto the rapport taxonomy.

    Any other asyncpg server error becomes a plain :class:`RapportError`.
    Returns ``None`` when *exc* does not come from the store, so the caller
    can re-raise it untouched.
    """
    if isinstance(exc, RapportError):
        return exc
    if isinstance(exc, asyncpg.exceptions.IntegrityConstraintViolationError):
        constraint = getattr(exc, "constraint_name", None)
        detail = getattr(exc, "detail", None)
        message = f"Constraint violated: {constraint or type(exc).__name__}"
        if detail:
            message += f" ({detail})"
        return ConstraintViolationError(message, operation=operation, context=context)
    if isinstance(exc, asyncpg.exceptions.DataError):
        return InvalidArgumentError(
            f"Store rejected input: {exc}", operation=operation, context=context
        )
    if isinstance(exc, _UNAVAILABLE_TYPES):
        return StoreUnavailableError(
            f"Store unavailable: {exc or type(exc).__name__}",
            operation=operation,
            context=context,
        )
    if isinstance(exc, asyncpg.exceptions.PostgresError):
        return RapportError(
            f"Store error: {exc or type(exc).__name__}", operation=operation, context=context
        )
    return None


@contextmanager
def operation_errors(operation: str, **context: Any) -> Iterator[None]:
    """Attach operation context to errors raised inside the block.

    Rapport errors keep their type and gain ``operation`` / ``context`` when not
    already set. asyncpg and connectivity errors are translated via
    :func:`translate_store_error` and chained to the original. Anything else
    (programming errors) propagates unchanged.
    """
    try:
        yield
    except RapportError as exc:
        if exc.operation is None:
            exc.operation = operation
            exc.context = {**context, **exc.context}
        raise
    except Exception as exc:
        translated = translate_store_error(exc, operation, context)
        if translated is None:
            raise
        logger.warning("Store error during %s: %s", operation, translated.message)
        raise translated from exc
