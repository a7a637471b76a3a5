"""Domain exceptions.

Services raise the domain exceptions below; they carry no HTTP knowledge.
The API layer maps them to the error envelope in ``ortoqbank.core.errors``.
"""

from typing import Any


class OrtoQBankError(Exception):
    """Base class for domain errors."""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(OrtoQBankError):
    """A referenced entity does not exist (or is archived)."""

    code = "NOT_FOUND"


class InvalidCombinationError(OrtoQBankError):
    """A filter combination that would require a full scan."""

    code = "INVALID_FILTER_COMBINATION"


class IntegrityViolationError(OrtoQBankError):
    """A write would break a data-model invariant."""

    code = "INTEGRITY_VIOLATION"


class AggregateError(OrtoQBankError):
    """An aggregate tree update is inconsistent with the source data.

    Raised from trigger handlers; the write that fired the trigger is rolled
    back so the tree and the source table never drift apart.
    """

    code = "AGGREGATE_DRIFT_RISK"

