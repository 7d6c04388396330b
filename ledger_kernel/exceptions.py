"""
Typed Exception Hierarchy for the Ledger.

Callers catch by type, never by message text.  Every exception has a
``code`` class attribute (machine-readable, API-safe) and carries its
context as structured attributes, which the JSON log formatter emits as
``exc_<name>`` fields.

    LedgerKernelError (base)
    |
    +-- TemplateError
    |   +-- TemplateNotFoundError
    |   +-- TemplateValidationError
    |   +-- TemplateActivationError
    |
    +-- LedgerError
    |   +-- LedgerWriteError
    |   +-- DuplicateMaterializationError
    |
    +-- ConcurrencyError
    |   +-- CycleConflictError
    |
    +-- StoreError
    |   +-- StoreUnavailableError
    |
    +-- ConfigurationError

Category     | Code                          | When Raised
-------------|-------------------------------|----------------------------------------
Template     | TEMPLATE_NOT_FOUND            | Unknown id, or owned by another user
             | TEMPLATE_VALIDATION_FAILED    | Field rule broken at the lifecycle boundary
             | TEMPLATE_ACTIVATION_REJECTED  | Reactivation with no future occurrence
Ledger       | LEDGER_WRITE_FAILED           | Ledger collaborator refused the entry
             | DUPLICATE_MATERIALIZATION     | Entry already exists for template + date
Concurrency  | CYCLE_CONFLICT                | Template advanced since it was selected
Store        | STORE_UNAVAILABLE             | Due-scan could not reach the store
Config       | CONFIGURATION_INVALID         | Bad or missing configuration value
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Template-related exceptions


class TemplateError(LedgerKernelError):
    """Base exception for recurrence template errors."""

    code: str = "TEMPLATE_ERROR"


class TemplateNotFoundError(TemplateError):
    """Template does not exist or is not visible to the requesting owner."""

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"No recurring template found with id {template_id}")


class TemplateValidationError(TemplateError):
    """A template field failed validation."""

    code: str = "TEMPLATE_VALIDATION_FAILED"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class TemplateActivationError(TemplateError):
    """Reactivation rejected because no valid future occurrence exists."""

    code: str = "TEMPLATE_ACTIVATION_REJECTED"

    def __init__(self, template_id: str, reason: str = "no valid future occurrences"):
        self.template_id = template_id
        self.reason = reason
        super().__init__(f"Cannot activate template {template_id}: {reason}")


# Ledger-related exceptions


class LedgerError(LedgerKernelError):
    """Base exception for ledger write path errors."""

    code: str = "LEDGER_ERROR"


class LedgerWriteError(LedgerError):
    """The ledger collaborator could not create the entry."""

    code: str = "LEDGER_WRITE_FAILED"

    def __init__(self, reason: str, template_id: str | None = None):
        self.reason = reason
        self.template_id = template_id
        super().__init__(f"Ledger write failed: {reason}")


class DuplicateMaterializationError(LedgerError):
    """An entry for this template and date already exists."""

    code: str = "DUPLICATE_MATERIALIZATION"

    def __init__(self, template_id: str, entry_date: str):
        self.template_id = template_id
        self.entry_date = entry_date
        super().__init__(
            f"Template {template_id} already materialized for {entry_date}"
        )


# Concurrency-related exceptions


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class CycleConflictError(ConcurrencyError):
    """Guarded cycle commit matched no row: the template moved on."""

    code: str = "CYCLE_CONFLICT"

    def __init__(self, template_id: str, expected_next_occurrence: str):
        self.template_id = template_id
        self.expected_next_occurrence = expected_next_occurrence
        super().__init__(
            f"Template {template_id} was modified by another cycle "
            f"(expected next occurrence {expected_next_occurrence})"
        )


# Store-related exceptions


class StoreError(LedgerKernelError):
    """Base exception for template store errors."""

    code: str = "STORE_ERROR"


class StoreUnavailableError(StoreError):
    """The template store could not be queried at all."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Template store unavailable during {operation}: {reason}")


# Configuration


class ConfigurationError(LedgerKernelError):
    """Configuration file or value is invalid."""

    code: str = "CONFIGURATION_INVALID"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key}: {reason}")
