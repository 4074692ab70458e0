"""
Typed exception hierarchy for the expense kernel.

Every error the kernel raises has a TYPED class and a machine-readable
``code`` class attribute, and carries its context as attributes rather
than inside the message string.  Callers catch by type and report by code.

    ExpenseKernelError (base)
    |
    +-- MoneyError
    |   +-- InvalidAmountError
    |
    +-- StorageError
    |   +-- TransientStorageError
    |   +-- DataInconsistencyError
    |
    +-- IdempotencyError
    |   +-- IdempotencyKeyRequiredError
    |   +-- InvalidIdempotencyKeyError
    |
    +-- ExpenseNotFoundError

Category        | Code                      | When Raised
----------------|---------------------------|---------------------------------------
Money           | INVALID_AMOUNT            | Non-finite / non-numeric amount at the codec
Storage         | TRANSIENT_STORAGE_ERROR   | Commit failed; retry with the same key
                | DATA_INCONSISTENCY        | Key record points at a missing expense
Idempotency     | IDEMPOTENCY_KEY_REQUIRED  | No key supplied and keys are mandatory
                | INVALID_IDEMPOTENCY_KEY   | Key longer than the column allows
Lookup          | EXPENSE_NOT_FOUND         | Expense id does not exist

Retry policy by category:
    - MoneyError       -> contract violation upstream, never retried
    - StorageError     -> caller owns the retry; the idempotency key makes it safe
    - IdempotencyError -> client error, fix the request
"""


class ExpenseKernelError(Exception):
    """
    Base exception for all expense kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "EXPENSE_KERNEL_ERROR"


# Money


class MoneyError(ExpenseKernelError):
    """Base exception for monetary conversion errors."""

    code: str = "MONEY_ERROR"


class InvalidAmountError(MoneyError):
    """
    Amount cannot be converted to minor units.

    Reaching this means upstream validation let a non-finite or
    non-numeric value through; it is not a user error.
    """

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: object, reason: str):
        self.value = repr(value)
        self.reason = reason
        super().__init__(f"Invalid amount {value!r}: {reason}")


# Storage


class StorageError(ExpenseKernelError):
    """Base exception for persistence errors."""

    code: str = "STORAGE_ERROR"


class TransientStorageError(StorageError):
    """
    The atomic write did not commit.

    Neither the expense nor its idempotency record was persisted.  Safe to
    retry with the identical idempotency key.
    """

    code: str = "TRANSIENT_STORAGE_ERROR"

    def __init__(self, operation: str, idempotency_key: str | None = None):
        self.operation = operation
        self.idempotency_key = idempotency_key
        if idempotency_key is not None:
            message = (
                f"Storage failure during {operation} "
                f"(idempotency key {idempotency_key}); retry with the same key"
            )
        else:
            message = f"Storage failure during {operation}"
        super().__init__(message)


class DataInconsistencyError(StorageError):
    """
    Idempotency record references an expense that no longer exists.

    Logged and self-healed by the write guard; never raised to callers.
    """

    code: str = "DATA_INCONSISTENCY"

    def __init__(self, idempotency_key: str, expense_id: str):
        self.idempotency_key = idempotency_key
        self.expense_id = expense_id
        super().__init__(
            f"Idempotency key {idempotency_key} references missing expense {expense_id}"
        )


# Idempotency


class IdempotencyError(ExpenseKernelError):
    """Base exception for idempotency key errors."""

    code: str = "IDEMPOTENCY_ERROR"


class IdempotencyKeyRequiredError(IdempotencyError):
    """Write was submitted without an idempotency key while keys are mandatory."""

    code: str = "IDEMPOTENCY_KEY_REQUIRED"

    def __init__(self, header: str = "X-Idempotency-Key"):
        self.header = header
        super().__init__(f"Missing required idempotency key header {header}")


class InvalidIdempotencyKeyError(IdempotencyError):
    """Idempotency key cannot be stored (too long)."""

    code: str = "INVALID_IDEMPOTENCY_KEY"

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Idempotency key is {length} characters; at most {max_length} allowed"
        )


# Lookup


class ExpenseNotFoundError(ExpenseKernelError):
    """Expense with given ID was not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")
