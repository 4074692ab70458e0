"""
Idempotency key utilities.

Keys are opaque strings chosen by the client.  The server only generates
one when the client sent none, and such a key cannot deduplicate a retry:
the retry will carry (or be given) a different key.
"""

from uuid import uuid4

from expense_kernel.db.types import IDEMPOTENCY_KEY_MAX_LENGTH
from expense_kernel.exceptions import InvalidIdempotencyKeyError


def generate_idempotency_key() -> str:
    """
    Generate a fresh server-side idempotency key.

    Returns:
        A uuid4 string, e.g. "550e8400-e29b-41d4-a716-446655440000".
    """
    return str(uuid4())


def normalize_idempotency_key(raw: str | None) -> str | None:
    """
    Normalize a client-supplied key.

    Surrounding whitespace is stripped; a blank key counts as absent.

    Raises:
        InvalidIdempotencyKeyError: If the key is longer than the storage
            column allows.
    """
    if raw is None:
        return None
    key = raw.strip()
    if not key:
        return None
    if len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise InvalidIdempotencyKeyError(len(key), IDEMPOTENCY_KEY_MAX_LENGTH)
    return key
