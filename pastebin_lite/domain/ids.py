from __future__ import annotations

import secrets
import string


PASTE_ID_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
PASTE_ID_LENGTH = 10


def generate_paste_id() -> str:
    """
    Return a new random paste id.

    Every character is drawn independently from ``PASTE_ID_ALPHABET`` using
    the ``secrets`` CSPRNG. Uniqueness is not checked here; the store retries
    on primary-key conflicts.
    """
    return "".join(secrets.choice(PASTE_ID_ALPHABET) for _ in range(PASTE_ID_LENGTH))


def is_valid_paste_id(value: str) -> bool:
    """Return True if ``value`` has the shape of a generated paste id."""
    return len(value) == PASTE_ID_LENGTH and all(c in PASTE_ID_ALPHABET for c in value)
