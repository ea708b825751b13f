"""Short identifiers used as primary keys."""

import re
import secrets
import string
from collections.abc import Container

from bookit.core.errors import HashCollision, InvalidIdentifier

MAX_IDENTIFIER_LENGTH = 15
HASH_LENGTH = 8
HASH_ALPHABET = string.ascii_lowercase + string.digits

_SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


def _validate_slug(value: str) -> str:
    slug = value.strip()
    if not slug:
        raise InvalidIdentifier(value, "identifier cannot be empty")
    if len(slug) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifier(
            value, f"identifier is longer than {MAX_IDENTIFIER_LENGTH} characters"
        )
    if not _SLUG_PATTERN.match(slug):
        raise InvalidIdentifier(
            value,
            "use lowercase letters, digits, '-' or '_' (starting with a letter or digit)",
        )
    return slug


def new_contractor_slug(value: str) -> str:
    """Validate a user-supplied contractor slug.

    Args:
        value: Slug as typed by the user

    Returns:
        The slug with surrounding whitespace removed

    Raises:
        InvalidIdentifier: If the slug is empty, too long or has disallowed characters
    """
    return _validate_slug(value)


def new_alias_slug(value: str) -> str:
    """Validate a user-supplied alias slug. Same rules as contractor slugs."""
    return _validate_slug(value)


def slugify(text: str) -> str:
    """Suggest a slug for a display name.

    Examples:
        >>> slugify("Acme Inc")
        'acmeinc'
        >>> slugify("Müller & Söhne GmbH")
        'mllershnegmbh'
    """
    slug = "".join(text.lower().split())
    slug = re.sub(r"[^a-z0-9_-]", "", slug)
    slug = slug.lstrip("-_")
    return slug[:MAX_IDENTIFIER_LENGTH]


def new_entry_hash(existing: Container[str] = ()) -> str:
    """Generate a hash for a new time entry.

    Args:
        existing: Hashes already present in the time entry collection

    Returns:
        Lowercase alphanumeric hash of HASH_LENGTH characters

    Raises:
        HashCollision: If the generated value is already taken. Callers regenerate.
    """
    value = "".join(secrets.choice(HASH_ALPHABET) for _ in range(HASH_LENGTH))
    if value in existing:
        raise HashCollision(value)
    return value
