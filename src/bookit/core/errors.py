"""Error taxonomy for ledger operations."""

from enum import Enum


class ErrorCode(Enum):
    """Ledger error codes."""

    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    EMPTY_NAME = "EMPTY_NAME"
    NEGATIVE_RATE = "NEGATIVE_RATE"
    NON_POSITIVE_DURATION = "NON_POSITIVE_DURATION"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    UNKNOWN_CONTRACTOR = "UNKNOWN_CONTRACTOR"
    UNKNOWN_ALIAS = "UNKNOWN_ALIAS"
    REFERENCED_BY_ALIAS = "REFERENCED_BY_ALIAS"
    REFERENCED_BY_TIME_ENTRY = "REFERENCED_BY_TIME_ENTRY"
    NOT_FOUND = "NOT_FOUND"
    HASH_COLLISION = "HASH_COLLISION"


class LedgerError(Exception):
    """Base error with code and user-facing message."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# Validation errors


class InvalidIdentifier(LedgerError, ValueError):
    """Raised when a slug is too long, empty or uses disallowed characters."""

    code = ErrorCode.INVALID_IDENTIFIER

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"Invalid identifier '{value}': {reason}")
        self.value = value


class EmptyName(LedgerError, ValueError):
    """Raised when a contractor name is blank."""

    code = ErrorCode.EMPTY_NAME

    def __init__(self, slug: str) -> None:
        super().__init__(f"Contractor '{slug}' needs a non-empty name")
        self.slug = slug


class NegativeRate(LedgerError, ValueError):
    """Raised when an alias rate is below zero."""

    code = ErrorCode.NEGATIVE_RATE

    def __init__(self, slug: str, rate: int) -> None:
        super().__init__(f"Alias '{slug}' cannot have a negative rate ({rate})")
        self.slug = slug
        self.rate = rate


class NonPositiveDuration(LedgerError, ValueError):
    """Raised when a time entry does not last at least one minute."""

    code = ErrorCode.NON_POSITIVE_DURATION

    def __init__(self, minutes: int) -> None:
        super().__init__(f"Duration must be a positive number of minutes, got {minutes}")
        self.minutes = minutes


# Store errors


class DuplicateKey(LedgerError):
    """Raised when inserting a key that already exists in its collection."""

    code = ErrorCode.DUPLICATE_KEY

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"{collection} '{key}' already exists")
        self.collection = collection
        self.key = key


class UnknownContractor(LedgerError):
    """Raised when an alias points at a contractor that does not exist."""

    code = ErrorCode.UNKNOWN_CONTRACTOR

    def __init__(self, slug: str) -> None:
        super().__init__(f"Unknown contractor '{slug}'")
        self.slug = slug


class UnknownAlias(LedgerError):
    """Raised when a time entry points at an alias that does not exist."""

    code = ErrorCode.UNKNOWN_ALIAS

    def __init__(self, slug: str) -> None:
        super().__init__(f"Unknown alias '{slug}'")
        self.slug = slug


class ReferencedByAlias(LedgerError):
    """Raised when deleting a contractor that aliases still point at."""

    code = ErrorCode.REFERENCED_BY_ALIAS

    def __init__(self, slug: str, aliases: list[str]) -> None:
        super().__init__(
            f"Contractor '{slug}' is still used by aliases: {', '.join(sorted(aliases))}"
        )
        self.slug = slug
        self.aliases = aliases


class ReferencedByTimeEntry(LedgerError):
    """Raised when deleting an alias that has booked hours."""

    code = ErrorCode.REFERENCED_BY_TIME_ENTRY

    def __init__(self, slug: str, count: int) -> None:
        super().__init__(f"Alias '{slug}' still has {count} time entries booked")
        self.slug = slug
        self.count = count


class NotFound(LedgerError):
    """Raised when a single-item lookup misses."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"{collection} '{key}' not found")
        self.collection = collection
        self.key = key


class HashCollision(LedgerError):
    """Raised when a generated entry hash is already taken."""

    code = ErrorCode.HASH_COLLISION

    def __init__(self, value: str) -> None:
        super().__init__(f"Generated entry hash '{value}' is already in use")
        self.value = value
