"""Core data models for the ledger."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from bookit.core.errors import EmptyName, NegativeRate, NonPositiveDuration
from bookit.core.identifiers import new_alias_slug, new_contractor_slug

MINUTES_PER_HOUR = 60


@dataclass
class Contractor:
    """Client being billed.

    Attributes:
        slug: Unique identifier, immutable once created
        name: Display name
    """

    slug: str
    name: str

    def __post_init__(self) -> None:
        self.slug = new_contractor_slug(self.slug)
        if not self.name or not self.name.strip():
            raise EmptyName(self.slug)
        self.name = self.name.strip()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV serialization."""
        return {"slug": self.slug, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Contractor":
        """Create Contractor from dictionary (CSV deserialization)."""
        return cls(slug=data["slug"], name=data["name"])


@dataclass
class Alias:
    """Rate-bearing engagement under a contractor.

    The contractor reference is not checked here; the store does that on insert.

    Attributes:
        slug: Unique identifier, immutable once created
        contractor: Slug of the owning contractor
        rate: Currency minor units per hour
        description: Short description of the engagement (optional)
    """

    slug: str
    contractor: str
    rate: int
    description: Optional[str] = None

    def __post_init__(self) -> None:
        self.slug = new_alias_slug(self.slug)
        self.contractor = self.contractor.strip()
        if self.rate < 0:
            raise NegativeRate(self.slug, self.rate)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV serialization."""
        return {
            "slug": self.slug,
            "contractor": self.contractor,
            "rate": self.rate,
            "description": self.description or "",
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Alias":
        """Create Alias from dictionary (CSV deserialization)."""
        return cls(
            slug=data["slug"],
            contractor=data["contractor"],
            rate=int(data["rate"]),
            description=data["description"] if data.get("description") else None,
        )


@dataclass
class TimeEntry:
    """Single logged work session.

    Attributes:
        hash: Generated unique identifier
        alias: Slug of the alias the work is booked on
        minutes: Duration in minutes
        date: Day the work applies to
        message: Description of the work (optional)
        ticket: External ticket reference, e.g. "RAS-002" (optional)
        branch: VCS branch the work was done on (optional)
        timestamp: When the entry was recorded
    """

    hash: str
    alias: str
    minutes: int
    date: date
    message: Optional[str] = None
    ticket: Optional[str] = None
    branch: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.minutes <= 0:
            raise NonPositiveDuration(self.minutes)

    def amount(self, rate: int) -> int:
        """Billable amount at the given hourly rate, truncated to whole minor units."""
        return self.minutes * rate // MINUTES_PER_HOUR

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "hash": self.hash,
            "alias": self.alias,
            "minutes": self.minutes,
            "date": self.date.isoformat(),
            "message": self.message or "",
            "ticket": self.ticket or "",
            "branch": self.branch or "",
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        """Create TimeEntry from dictionary (CSV/JSON deserialization)."""
        return cls(
            hash=data["hash"],
            alias=data["alias"],
            minutes=int(data["minutes"]),
            date=date.fromisoformat(data["date"]),
            message=data["message"] if data.get("message") else None,
            ticket=data["ticket"] if data.get("ticket") else None,
            branch=data["branch"] if data.get("branch") else None,
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
