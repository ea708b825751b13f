"""Tests for core data models."""

from datetime import date, datetime

import pytest

from bookit.core.errors import EmptyName, InvalidIdentifier, NegativeRate, NonPositiveDuration
from bookit.core.models import Alias, Contractor, TimeEntry


class TestContractor:
    """Test Contractor model."""

    def test_contractor_creation(self) -> None:
        """Test basic contractor creation."""
        contractor = Contractor(slug="acme", name="Acme Inc")

        assert contractor.slug == "acme"
        assert contractor.name == "Acme Inc"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name_rejected(self, name: str) -> None:
        """Test that a blank name raises EmptyName."""
        with pytest.raises(EmptyName):
            Contractor(slug="acme", name=name)

    def test_invalid_slug_rejected(self) -> None:
        """Test that the slug goes through identifier validation."""
        with pytest.raises(InvalidIdentifier):
            Contractor(slug="Acme Inc", name="Acme Inc")

    def test_dict_roundtrip(self) -> None:
        """Test conversion to and from dictionary."""
        contractor = Contractor(slug="acme", name="Acme Inc")
        assert Contractor.from_dict(contractor.to_dict()) == contractor


class TestAlias:
    """Test Alias model."""

    def test_alias_creation(self) -> None:
        """Test alias creation with defaults."""
        alias = Alias(slug="acme-dev", contractor="acme", rate=9000)

        assert alias.slug == "acme-dev"
        assert alias.contractor == "acme"
        assert alias.rate == 9000
        assert alias.description is None

    def test_zero_rate_allowed(self) -> None:
        """Test that pro-bono aliases are valid."""
        assert Alias(slug="free", contractor="acme", rate=0).rate == 0

    def test_negative_rate_rejected(self) -> None:
        """Test that a negative rate raises NegativeRate."""
        with pytest.raises(NegativeRate):
            Alias(slug="acme-dev", contractor="acme", rate=-1)

    def test_unknown_contractor_not_checked(self) -> None:
        """Test that the model does not look up the contractor."""
        alias = Alias(slug="ghost", contractor="nobody", rate=100)
        assert alias.contractor == "nobody"

    def test_from_dict_parses_csv_strings(self) -> None:
        """Test deserialization of CSV row values."""
        alias = Alias.from_dict(
            {"slug": "acme-dev", "contractor": "acme", "rate": "9000", "description": ""}
        )

        assert alias.rate == 9000
        assert alias.description is None


class TestTimeEntry:
    """Test TimeEntry model."""

    def test_entry_creation(self) -> None:
        """Test entry creation with optional fields unset."""
        entry = TimeEntry(hash="e1", alias="acme-dev", minutes=120, date=date(2024, 1, 1))

        assert entry.minutes == 120
        assert entry.message is None
        assert entry.ticket is None
        assert entry.branch is None
        assert isinstance(entry.timestamp, datetime)

    @pytest.mark.parametrize("minutes", [0, -15])
    def test_non_positive_duration_rejected(self, minutes: int) -> None:
        """Test that zero and negative durations raise NonPositiveDuration."""
        with pytest.raises(NonPositiveDuration):
            TimeEntry(hash="e1", alias="acme-dev", minutes=minutes, date=date(2024, 1, 1))

    def test_amount(self) -> None:
        """Test billable amount for whole hours."""
        entry = TimeEntry(hash="e1", alias="acme-dev", minutes=120, date=date(2024, 1, 1))
        assert entry.amount(9000) == 18000

    def test_amount_truncates_partial_units(self) -> None:
        """Test that fractional minor units are truncated."""
        entry = TimeEntry(hash="e1", alias="acme-dev", minutes=1, date=date(2024, 1, 1))
        # 1 * 100 / 60 = 1.67
        assert entry.amount(100) == 1

    def test_dict_roundtrip(self) -> None:
        """Test conversion to and from dictionary."""
        entry = TimeEntry(
            hash="abc123",
            alias="acme-dev",
            minutes=45,
            date=date(2024, 1, 2),
            message="Code review",
            ticket="RAS-002",
            branch="feature/RAS-002",
            timestamp=datetime(2024, 1, 2, 17, 30, 0),
        )

        data = entry.to_dict()
        assert data["date"] == "2024-01-02"
        assert data["timestamp"] == "2024-01-02T17:30:00"
        assert TimeEntry.from_dict(data) == entry

    def test_empty_optional_fields_become_none(self) -> None:
        """Test that empty CSV cells load as None."""
        entry = TimeEntry.from_dict(
            {
                "hash": "abc123",
                "alias": "acme-dev",
                "minutes": "30",
                "date": "2024-01-02",
                "message": "",
                "ticket": "",
                "branch": "",
                "timestamp": "2024-01-02T17:30:00",
            }
        )

        assert entry.minutes == 30
        assert entry.message is None
        assert entry.ticket is None
        assert entry.branch is None
