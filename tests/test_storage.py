"""Tests for the ledger store."""

from datetime import date
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from bookit.core.errors import (
    DuplicateKey,
    NotFound,
    ReferencedByAlias,
    ReferencedByTimeEntry,
    UnknownAlias,
    UnknownContractor,
)
from bookit.core.models import Alias, Contractor, TimeEntry
from bookit.core.storage import LedgerStore


def make_entry(entry_hash: str = "e1", alias: str = "acme-dev", minutes: int = 120) -> TimeEntry:
    return TimeEntry(hash=entry_hash, alias=alias, minutes=minutes, date=date(2024, 1, 1))


@pytest.fixture  # type: ignore[misc]
def acme_store(store: LedgerStore) -> LedgerStore:
    """Store with contractor acme and alias acme-dev."""
    store.insert_contractor(Contractor(slug="acme", name="Acme Inc"))
    store.insert_alias(Alias(slug="acme-dev", contractor="acme", rate=9000))
    return store


class TestInitialization:
    """Test store setup."""

    def test_creates_directories(self, store: LedgerStore) -> None:
        """Test that initialization creates required directories."""
        assert store.data_dir.exists()
        assert store.backup_dir.exists()

    def test_creates_csv_files_with_headers(self, store: LedgerStore) -> None:
        """Test that the three tables are created with headers."""
        with open(store.contractors_file) as f:
            assert f.readline().strip() == "slug,name"
        with open(store.aliases_file) as f:
            assert f.readline().strip() == "slug,contractor,rate,description"
        with open(store.timelog_file) as f:
            assert f.readline().strip() == (
                "hash,alias,minutes,date,message,ticket,branch,timestamp"
            )

    def test_reopen_keeps_data(self, acme_store: LedgerStore) -> None:
        """Test that a second store on the same directory sees existing data."""
        reopened = LedgerStore(acme_store.data_dir)
        assert [c.slug for c in reopened.list_contractors()] == ["acme"]


class TestContractors:
    """Test contractor operations."""

    def test_insert_and_get(self, store: LedgerStore) -> None:
        """Test saving and loading a contractor."""
        store.insert_contractor(Contractor(slug="acme", name="Acme Inc"))

        assert store.get_contractor("acme") == Contractor(slug="acme", name="Acme Inc")
        assert store.has_contractor("acme")

    def test_duplicate_rejected(self, store: LedgerStore) -> None:
        """Test that a second contractor with the same slug is rejected."""
        store.insert_contractor(Contractor(slug="acme", name="Acme Inc"))

        with pytest.raises(DuplicateKey):
            store.insert_contractor(Contractor(slug="acme", name="Other"))
        assert store.get_contractor("acme").name == "Acme Inc"

    def test_get_missing(self, store: LedgerStore) -> None:
        """Test that a missing contractor raises NotFound."""
        with pytest.raises(NotFound):
            store.get_contractor("nobody")

    def test_list_sorted(self, store: LedgerStore) -> None:
        """Test that contractors are listed by slug."""
        store.insert_contractor(Contractor(slug="zeta", name="Zeta"))
        store.insert_contractor(Contractor(slug="acme", name="Acme"))

        assert [c.slug for c in store.list_contractors()] == ["acme", "zeta"]

    def test_update(self, acme_store: LedgerStore) -> None:
        """Test renaming a contractor."""
        acme_store.update_contractor(Contractor(slug="acme", name="Acme Corporation"))
        assert acme_store.get_contractor("acme").name == "Acme Corporation"

    def test_update_missing(self, store: LedgerStore) -> None:
        """Test that updating a missing contractor raises NotFound."""
        with pytest.raises(NotFound):
            store.update_contractor(Contractor(slug="acme", name="Acme"))

    def test_delete_referenced_rejected(self, acme_store: LedgerStore) -> None:
        """Test that a contractor with aliases cannot be deleted."""
        with pytest.raises(ReferencedByAlias) as exc_info:
            acme_store.delete_contractor("acme")

        assert exc_info.value.aliases == ["acme-dev"]
        assert acme_store.has_contractor("acme")

    def test_delete_after_aliases_removed(self, acme_store: LedgerStore) -> None:
        """Test that deletion succeeds once dependent aliases are gone."""
        acme_store.delete_alias("acme-dev")
        acme_store.delete_contractor("acme")

        assert acme_store.list_contractors() == []

    def test_delete_missing(self, store: LedgerStore) -> None:
        """Test that deleting a missing contractor raises NotFound."""
        with pytest.raises(NotFound):
            store.delete_contractor("nobody")


class TestAliases:
    """Test alias operations."""

    def test_insert_requires_contractor(self, store: LedgerStore) -> None:
        """Test that an alias before its contractor fails with UnknownContractor."""
        with pytest.raises(UnknownContractor):
            store.insert_alias(Alias(slug="acme-dev", contractor="acme", rate=9000))
        assert store.list_aliases() == []

    def test_insert_and_get(self, acme_store: LedgerStore) -> None:
        """Test loading an inserted alias."""
        alias = acme_store.get_alias("acme-dev")
        assert alias.contractor == "acme"
        assert alias.rate == 9000

    def test_duplicate_rejected(self, acme_store: LedgerStore) -> None:
        """Test that a second alias with the same slug is rejected."""
        with pytest.raises(DuplicateKey):
            acme_store.insert_alias(Alias(slug="acme-dev", contractor="acme", rate=1))
        assert acme_store.get_alias("acme-dev").rate == 9000

    def test_list_by_contractor(self, acme_store: LedgerStore) -> None:
        """Test filtering aliases by contractor."""
        acme_store.insert_contractor(Contractor(slug="globex", name="Globex"))
        acme_store.insert_alias(Alias(slug="globex-ops", contractor="globex", rate=5000))

        assert [a.slug for a in acme_store.list_aliases()] == ["acme-dev", "globex-ops"]
        assert [a.slug for a in acme_store.list_aliases(contractor="globex")] == ["globex-ops"]

    def test_update_rate(self, acme_store: LedgerStore) -> None:
        """Test replacing an alias record."""
        acme_store.update_alias(Alias(slug="acme-dev", contractor="acme", rate=10000))
        assert acme_store.get_alias("acme-dev").rate == 10000

    def test_update_to_unknown_contractor(self, acme_store: LedgerStore) -> None:
        """Test that an update cannot break the contractor reference."""
        with pytest.raises(UnknownContractor):
            acme_store.update_alias(Alias(slug="acme-dev", contractor="nobody", rate=1))
        assert acme_store.get_alias("acme-dev").contractor == "acme"

    def test_delete_referenced_rejected(self, acme_store: LedgerStore) -> None:
        """Test that an alias with booked hours cannot be deleted."""
        acme_store.insert_time_entry(make_entry())

        with pytest.raises(ReferencedByTimeEntry) as exc_info:
            acme_store.delete_alias("acme-dev")

        assert exc_info.value.count == 1
        assert acme_store.has_alias("acme-dev")

    def test_delete_missing(self, store: LedgerStore) -> None:
        """Test that deleting a missing alias raises NotFound."""
        with pytest.raises(NotFound):
            store.delete_alias("nobody")


class TestTimeEntries:
    """Test time entry operations."""

    def test_insert_requires_alias(self, store: LedgerStore) -> None:
        """Test that an entry on an unknown alias fails with UnknownAlias."""
        with pytest.raises(UnknownAlias):
            store.insert_time_entry(make_entry())
        assert store.list_time_entries() == []

    def test_insert_and_get(self, acme_store: LedgerStore) -> None:
        """Test loading an inserted entry."""
        entry = make_entry()
        acme_store.insert_time_entry(entry)

        assert acme_store.get_time_entry("e1") == entry
        assert acme_store.entry_hashes() == {"e1"}

    def test_duplicate_rejected(self, acme_store: LedgerStore) -> None:
        """Test that a second entry with the same hash is rejected."""
        acme_store.insert_time_entry(make_entry())

        with pytest.raises(DuplicateKey):
            acme_store.insert_time_entry(make_entry(minutes=5))
        assert acme_store.get_time_entry("e1").minutes == 120

    def test_optional_fields_roundtrip(self, acme_store: LedgerStore) -> None:
        """Test that messages with commas and quotes survive the CSV file."""
        entry = make_entry()
        entry.message = 'Fixed "parser", again'
        entry.ticket = "RAS-002"
        acme_store.insert_time_entry(entry)

        loaded = acme_store.get_time_entry("e1")
        assert loaded.message == 'Fixed "parser", again'
        assert loaded.ticket == "RAS-002"
        assert loaded.branch is None

    def test_update(self, acme_store: LedgerStore) -> None:
        """Test replacing an entry keeps its position."""
        acme_store.insert_time_entry(make_entry("e1"))
        acme_store.insert_time_entry(make_entry("e2"))

        changed = make_entry("e1")
        changed.message = "Corrected"
        acme_store.update_time_entry(changed)

        entries = acme_store.list_time_entries()
        assert [e.hash for e in entries] == ["e1", "e2"]
        assert entries[0].message == "Corrected"

    def test_update_missing(self, acme_store: LedgerStore) -> None:
        """Test that updating a missing entry raises NotFound."""
        with pytest.raises(NotFound):
            acme_store.update_time_entry(make_entry())

    def test_delete(self, acme_store: LedgerStore) -> None:
        """Test deleting an entry."""
        acme_store.insert_time_entry(make_entry())
        acme_store.delete_time_entry("e1")

        assert acme_store.list_time_entries() == []
        with pytest.raises(NotFound):
            acme_store.get_time_entry("e1")

    def test_delete_missing(self, store: LedgerStore) -> None:
        """Test that deleting a missing entry raises NotFound."""
        with pytest.raises(NotFound):
            store.delete_time_entry("nope")


class TestAtomicity:
    """Test that failed operations leave no partial state."""

    def test_failed_insert_leaves_files_untouched(self, acme_store: LedgerStore) -> None:
        """Test that a rejected insert does not rewrite the table."""
        acme_store.insert_time_entry(make_entry())
        before = acme_store.timelog_file.read_bytes()

        with pytest.raises(UnknownAlias):
            acme_store.insert_time_entry(make_entry("e2", alias="nobody"))

        assert acme_store.timelog_file.read_bytes() == before

    def test_no_temp_files_left_behind(self, acme_store: LedgerStore) -> None:
        """Test that atomic writes clean up their temp files."""
        acme_store.insert_time_entry(make_entry())
        assert list(acme_store.data_dir.glob("*.tmp")) == []


class TestBackup:
    """Test ledger backups."""

    def test_backup_copies_all_tables(self, acme_store: LedgerStore) -> None:
        """Test that backups contain every data file."""
        path = acme_store.backup("before-cleanup")

        assert path == acme_store.backup_dir / "before-cleanup"
        assert sorted(p.name for p in Path(path).iterdir()) == [
            "aliases.csv",
            "contractors.csv",
            "timelog.csv",
        ]
