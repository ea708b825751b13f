"""CSV ledger store with atomic writes and referential checks."""

import csv
import logging
import os
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from bookit.core.errors import (
    DuplicateKey,
    NotFound,
    ReferencedByAlias,
    ReferencedByTimeEntry,
    UnknownAlias,
    UnknownContractor,
)
from bookit.core.models import Alias, Contractor, TimeEntry

logger = logging.getLogger(__name__)

CONTRACTOR_FIELDS = ["slug", "name"]
ALIAS_FIELDS = ["slug", "contractor", "rate", "description"]
TIMELOG_FIELDS = [
    "hash",
    "alias",
    "minutes",
    "date",
    "message",
    "ticket",
    "branch",
    "timestamp",
]


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_NBLCK if exclusive else msvcrt.LK_NBRLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way."""
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


class LedgerStore:
    """Keyed storage for contractors, aliases and time entries.

    Every mutating operation validates against the current state first and then
    rewrites exactly one CSV file atomically, so a failed operation changes nothing.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the store.

        Args:
            data_dir: Custom data directory. Defaults to ~/.bookit/data
        """
        if data_dir is None:
            data_dir = Path.home() / ".bookit" / "data"

        self.data_dir = data_dir
        self.contractors_file = self.data_dir / "contractors.csv"
        self.aliases_file = self.data_dir / "aliases.csv"
        self.timelog_file = self.data_dir / "timelog.csv"
        self.backup_dir = self.data_dir.parent / "backups"

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)

        self._initialize_files()

    def _initialize_files(self) -> None:
        """Create CSV files with headers if they don't exist."""
        for file_path, fieldnames in (
            (self.contractors_file, CONTRACTOR_FIELDS),
            (self.aliases_file, ALIAS_FIELDS),
            (self.timelog_file, TIMELOG_FIELDS),
        ):
            if not file_path.exists():
                self._write_csv_atomic(file_path, fieldnames, [])

    def _write_csv_atomic(
        self, file_path: Path, fieldnames: list[str], rows: list[dict[str, Any]]
    ) -> None:
        """Write CSV file atomically using temporary file and rename.

        Args:
            file_path: Target file path
            fieldnames: CSV field names
            rows: List of row dictionaries
        """
        temp_file = file_path.with_suffix(".tmp")

        try:
            with open(temp_file, "w", newline="", encoding="utf-8") as f:
                _lock_file(f, exclusive=True)

                writer = csv.DictWriter(f, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(rows)

                f.flush()
                os.fsync(f.fileno())

                _unlock_file(f)

            temp_file.replace(file_path)

        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def _read_csv(self, file_path: Path) -> list[dict[str, Any]]:
        """Read CSV file with a shared lock.

        Args:
            file_path: CSV file to read

        Returns:
            List of row dictionaries
        """
        if not file_path.exists():
            return []

        with open(file_path, newline="", encoding="utf-8") as f:
            _lock_file(f, exclusive=False)

            try:
                reader = csv.DictReader(f)
                rows = list(reader)
            finally:
                _unlock_file(f)

        return rows

    def backup(self, label: Optional[str] = None) -> Path:
        """Create backup of all data files.

        Args:
            label: Optional label for backup. Defaults to timestamp

        Returns:
            Path to backup directory
        """
        if label is None:
            label = datetime.now().strftime("%Y%m%d_%H%M%S")

        backup_path = self.backup_dir / label
        backup_path.mkdir(parents=True, exist_ok=True)

        for file in [self.contractors_file, self.aliases_file, self.timelog_file]:
            if file.exists():
                shutil.copy2(file, backup_path / file.name)

        logger.info(f"Ledger backed up to {backup_path}")
        return backup_path

    # Contractor operations

    def list_contractors(self) -> list[Contractor]:
        """Load all contractors, ordered by slug."""
        rows = self._read_csv(self.contractors_file)
        return sorted((Contractor.from_dict(row) for row in rows), key=lambda c: c.slug)

    def get_contractor(self, slug: str) -> Contractor:
        """Get contractor by slug.

        Raises:
            NotFound: If no contractor has this slug
        """
        for row in self._read_csv(self.contractors_file):
            if row["slug"] == slug:
                return Contractor.from_dict(row)
        raise NotFound("Contractor", slug)

    def has_contractor(self, slug: str) -> bool:
        """Check whether a contractor with this slug exists."""
        return any(row["slug"] == slug for row in self._read_csv(self.contractors_file))

    def insert_contractor(self, contractor: Contractor) -> None:
        """Insert a new contractor.

        Raises:
            DuplicateKey: If the slug is already taken
        """
        rows = self._read_csv(self.contractors_file)
        if any(row["slug"] == contractor.slug for row in rows):
            raise DuplicateKey("Contractor", contractor.slug)

        rows.append(contractor.to_dict())
        self._write_csv_atomic(self.contractors_file, CONTRACTOR_FIELDS, rows)
        logger.info(f"Inserted contractor {contractor.slug}")

    def update_contractor(self, contractor: Contractor) -> None:
        """Replace an existing contractor record.

        Raises:
            NotFound: If no contractor has this slug
        """
        rows = self._read_csv(self.contractors_file)
        for i, row in enumerate(rows):
            if row["slug"] == contractor.slug:
                rows[i] = contractor.to_dict()
                break
        else:
            raise NotFound("Contractor", contractor.slug)

        self._write_csv_atomic(self.contractors_file, CONTRACTOR_FIELDS, rows)
        logger.info(f"Updated contractor {contractor.slug}")

    def delete_contractor(self, slug: str) -> None:
        """Delete a contractor that no alias refers to.

        Raises:
            NotFound: If no contractor has this slug
            ReferencedByAlias: If aliases still point at the contractor
        """
        rows = self._read_csv(self.contractors_file)
        remaining = [row for row in rows if row["slug"] != slug]
        if len(remaining) == len(rows):
            raise NotFound("Contractor", slug)

        dependents = [
            row["slug"] for row in self._read_csv(self.aliases_file) if row["contractor"] == slug
        ]
        if dependents:
            raise ReferencedByAlias(slug, dependents)

        self._write_csv_atomic(self.contractors_file, CONTRACTOR_FIELDS, remaining)
        logger.info(f"Deleted contractor {slug}")

    # Alias operations

    def list_aliases(self, contractor: Optional[str] = None) -> list[Alias]:
        """Load aliases ordered by slug.

        Args:
            contractor: Only return aliases of this contractor
        """
        rows = self._read_csv(self.aliases_file)
        aliases = [Alias.from_dict(row) for row in rows]
        if contractor is not None:
            aliases = [a for a in aliases if a.contractor == contractor]
        return sorted(aliases, key=lambda a: a.slug)

    def get_alias(self, slug: str) -> Alias:
        """Get alias by slug.

        Raises:
            NotFound: If no alias has this slug
        """
        for row in self._read_csv(self.aliases_file):
            if row["slug"] == slug:
                return Alias.from_dict(row)
        raise NotFound("Alias", slug)

    def has_alias(self, slug: str) -> bool:
        """Check whether an alias with this slug exists."""
        return any(row["slug"] == slug for row in self._read_csv(self.aliases_file))

    def insert_alias(self, alias: Alias) -> None:
        """Insert a new alias under an existing contractor.

        Raises:
            DuplicateKey: If the slug is already taken
            UnknownContractor: If the contractor does not exist
        """
        rows = self._read_csv(self.aliases_file)
        if any(row["slug"] == alias.slug for row in rows):
            raise DuplicateKey("Alias", alias.slug)
        if not self.has_contractor(alias.contractor):
            raise UnknownContractor(alias.contractor)

        rows.append(alias.to_dict())
        self._write_csv_atomic(self.aliases_file, ALIAS_FIELDS, rows)
        logger.info(f"Inserted alias {alias.slug} for contractor {alias.contractor}")

    def update_alias(self, alias: Alias) -> None:
        """Replace an existing alias record.

        Raises:
            NotFound: If no alias has this slug
            UnknownContractor: If the contractor does not exist
        """
        rows = self._read_csv(self.aliases_file)
        for i, row in enumerate(rows):
            if row["slug"] == alias.slug:
                index = i
                break
        else:
            raise NotFound("Alias", alias.slug)
        if not self.has_contractor(alias.contractor):
            raise UnknownContractor(alias.contractor)

        rows[index] = alias.to_dict()
        self._write_csv_atomic(self.aliases_file, ALIAS_FIELDS, rows)
        logger.info(f"Updated alias {alias.slug}")

    def delete_alias(self, slug: str) -> None:
        """Delete an alias that has no booked time entries.

        Raises:
            NotFound: If no alias has this slug
            ReferencedByTimeEntry: If time entries are booked on the alias
        """
        rows = self._read_csv(self.aliases_file)
        remaining = [row for row in rows if row["slug"] != slug]
        if len(remaining) == len(rows):
            raise NotFound("Alias", slug)

        booked = sum(1 for row in self._read_csv(self.timelog_file) if row["alias"] == slug)
        if booked:
            raise ReferencedByTimeEntry(slug, booked)

        self._write_csv_atomic(self.aliases_file, ALIAS_FIELDS, remaining)
        logger.info(f"Deleted alias {slug}")

    # Time entry operations

    def list_time_entries(self) -> list[TimeEntry]:
        """Load all time entries in file order."""
        rows = self._read_csv(self.timelog_file)
        logger.debug(f"Loaded {len(rows)} time entries")
        return [TimeEntry.from_dict(row) for row in rows]

    def entry_hashes(self) -> set[str]:
        """Hashes currently in use by time entries."""
        return {row["hash"] for row in self._read_csv(self.timelog_file)}

    def get_time_entry(self, entry_hash: str) -> TimeEntry:
        """Get time entry by hash.

        Raises:
            NotFound: If no entry has this hash
        """
        for row in self._read_csv(self.timelog_file):
            if row["hash"] == entry_hash:
                return TimeEntry.from_dict(row)
        raise NotFound("Time entry", entry_hash)

    def insert_time_entry(self, entry: TimeEntry) -> None:
        """Insert a new time entry on an existing alias.

        Raises:
            DuplicateKey: If the hash is already taken
            UnknownAlias: If the alias does not exist
        """
        rows = self._read_csv(self.timelog_file)
        if any(row["hash"] == entry.hash for row in rows):
            raise DuplicateKey("Time entry", entry.hash)
        if not self.has_alias(entry.alias):
            raise UnknownAlias(entry.alias)

        rows.append(entry.to_dict())
        self._write_csv_atomic(self.timelog_file, TIMELOG_FIELDS, rows)
        logger.info(f"Booked {entry.minutes} minutes on {entry.alias} as {entry.hash}")

    def update_time_entry(self, entry: TimeEntry) -> None:
        """Replace an existing time entry record, keeping its position.

        Raises:
            NotFound: If no entry has this hash
            UnknownAlias: If the alias does not exist
        """
        rows = self._read_csv(self.timelog_file)
        for i, row in enumerate(rows):
            if row["hash"] == entry.hash:
                index = i
                break
        else:
            raise NotFound("Time entry", entry.hash)
        if not self.has_alias(entry.alias):
            raise UnknownAlias(entry.alias)

        rows[index] = entry.to_dict()
        self._write_csv_atomic(self.timelog_file, TIMELOG_FIELDS, rows)
        logger.info(f"Updated time entry {entry.hash}")

    def delete_time_entry(self, entry_hash: str) -> None:
        """Delete a time entry by hash.

        Raises:
            NotFound: If no entry has this hash
        """
        rows = self._read_csv(self.timelog_file)
        remaining = [row for row in rows if row["hash"] != entry_hash]
        if len(remaining) == len(rows):
            raise NotFound("Time entry", entry_hash)

        self._write_csv_atomic(self.timelog_file, TIMELOG_FIELDS, remaining)
        logger.info(f"Deleted time entry {entry_hash}")
