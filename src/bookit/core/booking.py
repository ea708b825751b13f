"""Booking operations on top of the ledger store."""

import logging
from datetime import date, datetime
from typing import Optional

from bookit.core.errors import HashCollision
from bookit.core.identifiers import new_entry_hash
from bookit.core.models import Alias, Contractor, TimeEntry
from bookit.core.storage import LedgerStore

logger = logging.getLogger(__name__)


class Bookkeeper:
    """Creates, changes and removes ledger records."""

    def __init__(self, store: LedgerStore, backup_on_delete: bool = False):
        """Initialize bookkeeper.

        Args:
            store: Ledger store to operate on
            backup_on_delete: Snapshot the ledger before every delete
        """
        self.store = store
        self.backup_on_delete = backup_on_delete

    def _before_delete(self) -> None:
        if self.backup_on_delete:
            self.store.backup()

    # Contractors

    def add_contractor(self, slug: str, name: str) -> Contractor:
        """Register a new contractor.

        Raises:
            InvalidIdentifier: If the slug is not a valid identifier
            EmptyName: If the name is blank
            DuplicateKey: If the slug is already taken
        """
        contractor = Contractor(slug=slug, name=name)
        self.store.insert_contractor(contractor)
        return contractor

    def rename_contractor(self, slug: str, name: str) -> Contractor:
        """Change the display name of a contractor. The slug stays."""
        contractor = self.store.get_contractor(slug)
        renamed = Contractor(slug=contractor.slug, name=name)
        self.store.update_contractor(renamed)
        return renamed

    def remove_contractor(self, slug: str) -> None:
        """Delete a contractor without aliases."""
        self.store.get_contractor(slug)
        self._before_delete()
        self.store.delete_contractor(slug)

    # Aliases

    def add_alias(
        self,
        slug: str,
        contractor: str,
        rate: int,
        description: Optional[str] = None,
    ) -> Alias:
        """Register a new alias under an existing contractor.

        Args:
            slug: Alias identifier
            contractor: Slug of the owning contractor
            rate: Currency minor units per hour
            description: Short description of the engagement

        Returns:
            Created alias

        Raises:
            NegativeRate: If rate is below zero
            DuplicateKey: If the slug is already taken
            UnknownContractor: If the contractor does not exist
        """
        alias = Alias(slug=slug, contractor=contractor, rate=rate, description=description)
        self.store.insert_alias(alias)
        return alias

    def update_alias(
        self,
        slug: str,
        contractor: Optional[str] = None,
        rate: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Alias:
        """Change the contractor, rate or description of an alias.

        None leaves a field unchanged; an empty description clears it.

        Raises:
            NotFound: If no alias has this slug
            UnknownContractor: If the new contractor does not exist
            NegativeRate: If the new rate is below zero
        """
        alias = self.store.get_alias(slug)
        if description is not None:
            new_description = description or None
        else:
            new_description = alias.description
        updated = Alias(
            slug=alias.slug,
            contractor=alias.contractor if contractor is None else contractor,
            rate=alias.rate if rate is None else rate,
            description=new_description,
        )
        self.store.update_alias(updated)
        if updated.rate != alias.rate:
            logger.info(f"Rate of {slug} changed from {alias.rate} to {updated.rate}")
        if updated.contractor != alias.contractor:
            logger.info(f"Alias {slug} moved from {alias.contractor} to {updated.contractor}")
        return updated

    def set_rate(self, slug: str, rate: int) -> Alias:
        """Change the hourly rate of an alias.

        Amounts are computed from the current rate, so this reprices every entry
        booked on the alias, including past ones.
        """
        return self.update_alias(slug, rate=rate)

    def remove_alias(self, slug: str) -> None:
        """Delete an alias without booked hours."""
        self.store.get_alias(slug)
        self._before_delete()
        self.store.delete_alias(slug)

    # Time entries

    def book(
        self,
        alias: str,
        minutes: int,
        day: Optional[date] = None,
        message: Optional[str] = None,
        ticket: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> TimeEntry:
        """Book a work session on an alias.

        Args:
            alias: Alias slug to book on
            minutes: Duration in minutes
            day: Day the work applies to. Defaults to today.
            message: Description of the work
            ticket: External ticket reference
            branch: VCS branch the work was done on

        Returns:
            Created entry

        Raises:
            NonPositiveDuration: If minutes is not positive
            UnknownAlias: If the alias does not exist
        """
        entry = TimeEntry(
            hash=self._generate_hash(),
            alias=alias,
            minutes=minutes,
            date=day or date.today(),
            message=message,
            ticket=ticket,
            branch=branch,
            timestamp=datetime.now(),
        )
        self.store.insert_time_entry(entry)
        return entry

    def _generate_hash(self) -> str:
        existing = self.store.entry_hashes()
        try:
            return new_entry_hash(existing)
        except HashCollision as e:
            logger.warning(f"{e}, regenerating")
            return new_entry_hash(existing)

    def correct_entry(
        self,
        entry_hash: str,
        message: Optional[str] = None,
        ticket: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> TimeEntry:
        """Correct the free-text fields of a booked entry.

        None leaves a field unchanged; an empty string clears it. Hash, alias,
        duration, date and timestamp are never changed.

        Raises:
            NotFound: If no entry has this hash
        """
        entry = self.store.get_time_entry(entry_hash)

        if message is not None:
            entry.message = message or None
        if ticket is not None:
            entry.ticket = ticket or None
        if branch is not None:
            entry.branch = branch or None

        self.store.update_time_entry(entry)
        return entry

    def remove_entry(self, entry_hash: str) -> None:
        """Delete a booked entry."""
        self.store.get_time_entry(entry_hash)
        self._before_delete()
        self.store.delete_time_entry(entry_hash)
