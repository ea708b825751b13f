"""Read-only queries and aggregates over the ledger.

Billable amounts are resolved from the alias rate at query time and computed
per entry as ``minutes * rate // 60``: the fractional minor unit of each entry
is truncated before summing, so the total over a set always equals the sum of
the totals over any partition of it.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Optional

from bookit.core.errors import UnknownAlias
from bookit.core.models import TimeEntry
from bookit.core.storage import LedgerStore

SORT_KEYS = ("date", "timestamp")
GROUP_KEYS = ("alias", "contractor")


@dataclass(frozen=True)
class Criteria:
    """Filter for time entries. Fields left as None impose no constraint.

    Attributes:
        contractor: Only entries booked on aliases of this contractor
        alias: Only entries booked on this alias
        date_from: Only entries on or after this day
        date_to: Only entries on or before this day
        ticket: Only entries referencing this ticket
    """

    contractor: Optional[str] = None
    alias: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    ticket: Optional[str] = None


@dataclass
class GroupTotal:
    """Aggregate for one alias or contractor."""

    key: str
    entries: list[TimeEntry]
    minutes: int
    amount: int


def _chronological(entry: TimeEntry) -> tuple:
    return (entry.date, entry.timestamp, entry.hash)


def _alias_index(store: LedgerStore) -> dict:
    return {alias.slug: alias for alias in store.list_aliases()}


def filter_entries(store: LedgerStore, criteria: Optional[Criteria] = None) -> list[TimeEntry]:
    """Get time entries matching the criteria.

    Args:
        store: Ledger to read from
        criteria: Filter to apply. None matches everything.

    Returns:
        Matching entries, ascending by date then timestamp
    """
    criteria = criteria or Criteria()
    entries = store.list_time_entries()

    contractor_aliases: Optional[set[str]] = None
    if criteria.contractor is not None:
        contractor_aliases = {
            alias.slug for alias in store.list_aliases(contractor=criteria.contractor)
        }

    filtered = []
    for entry in entries:
        if contractor_aliases is not None and entry.alias not in contractor_aliases:
            continue
        if criteria.alias is not None and entry.alias != criteria.alias:
            continue
        if criteria.date_from is not None and entry.date < criteria.date_from:
            continue
        if criteria.date_to is not None and entry.date > criteria.date_to:
            continue
        if criteria.ticket is not None and entry.ticket != criteria.ticket:
            continue
        filtered.append(entry)

    return sorted(filtered, key=_chronological)


def sort_entries(entries: Iterable[TimeEntry], key: str = "date") -> list[TimeEntry]:
    """Order entries for display.

    Args:
        entries: Entries to sort
        key: "date" for chronological order, "timestamp" for most recently booked first

    Raises:
        ValueError: If the sort key is unknown
    """
    if key == "date":
        return sorted(entries, key=_chronological)
    if key == "timestamp":
        return sorted(entries, key=lambda e: (e.timestamp, e.hash), reverse=True)
    raise ValueError(f"Unknown sort key '{key}' (use one of: {', '.join(SORT_KEYS)})")


def total_minutes(entries: Iterable[TimeEntry]) -> int:
    """Sum of minutes over the entries. 0 for no entries."""
    return sum(entry.minutes for entry in entries)


def billable_amount(store: LedgerStore, entries: Iterable[TimeEntry]) -> int:
    """Billable amount in currency minor units at current alias rates.

    Raises:
        UnknownAlias: If an entry is booked on an alias that no longer exists
    """
    aliases = _alias_index(store)
    amount = 0
    for entry in entries:
        alias = aliases.get(entry.alias)
        if alias is None:
            raise UnknownAlias(entry.alias)
        amount += entry.amount(alias.rate)
    return amount


def group_by_alias(entries: Iterable[TimeEntry]) -> dict[str, list[TimeEntry]]:
    """Partition entries by alias slug, keeping their order within each group."""
    groups: dict[str, list[TimeEntry]] = defaultdict(list)
    for entry in entries:
        groups[entry.alias].append(entry)
    return dict(groups)


def group_by_contractor(
    store: LedgerStore, entries: Iterable[TimeEntry]
) -> dict[str, list[TimeEntry]]:
    """Partition entries by the contractor owning their alias.

    Raises:
        UnknownAlias: If an entry is booked on an alias that no longer exists
    """
    aliases = _alias_index(store)
    groups: dict[str, list[TimeEntry]] = defaultdict(list)
    for entry in entries:
        alias = aliases.get(entry.alias)
        if alias is None:
            raise UnknownAlias(entry.alias)
        groups[alias.contractor].append(entry)
    return dict(groups)


def summarize(
    store: LedgerStore, entries: Iterable[TimeEntry], by: str = "alias"
) -> list[GroupTotal]:
    """Totals per alias or contractor, largest amount first.

    Args:
        store: Ledger used to resolve rates and contractors
        entries: Entries to aggregate
        by: "alias" or "contractor"

    Raises:
        ValueError: If the grouping key is unknown
    """
    entries = list(entries)
    if by == "alias":
        groups = group_by_alias(entries)
    elif by == "contractor":
        groups = group_by_contractor(store, entries)
    else:
        raise ValueError(f"Unknown grouping '{by}' (use one of: {', '.join(GROUP_KEYS)})")

    totals = [
        GroupTotal(
            key=key,
            entries=group,
            minutes=total_minutes(group),
            amount=billable_amount(store, group),
        )
        for key, group in groups.items()
    ]
    return sorted(totals, key=lambda t: (-t.amount, -t.minutes, t.key))
