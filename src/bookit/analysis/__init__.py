"""Queries, aggregates and reports over the ledger."""

from bookit.analysis.query import (
    Criteria,
    billable_amount,
    filter_entries,
    group_by_alias,
    group_by_contractor,
    total_minutes,
)

__all__ = [
    "Criteria",
    "billable_amount",
    "filter_entries",
    "group_by_alias",
    "group_by_contractor",
    "total_minutes",
]
