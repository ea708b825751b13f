"""Core ledger functionality."""

from bookit.core.booking import Bookkeeper
from bookit.core.models import Alias, Contractor, TimeEntry
from bookit.core.storage import LedgerStore

__all__ = ["Alias", "Bookkeeper", "Contractor", "LedgerStore", "TimeEntry"]
