"""Terminal rendering of ledger queries."""

from typing import Optional

from rich.console import Console  # type: ignore[import-not-found]
from rich.markup import escape  # type: ignore[import-not-found]
from rich.panel import Panel  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]
from rich.text import Text  # type: ignore[import-not-found]

from bookit.analysis.query import GroupTotal
from bookit.core.models import Alias, Contractor, TimeEntry


def format_minutes(minutes: int, time_format: str = "human") -> str:
    """Format a duration in minutes.

    Args:
        minutes: Duration in minutes
        time_format: "human" (e.g. "2h 15m") or "decimal" (e.g. "2.25h")
    """
    if time_format == "decimal":
        return f"{minutes / 60:.2f}h"

    hours, rest = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {rest}m"
    return f"{rest}m"


def format_amount(amount: int, currency: str = "EUR", minor_units: int = 100) -> str:
    """Format an amount in minor units, e.g. 18000 -> "180.00 EUR"."""
    major, minor = divmod(amount, minor_units)
    width = len(str(minor_units - 1))
    if minor_units == 1:
        return f"{major} {currency}"
    return f"{major}.{minor:0{width}d} {currency}"


class ReportGenerator:
    """Render entries and totals with rich."""

    def __init__(
        self,
        console: Optional[Console] = None,
        currency: str = "EUR",
        minor_units: int = 100,
        time_format: str = "human",
    ):
        """Initialize report generator.

        Args:
            console: Rich console for output. Creates default if None.
            currency: Currency label for amounts
            minor_units: Minor units per major currency unit
            time_format: "human" or "decimal" durations
        """
        self.console = console or Console()
        self.currency = currency
        self.minor_units = minor_units
        self.time_format = time_format

    def money(self, amount: int) -> str:
        return escape(format_amount(amount, self.currency, self.minor_units))

    def duration(self, minutes: int) -> str:
        return format_minutes(minutes, self.time_format)

    def contractors_table(self, contractors: list[Contractor]) -> None:
        """Print all contractors."""
        if not contractors:
            self.console.print("[yellow]No contractors found[/yellow]")
            return

        table = Table(title="Contractors")
        table.add_column("Slug", style="cyan")
        table.add_column("Name", style="bold")
        for contractor in contractors:
            table.add_row(contractor.slug, escape(contractor.name))
        self.console.print(table)

    def aliases_table(self, aliases: list[Alias]) -> None:
        """Print aliases with their hourly rate."""
        if not aliases:
            self.console.print("[yellow]No aliases found[/yellow]")
            return

        table = Table(title="Aliases")
        table.add_column("Slug", style="cyan")
        table.add_column("Contractor", style="blue")
        table.add_column("Rate / h", style="green", justify="right")
        table.add_column("Description")
        for alias in aliases:
            table.add_row(
                alias.slug,
                alias.contractor,
                self.money(alias.rate),
                escape(alias.description or "-"),
            )
        self.console.print(table)

    def entries_table(self, entries: list[TimeEntry]) -> None:
        """Print a list of time entries."""
        if not entries:
            self.console.print("[yellow]No entries found[/yellow]")
            return

        table = Table(title=f"Time Entries (showing {len(entries)})")
        table.add_column("Hash", style="red")
        table.add_column("Date", style="cyan")
        table.add_column("Duration", style="magenta", justify="right")
        table.add_column("Alias", style="blue")
        table.add_column("Ticket", style="bold")
        table.add_column("Message")

        for entry in entries:
            table.add_row(
                entry.hash,
                entry.date.isoformat(),
                self.duration(entry.minutes),
                entry.alias,
                escape(entry.ticket or "-"),
                escape(entry.message or "No message"),
            )

        self.console.print(table)

    def entry_detail(self, entry: TimeEntry, alias: Optional[Alias] = None) -> None:
        """Print a single time entry with its billable amount."""
        content = f"""[bold]{escape(entry.message or "No message")}[/bold]

[dim]Alias:[/dim] {entry.alias}
[dim]Date:[/dim] {entry.date.isoformat()}
[dim]Duration:[/dim] {self.duration(entry.minutes)}"""

        if alias is not None:
            content += f"\n[dim]Contractor:[/dim] {alias.contractor}"
            content += f"\n[dim]Amount:[/dim] {self.money(entry.amount(alias.rate))}"
        if entry.ticket:
            content += f"\n[dim]Ticket:[/dim] {escape(entry.ticket)}"
        if entry.branch:
            content += f"\n[dim]Branch:[/dim] {escape(entry.branch)}"
        content += f"\n[dim]Booked:[/dim] {entry.timestamp.strftime('%Y-%m-%d %H:%M:%S')}"

        self.console.print(Panel(content, title=f"Entry {entry.hash}", border_style="green"))

    def alias_detail(self, alias: Alias, total: Optional[GroupTotal] = None) -> None:
        """Print an alias with the time and amount booked on it."""
        minutes = total.minutes if total else 0
        amount = total.amount if total else 0
        entries = len(total.entries) if total else 0

        content = f"""[bold]{escape(alias.description or "No description")}[/bold]

[dim]Contractor:[/dim] {alias.contractor}
[dim]Rate:[/dim] {self.money(alias.rate)} / h
[dim]Entries:[/dim] {entries}
[dim]Booked:[/dim] {self.duration(minutes)}
[dim]Amount:[/dim] {self.money(amount)}"""

        self.console.print(Panel(content, title=f"Alias {alias.slug}", border_style="blue"))

    def contractor_detail(
        self, contractor: Contractor, aliases: list[Alias], totals: list[GroupTotal]
    ) -> None:
        """Print a contractor with per-alias booked time and amounts."""
        by_alias = {t.key: t for t in totals}
        total_minutes = sum(t.minutes for t in totals)
        total_amount = sum(t.amount for t in totals)

        content = f"""[bold]{escape(contractor.name)}[/bold]

[dim]Aliases:[/dim] {len(aliases)}
[dim]Booked:[/dim] {self.duration(total_minutes)}
[dim]Amount:[/dim] {self.money(total_amount)}"""
        self.console.print(
            Panel(content, title=f"Contractor {contractor.slug}", border_style="cyan")
        )

        if not aliases:
            return

        table = Table(title=f"Aliases of {contractor.slug}")
        table.add_column("Alias", style="cyan")
        table.add_column("Rate / h", style="green", justify="right")
        table.add_column("Booked", style="magenta", justify="right")
        table.add_column("Amount", style="green", justify="right")
        for alias in aliases:
            group = by_alias.get(alias.slug)
            table.add_row(
                alias.slug,
                self.money(alias.rate),
                self.duration(group.minutes if group else 0),
                self.money(group.amount if group else 0),
            )
        self.console.print(table)

    def summary_report(
        self,
        totals: list[GroupTotal],
        group_label: str = "Alias",
        period_label: str = "All time",
    ) -> None:
        """Print per-group totals and the overall total.

        Args:
            totals: Aggregates per group, as returned by query.summarize
            group_label: Column header for the group key
            period_label: Label for the report period
        """
        if not totals:
            self.console.print("[yellow]No entries found for this period[/yellow]")
            return

        total_minutes = sum(t.minutes for t in totals)
        total_amount = sum(t.amount for t in totals)
        num_entries = sum(len(t.entries) for t in totals)

        self.console.print(f"\n[bold cyan]Bookit - {period_label}[/bold cyan]\n")

        overview_table = Table(show_header=False, box=None, padding=(0, 2))
        overview_table.add_column(style="dim")
        overview_table.add_column(style="bold")
        overview_table.add_row("Total Time:", self.duration(total_minutes))
        overview_table.add_row("Billable:", self.money(total_amount))
        overview_table.add_row("Entries:", str(num_entries))
        self.console.print(overview_table)
        self.console.print()

        table = Table(title=f"Time by {group_label}")
        table.add_column(group_label, style="cyan")
        table.add_column("Duration", style="magenta", justify="right")
        table.add_column("Amount", style="green", justify="right")
        table.add_column("% Time", justify="right")
        table.add_column("Bar", style="blue")

        for group in totals:
            pct = (group.minutes / total_minutes) * 100 if total_minutes > 0 else 0
            table.add_row(
                group.key,
                self.duration(group.minutes),
                self.money(group.amount),
                f"{pct:.1f}%",
                self._create_bar(pct),
            )

        self.console.print(table)

    def _create_bar(self, percentage: float, width: int = 25) -> Text:
        """Create a visual bar for percentage display.

        Args:
            percentage: Percentage value (0-100)
            width: Width of the bar in characters

        Returns:
            Rich Text object with colored bar
        """
        filled = int((percentage / 100) * width)
        empty = width - filled

        bar = Text()
        bar.append("█" * filled, style="blue")
        bar.append("░" * empty, style="dim")

        return bar
