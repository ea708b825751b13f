"""Main CLI application."""

import json
import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape

from bookit import __version__
from bookit.analysis.query import (
    GROUP_KEYS,
    SORT_KEYS,
    Criteria,
    billable_amount,
    filter_entries,
    sort_entries,
    summarize,
    total_minutes,
)
from bookit.analysis.reports import ReportGenerator, format_amount, format_minutes
from bookit.cli.config_commands import config
from bookit.cli.parsing import parse_date, parse_duration
from bookit.core.booking import Bookkeeper
from bookit.core.config import ConfigManager
from bookit.core.errors import LedgerError, NotFound
from bookit.core.identifiers import slugify
from bookit.core.storage import LedgerStore

console = Console()
error_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str) -> None:
    """Send bookit log records to stderr at the given level."""
    package_logger = logging.getLogger("bookit")
    package_logger.setLevel(getattr(logging, level, logging.WARNING))

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)


def fail(error: Exception) -> NoReturn:
    """Report an error to the user and exit with status 1."""
    error_console.print(f"[red]Error:[/red] {escape(str(error))}")
    sys.exit(1)


def get_store(ctx: click.Context) -> LedgerStore:
    """Get the ledger store for this invocation, creating it on first use."""
    if "store" not in ctx.obj:
        data_dir = ctx.obj.get("data_dir")
        path = Path(data_dir) if data_dir else ctx.obj["config"].data_dir
        ctx.obj["store"] = LedgerStore(path)
    return ctx.obj["store"]


def get_bookkeeper(ctx: click.Context) -> Bookkeeper:
    """Get a Bookkeeper bound to this invocation's store."""
    backup_on_delete = bool(ctx.obj["config"].get("advanced.backup_on_delete", False))
    return Bookkeeper(get_store(ctx), backup_on_delete=backup_on_delete)


def get_reporter(ctx: click.Context) -> ReportGenerator:
    """Get a report generator using the configured display settings."""
    cfg = ctx.obj["config"]
    return ReportGenerator(
        console,
        currency=cfg.get("billing.currency", "EUR"),
        minor_units=cfg.get("billing.minor_units", 100),
        time_format=cfg.get("display.time_format", "human"),
    )


def _date_option(
    ctx: click.Context, param: click.Parameter, value: Optional[str]
) -> Optional[date]:
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def filter_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the shared entry filter options to a command."""
    options = [
        click.option("-c", "--contractor", help="Filter by contractor slug"),
        click.option("-a", "--alias", help="Filter by alias slug"),
        click.option(
            "--from", "date_from", callback=_date_option, help="First day (inclusive)"
        ),
        click.option("--to", "date_to", callback=_date_option, help="Last day (inclusive)"),
        click.option("-t", "--ticket", help="Filter by ticket reference"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", help="Custom data directory", type=click.Path())
@click.option("--config", "config_path", help="Custom config file", type=click.Path())
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    data_dir: Optional[str],
    config_path: Optional[str],
    no_color: bool,
    verbose: bool,
) -> None:
    """Bookit - time-tracking ledger for freelancers.

    Book hours against contractor aliases and report billable totals.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir

    path = Path(config_path) if config_path else None
    try:
        cfg = ConfigManager(path)
    except ValueError as e:
        error_console.print(f"[yellow]Warning:[/yellow] {escape(str(e))}")
        cfg = ConfigManager(path)
    ctx.obj["config"] = cfg

    setup_logging("DEBUG" if verbose else cfg.get("advanced.log_level", "WARNING"))

    if no_color:
        console.no_color = True


cli.add_command(config)


# Contractors


@cli.group()
def contractor() -> None:
    """Manage contractors (the clients you bill)."""
    pass


@contractor.command("add")
@click.argument("name")
@click.option("-s", "--slug", help="Identifier (defaults to the name, lowercased, no spaces)")
@click.pass_context
def contractor_add(ctx: click.Context, name: str, slug: Optional[str]) -> None:
    """Register a new contractor.

    Example:
        bookit contractor add "Acme Inc" --slug acme
    """
    try:
        created = get_bookkeeper(ctx).add_contractor(slug or slugify(name), name)
    except LedgerError as e:
        fail(e)

    console.print(f"[green]✓[/green] Added contractor: {escape(created.name)} ({created.slug})")


@contractor.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def contractor_show(ctx: click.Context, as_json: bool) -> None:
    """List contractors."""
    contractors = get_store(ctx).list_contractors()

    if as_json:
        print(json.dumps([c.to_dict() for c in contractors], indent=2))
        return

    get_reporter(ctx).contractors_table(contractors)


@contractor.command("detail")
@click.argument("slug")
@click.pass_context
def contractor_detail(ctx: click.Context, slug: str) -> None:
    """Show a contractor with time and amounts per alias."""
    store = get_store(ctx)
    try:
        found = store.get_contractor(slug)
        entries = filter_entries(store, Criteria(contractor=slug))
        totals = summarize(store, entries, by="alias")
    except LedgerError as e:
        fail(e)

    get_reporter(ctx).contractor_detail(found, store.list_aliases(contractor=slug), totals)


@contractor.command("rename")
@click.argument("slug")
@click.argument("name")
@click.pass_context
def contractor_rename(ctx: click.Context, slug: str, name: str) -> None:
    """Change a contractor's display name."""
    try:
        renamed = get_bookkeeper(ctx).rename_contractor(slug, name)
    except LedgerError as e:
        fail(e)

    console.print(f"[green]✓[/green] Renamed {renamed.slug} to {escape(renamed.name)}")


@contractor.command("delete")
@click.argument("slug")
@click.pass_context
def contractor_delete(ctx: click.Context, slug: str) -> None:
    """Delete a contractor that has no aliases."""
    try:
        get_bookkeeper(ctx).remove_contractor(slug)
    except LedgerError as e:
        fail(e)

    console.print(f"[yellow]✓[/yellow] Deleted contractor {slug}")


# Aliases


@cli.group()
def alias() -> None:
    """Manage aliases (rate-bearing engagements under a contractor)."""
    pass


@alias.command("add")
@click.argument("slug")
@click.argument("contractor_slug", metavar="CONTRACTOR")
@click.argument("rate", type=int)
@click.option("-d", "--description", help="Short description of the engagement")
@click.pass_context
def alias_add(
    ctx: click.Context,
    slug: str,
    contractor_slug: str,
    rate: int,
    description: Optional[str],
) -> None:
    """Register an alias with an hourly RATE in currency minor units.

    Example:
        bookit alias add acme-dev acme 9000 -d "Backend development"
    """
    try:
        created = get_bookkeeper(ctx).add_alias(slug, contractor_slug, rate, description)
    except LedgerError as e:
        fail(e)

    reporter = get_reporter(ctx)
    console.print(
        f"[green]✓[/green] Added alias {created.slug} for {created.contractor} "
        f"at {reporter.money(created.rate)}/h"
    )


@alias.command("show")
@click.option("-c", "--contractor", "contractor_slug", help="Only aliases of this contractor")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def alias_show(ctx: click.Context, contractor_slug: Optional[str], as_json: bool) -> None:
    """List aliases."""
    aliases = get_store(ctx).list_aliases(contractor=contractor_slug)

    if as_json:
        print(json.dumps([a.to_dict() for a in aliases], indent=2))
        return

    get_reporter(ctx).aliases_table(aliases)


@alias.command("detail")
@click.argument("slug")
@click.pass_context
def alias_detail(ctx: click.Context, slug: str) -> None:
    """Show an alias with the time and amount booked on it."""
    store = get_store(ctx)
    try:
        found = store.get_alias(slug)
        totals = summarize(store, filter_entries(store, Criteria(alias=slug)), by="alias")
    except LedgerError as e:
        fail(e)

    get_reporter(ctx).alias_detail(found, totals[0] if totals else None)


@alias.command("update")
@click.argument("slug")
@click.option("-c", "--contractor", "contractor_slug", help="Move to another contractor")
@click.option("-r", "--rate", type=int, help="New hourly rate in currency minor units")
@click.option("-d", "--description", help="New description ('' clears it)")
@click.pass_context
def alias_update(
    ctx: click.Context,
    slug: str,
    contractor_slug: Optional[str],
    rate: Optional[int],
    description: Optional[str],
) -> None:
    """Change the contractor, rate or description of an alias.

    Example:
        bookit alias update acme-dev -d "Backend and API work"
    """
    if contractor_slug is None and rate is None and description is None:
        fail(ValueError("Nothing to update (use --contractor, --rate or --description)"))

    try:
        updated = get_bookkeeper(ctx).update_alias(
            slug, contractor=contractor_slug, rate=rate, description=description
        )
    except LedgerError as e:
        fail(e)

    console.print(f"[green]✓[/green] Updated alias {updated.slug}")


@alias.command("rate")
@click.argument("slug")
@click.argument("rate", type=int)
@click.pass_context
def alias_rate(ctx: click.Context, slug: str, rate: int) -> None:
    """Change an alias's hourly rate.

    Totals are computed from the current rate, so past entries are repriced too.
    """
    try:
        updated = get_bookkeeper(ctx).set_rate(slug, rate)
    except LedgerError as e:
        fail(e)

    console.print(f"[green]✓[/green] Rate of {updated.slug} set to {updated.rate}")


@alias.command("delete")
@click.argument("slug")
@click.pass_context
def alias_delete(ctx: click.Context, slug: str) -> None:
    """Delete an alias that has no booked hours."""
    try:
        get_bookkeeper(ctx).remove_alias(slug)
    except LedgerError as e:
        fail(e)

    console.print(f"[yellow]✓[/yellow] Deleted alias {slug}")


# Hours


@cli.command()
@click.argument("alias_slug", metavar="ALIAS")
@click.argument("time")
@click.option(
    "-d", "--date", "day", default="today", help="YYYY-MM-DD, 'today', 'yesterday' or weekday"
)
@click.option("-m", "--message", help="Description of the work")
@click.option("-t", "--ticket", help="Work ticket reference (e.g. RAS-002)")
@click.option("-b", "--branch", help="Git branch of the work (e.g. feature/RAS-002)")
@click.pass_context
def book(
    ctx: click.Context,
    alias_slug: str,
    time: str,
    day: str,
    message: Optional[str],
    ticket: Optional[str],
    branch: Optional[str],
) -> None:
    """Book TIME on an alias.

    TIME is minutes, 'h::<hours>', 's::HH:MM' (since) or 't::HH:MM' (until).

    Example:
        bookit book acme-dev 90 -m "Code review" -t RAS-002
        bookit book acme-dev h::1.5 -d monday
        bookit book acme-dev s::08:30
    """
    try:
        minutes = parse_duration(time)
        work_day = parse_date(day)
        entry = get_bookkeeper(ctx).book(
            alias_slug, minutes, work_day, message=message, ticket=ticket, branch=branch
        )
    except ValueError as e:
        fail(e)
    except LedgerError as e:
        fail(e)

    console.print(f"[green]✓[/green] Booked {format_minutes(entry.minutes)} on {entry.alias}")
    console.print(f"  Date: {entry.date.isoformat()}")
    console.print(f"  Hash: {entry.hash}")


@cli.group()
def hours() -> None:
    """Inspect and manage booked hours."""
    pass


@hours.command("show")
@filter_options
@click.option(
    "-s", "--sort", type=click.Choice(SORT_KEYS), default="date", help="Sort order"
)
@click.option(
    "-n", "--count", type=click.IntRange(min=1), help="Show only the last N entries"
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def hours_show(
    ctx: click.Context,
    contractor: Optional[str],
    alias: Optional[str],
    date_from: Optional[date],
    date_to: Optional[date],
    ticket: Optional[str],
    sort: str,
    count: Optional[int],
    as_json: bool,
) -> None:
    """List booked hours.

    Example:
        bookit hours show -c acme --from 2024-01-01 --to 2024-01-31
        bookit hours show -a acme-dev --sort timestamp -n 5
    """
    store = get_store(ctx)
    criteria = Criteria(
        contractor=contractor, alias=alias, date_from=date_from, date_to=date_to, ticket=ticket
    )
    entries = sort_entries(filter_entries(store, criteria), sort)
    if count:
        entries = entries[:count] if sort == "timestamp" else entries[-count:]

    if as_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    get_reporter(ctx).entries_table(entries)
    if entries:
        try:
            amount = billable_amount(store, entries)
        except LedgerError as e:
            fail(e)
        reporter = get_reporter(ctx)
        console.print(
            f"Total: {reporter.duration(total_minutes(entries))}, "
            f"{reporter.money(amount)}"
        )


@hours.command("detail")
@click.argument("entry_hash", metavar="HASH")
@click.pass_context
def hours_detail(ctx: click.Context, entry_hash: str) -> None:
    """Show a single booking."""
    store = get_store(ctx)
    try:
        entry = store.get_time_entry(entry_hash)
    except LedgerError as e:
        fail(e)

    try:
        entry_alias = store.get_alias(entry.alias)
    except NotFound:
        entry_alias = None

    get_reporter(ctx).entry_detail(entry, entry_alias)


@hours.command("fix")
@click.argument("entry_hash", metavar="HASH")
@click.option("-m", "--message", help="New message ('' clears it)")
@click.option("-t", "--ticket", help="New ticket reference ('' clears it)")
@click.option("-b", "--branch", help="New branch ('' clears it)")
@click.pass_context
def hours_fix(
    ctx: click.Context,
    entry_hash: str,
    message: Optional[str],
    ticket: Optional[str],
    branch: Optional[str],
) -> None:
    """Correct message, ticket or branch of a booking."""
    try:
        entry = get_bookkeeper(ctx).correct_entry(
            entry_hash, message=message, ticket=ticket, branch=branch
        )
    except LedgerError as e:
        fail(e)

    console.print(f"[green]✓[/green] Updated entry {entry.hash}")


@hours.command("delete")
@click.argument("entry_hash", metavar="HASH")
@click.pass_context
def hours_delete(ctx: click.Context, entry_hash: str) -> None:
    """Delete a booking."""
    try:
        get_bookkeeper(ctx).remove_entry(entry_hash)
    except LedgerError as e:
        fail(e)

    console.print(f"[yellow]✓[/yellow] Deleted entry {entry_hash}")


# Reports


def period_range(
    period: str, today: Optional[date] = None
) -> tuple[Optional[date], Optional[date], str]:
    """Resolve a named period to an inclusive date range and a label."""
    today = today or date.today()
    if period == "today":
        return today, today, "Today"
    if period == "week":
        return today - timedelta(days=today.weekday()), today, "This Week"
    if period == "month":
        return today.replace(day=1), today, "This Month"
    return None, None, "All time"


@cli.command()
@filter_options
@click.option(
    "--by", "group_by", type=click.Choice(GROUP_KEYS), default="alias", help="Group totals by"
)
@click.option(
    "--period",
    type=click.Choice(["all", "today", "week", "month"]),
    default="all",
    help="Time period (ignored when --from/--to are given)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def report(
    ctx: click.Context,
    contractor: Optional[str],
    alias: Optional[str],
    date_from: Optional[date],
    date_to: Optional[date],
    ticket: Optional[str],
    group_by: str,
    period: str,
    as_json: bool,
) -> None:
    """Report time and billable totals per alias or contractor.

    Examples:
        bookit report --period month
        bookit report --by contractor --from 2024-01-01 --to 2024-03-31
    """
    if date_from or date_to:
        label = f"{date_from or '...'} to {date_to or '...'}"
    else:
        date_from, date_to, label = period_range(period)

    store = get_store(ctx)
    criteria = Criteria(
        contractor=contractor, alias=alias, date_from=date_from, date_to=date_to, ticket=ticket
    )
    try:
        totals = summarize(store, filter_entries(store, criteria), by=group_by)
    except LedgerError as e:
        fail(e)

    if as_json:
        cfg = ctx.obj["config"]
        data = {
            "period": label,
            "group_by": group_by,
            "minutes": sum(t.minutes for t in totals),
            "amount": sum(t.amount for t in totals),
            "currency": cfg.get("billing.currency", "EUR"),
            "groups": [
                {
                    "key": t.key,
                    "entries": len(t.entries),
                    "minutes": t.minutes,
                    "amount": t.amount,
                    "formatted_amount": format_amount(
                        t.amount,
                        cfg.get("billing.currency", "EUR"),
                        cfg.get("billing.minor_units", 100),
                    ),
                }
                for t in totals
            ],
        }
        print(json.dumps(data, indent=2))
        return

    get_reporter(ctx).summary_report(totals, group_by.capitalize(), label)


if __name__ == "__main__":
    cli(obj={})
