#!/usr/bin/env python3
"""Command-line interface for bonustrack."""

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import requests

from bonustrack.config import (
    create_default_config,
    get_config_path,
    get_dashboard_settings,
    get_database_path,
    get_deadline_thresholds,
    get_user_id,
    load_config,
    save_json_config,
)
from bonustrack.errors import BonusError, BonusNotFoundError
from bonustrack.models import BonusCategory, BonusRecord, BonusStatus
from bonustrack.progress import URGENT_DAYS, WARNING_DAYS, deadline_warning, spend_progress
from bonustrack.reporter import available_tax_years, filter_bonuses, tax_summary
from bonustrack.storage import BonusRepository, BonusStore
from bonustrack.tracker import BonusTracker
from bonustrack.utils import parse_amount, parse_date


@dataclass
class Context:
    """Everything a subcommand needs."""

    config: dict[str, Any] | None
    repository: BonusRepository
    tracker: BonusTracker
    user_id: str


def _amount(value: str) -> Decimal:
    amount = parse_amount(value)
    if amount is None:
        raise argparse.ArgumentTypeError(f"invalid amount: {value!r}")
    return amount


def _date(value: str) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bonustrack",
        description="Track bank and credit card signup bonuses",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bonustrack add --institution Chase --amount 300 --deadline 2026-03-31
  bonustrack add --category creditCard --institution Amex --card-name Gold \\
      --amount 60000 --value 600 --spend-requirement 4000
  bonustrack sweep
  bonustrack mark <id> earned
  bonustrack tax --year 2025 --csv bonuses-2025.csv
        """,
    )

    parser.add_argument("--config", type=Path, help="Path to config.json file")
    parser.add_argument("--db", help="SQLite database path (overrides config)")
    parser.add_argument("--user", help="User id whose bonuses to use")
    parser.add_argument(
        "--remote",
        action="store_true",
        help="Use the dashboard REST API instead of the local database",
    )
    parser.add_argument("--api-url", help="Dashboard base URL (or configure in config.json)")
    parser.add_argument("--api-token", help="Dashboard API token")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    sub = parser.add_subparsers(dest="command", metavar="command")

    init = sub.add_parser("init", help="Write a default config file")
    init.add_argument("--force", action="store_true", help="Overwrite an existing config")

    add = sub.add_parser("add", help="Track a new bonus")
    add.add_argument(
        "--category",
        choices=[c.value for c in BonusCategory],
        default=BonusCategory.BANK.value,
        help="Bonus category (default: bank)",
    )
    add.add_argument("--institution", required=True, help="Bank name")
    add.add_argument("--amount", type=_amount, required=True, help="Nominal bonus amount")
    add.add_argument("--card-name", help="Credit card name")
    add.add_argument("--bonus-type", help="signup, referral, points, miles, cashback...")
    add.add_argument("--value", type=_amount, help="Cash value of a points/miles bonus")
    add.add_argument("--deadline", type=_date, help="Requirements or spend deadline")
    add.add_argument("--spend-requirement", type=_amount, help="Minimum spend")
    add.add_argument("--current-spend", type=_amount, help="Spend so far")
    add.add_argument("--not-taxable", action="store_true", help="Bonus is not taxable")
    add.add_argument("--taxable-amount", type=_amount, help="Taxable amount if different")
    add.add_argument("--notes", help="Free-form notes")

    filters = argparse.ArgumentParser(add_help=False)
    filters.add_argument("--status", choices=[s.value for s in BonusStatus])
    filters.add_argument("--category", choices=[c.value for c in BonusCategory])
    filters.add_argument("--search", help="Match institution or card name")

    sub.add_parser("list", parents=[filters], help="List bonuses")
    sub.add_parser("stats", parents=[filters], help="Show dashboard statistics")
    sub.add_parser("alerts", help="Show pending bonuses that are due soon or overdue")
    sub.add_parser("sweep", help="Expire pending bonuses past their deadline")

    show = sub.add_parser("show", help="Show one bonus")
    show.add_argument("bonus_id")

    mark = sub.add_parser("mark", help="Move a bonus to its next status")
    mark.add_argument("bonus_id")
    mark.add_argument("status", choices=[s.value for s in BonusStatus])

    override = sub.add_parser("override", help="Force a bonus into any status (audited)")
    override.add_argument("bonus_id")
    override.add_argument("status", choices=[s.value for s in BonusStatus])
    override.add_argument("--reason", help="Why the status is being corrected")

    spend = sub.add_parser("spend", help="Record current spend on a credit card bonus")
    spend.add_argument("bonus_id")
    spend.add_argument("amount", type=_amount)

    delete = sub.add_parser("delete", help="Stop tracking a bonus")
    delete.add_argument("bonus_id")

    tax = sub.add_parser("tax", help="Tax-year summary and export")
    tax.add_argument("--year", type=int, help="Tax year (default: current year)")
    tax.add_argument("--csv", type=Path, help="Write the year's bonuses to CSV")
    tax.add_argument("--json", type=Path, help="Write the year's report to JSON")

    imp = sub.add_parser("import", help="Import bonuses from CSV, JSON or .xls files")
    imp.add_argument("files", nargs="+", type=Path)
    imp.add_argument("--dry-run", action="store_true", help="Parse only, don't save")

    return parser


def format_record(
    record: BonusRecord,
    now: datetime,
    urgent_days: int = URGENT_DAYS,
    warning_days: int = WARNING_DAYS,
) -> str:
    """One-line summary of a bonus for list output."""
    line = (
        f"{record.id}  {record.status.value:<9} {record.category.value:<10} "
        f"{record.display_name[:30]:<30} {record.cash_value:>10}"
    )
    warning = deadline_warning(record, now, urgent_days, warning_days)
    if warning:
        line += f"  [{warning.label}]"
    progress = spend_progress(record)
    if progress:
        line += f"  spend {progress.current}/{progress.required} ({progress.percentage:.0f}%)"
    return line


def _format(record: BonusRecord, now: datetime, ctx: Context) -> str:
    return format_record(record, now, ctx.tracker.urgent_days, ctx.tracker.warning_days)


def _print_record_detail(record: BonusRecord) -> None:
    for key, value in record.to_dict().items():
        if value:
            print(f"  {key:<20} {value}")


def _cmd_add(args: argparse.Namespace, ctx: Context) -> int:
    fields: dict[str, Any] = {
        "card_name": args.card_name,
        "bonus_type": args.bonus_type,
        "bonus_value_amount": args.value,
        "deadline": args.deadline,
        "spend_requirement": args.spend_requirement,
        "current_spend": args.current_spend,
        "is_taxable": not args.not_taxable,
        "taxable_amount": args.taxable_amount,
        "notes": args.notes,
    }
    record = BonusRecord.create(
        args.category,
        args.institution,
        args.amount,
        ctx.tracker.clock(),
        **{k: v for k, v in fields.items() if v is not None},
    )
    saved = ctx.repository.add_bonus(ctx.user_id, record)
    print(f"Added bonus {saved.id}")
    return 0


def _cmd_list(args: argparse.Namespace, ctx: Context) -> int:
    now = ctx.tracker.clock()
    records = filter_bonuses(
        ctx.repository.load_bonus_records(ctx.user_id),
        search=args.search,
        status=args.status,
        category=args.category,
    )
    if not records:
        print("No bonuses found.")
        return 0
    for record in records:
        print(_format(record, now, ctx))
    return 0


def _cmd_show(args: argparse.Namespace, ctx: Context) -> int:
    record = ctx.repository.get_bonus(args.bonus_id)
    if record is None:
        raise BonusNotFoundError(args.bonus_id)
    print(_format(record, ctx.tracker.clock(), ctx))
    _print_record_detail(record)
    return 0


def _cmd_stats(args: argparse.Namespace, ctx: Context) -> int:
    report = ctx.tracker.report(
        ctx.user_id, search=args.search, status=args.status, category=args.category
    )
    print(f"Bonuses as of {report.as_of.isoformat()}:")
    print(f"  Total:    {report.total}")
    for status, count in report.counts.items():
        print(f"  {status.value.capitalize() + ':':<9} {count}")
    print(f"  Received value: ${report.total_received_value}")
    if report.alerts:
        print(f"  Needs attention: {len(report.alerts)}")
    return 0


def _cmd_alerts(args: argparse.Namespace, ctx: Context) -> int:
    report = ctx.tracker.report(ctx.user_id)
    if not report.alerts:
        print("No urgent deadlines.")
        return 0
    now = ctx.tracker.clock()
    for record in report.alerts:
        print(_format(record, now, ctx))
    return 0


def _cmd_sweep(args: argparse.Namespace, ctx: Context) -> int:
    result = ctx.tracker.run_sweep(ctx.user_id)
    print(f"Expired {len(result.expired)} bonuses")
    for bonus_id in result.expired:
        print(f"  {bonus_id}")
    if result.conflicts:
        # Left for the next sweep
        print(f"Skipped {len(result.conflicts)} bonuses changed during the sweep",
              file=sys.stderr)
    return 0


def _cmd_mark(args: argparse.Namespace, ctx: Context) -> int:
    record = ctx.tracker.transition(args.bonus_id, args.status)
    print(f"Bonus {record.id} is now {record.status.value}")
    return 0


def _cmd_override(args: argparse.Namespace, ctx: Context) -> int:
    record = ctx.tracker.override(args.bonus_id, args.status, reason=args.reason)
    print(f"Bonus {record.id} overridden to {record.status.value}")
    return 0


def _cmd_spend(args: argparse.Namespace, ctx: Context) -> int:
    record = ctx.tracker.record_spend(args.bonus_id, args.amount)
    print(_format(record, ctx.tracker.clock(), ctx))
    return 0


def _cmd_delete(args: argparse.Namespace, ctx: Context) -> int:
    if not ctx.repository.delete_bonus(args.bonus_id):
        raise BonusNotFoundError(args.bonus_id)
    print(f"Deleted bonus {args.bonus_id}")
    return 0


def _cmd_tax(args: argparse.Namespace, ctx: Context) -> int:
    from bonustrack.export import write_tax_csv, write_tax_json

    now = ctx.tracker.clock()
    records = ctx.repository.load_bonus_records(ctx.user_id)
    year = args.year or now.year
    summary = tax_summary(records, year)

    print(f"Tax year {year}:")
    print(f"  Taxable:     ${summary.taxable_total} ({summary.taxable_count} bonuses)")
    print(f"  Non-taxable: ${summary.non_taxable_total} ({summary.non_taxable_count} bonuses)")
    print(f"  1099 forms:  {summary.form_1099_received} received, "
          f"{summary.form_1099_pending} pending")
    years = available_tax_years(records, now)
    print(f"  Years with bonuses: {', '.join(str(y) for y in years)}")

    if args.csv:
        count = write_tax_csv(records, year, args.csv)
        print(f"Wrote {count} bonuses to {args.csv}", file=sys.stderr)
    if args.json:
        count = write_tax_json(records, year, args.json)
        print(f"Wrote {count} bonuses to {args.json}", file=sys.stderr)
    return 0


def _cmd_import(args: argparse.Namespace, ctx: Context) -> int:
    from bonustrack.importer import load_bonus_file

    now = ctx.tracker.clock()
    imported = 0
    failed = 0
    for filepath in args.files:
        try:
            result = load_bonus_file(filepath, now)
        except ValueError as e:
            print(f"Error: {filepath.name}: {e}", file=sys.stderr)
            failed += 1
            continue

        for row, message in result.errors:
            print(f"Warning: {filepath.name} row {row}: {message}", file=sys.stderr)
        failed += len(result.errors)

        for record in result.records:
            if args.dry_run:
                print(_format(record, now, ctx))
            else:
                ctx.repository.add_bonus(ctx.user_id, record)
            imported += 1

    verb = "Would import" if args.dry_run else "Imported"
    print(f"{verb} {imported} bonuses", file=sys.stderr)
    if failed:
        print(f"Errors: {failed}", file=sys.stderr)
    return 0 if not failed else 1


COMMANDS = {
    "add": _cmd_add,
    "list": _cmd_list,
    "show": _cmd_show,
    "stats": _cmd_stats,
    "alerts": _cmd_alerts,
    "sweep": _cmd_sweep,
    "mark": _cmd_mark,
    "override": _cmd_override,
    "spend": _cmd_spend,
    "delete": _cmd_delete,
    "tax": _cmd_tax,
    "import": _cmd_import,
}


def _init_config(args: argparse.Namespace) -> int:
    path = args.config or get_config_path()
    if path.exists() and not args.force:
        print(f"Config already exists at {path} (use --force to overwrite)", file=sys.stderr)
        return 1
    saved = save_json_config(create_default_config(), path)
    print(f"Configuration saved to {saved}")
    return 0


def _build_repository(
    args: argparse.Namespace, config: dict[str, Any] | None
) -> BonusRepository | None:
    if args.remote:
        from bonustrack.dashboard import DashboardClient

        base_url, token = get_dashboard_settings(config, args.api_url, args.api_token)
        if not base_url:
            print("Error: Dashboard URL required. Use --api-url or configure in config.json",
                  file=sys.stderr)
            return None
        return DashboardClient(base_url, token)

    return BonusStore(get_database_path(config, args.db))


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "init":
        return _init_config(args)

    try:
        config = load_config(args.config)
        urgent_days, warning_days = get_deadline_thresholds(config)
    except (OSError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    repository = _build_repository(args, config)
    if repository is None:
        return 1

    ctx = Context(
        config=config,
        repository=repository,
        tracker=BonusTracker(
            repository, urgent_days=urgent_days, warning_days=warning_days
        ),
        user_id=get_user_id(config, args.user),
    )

    try:
        return COMMANDS[args.command](args, ctx)
    except BonusError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except requests.RequestException as e:
        print(f"Error contacting dashboard: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
