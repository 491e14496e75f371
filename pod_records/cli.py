"""
Command line for the Pod record store.

Usage:
    pod-records features
    pod-records list vaccination [--latest-per-day] [--descending]
    pod-records export blood_pressure bp.csv
    pod-records import vaccination vaccinations.csv [--override | --keep-existing]
    pod-records delete vaccination --timestamp 2025-01-21T10:00:00 \\
        --field vaccine="Flu Shot" --field provider="Community Pharmacy"

Configuration comes from the environment / .env (see core/config.py).
"""
import argparse
import asyncio
import sys
from typing import Dict, List, Optional

from pod_records.core.config import settings
from pod_records.core.datetime_utils import format_for_display, parse_timestamp
from pod_records.core.error_messages import format_error
from pod_records.core.exceptions import RecordStoreError
from pod_records.core.feature_registry import get_feature, list_features
from pod_records.core.logging_config import setup_logging
from pod_records.models.record import Record


def _parse_field_args(pairs: List[str]) -> Dict[str, str]:
    fields = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"Expected name=value, got '{pair}'")
        name, value = pair.split("=", 1)
        fields[name.strip()] = value
    return fields


def _record_from_args(feature_name: str, timestamp: str, pairs: List[str]) -> Record:
    """Build the record to delete the way an imported CSV row would be built."""
    feature = get_feature(feature_name)
    given = _parse_field_args(pairs)
    fields = {
        field_def.name: field_def.from_csv(given.get(field_def.name, "").strip())
        for field_def in feature.fields
    }
    return Record(timestamp=parse_timestamp(timestamp), fields=fields)


def _prompt_override(names: List[str]) -> bool:
    print("The following existing records have the same dates as records in your import file:")
    for name in names:
        print(f"  - {name}")
    answer = input("Override them? [y/N] ").strip().lower()
    return answer in ("y", "yes")


def _always(answer: bool):
    def decide(names: List[str]) -> bool:
        return answer
    return decide


def _print_records(feature_name: str, records: List[Record]) -> None:
    feature = get_feature(feature_name)
    for record in records:
        values = ", ".join(
            f"{name}={record.fields.get(name)!s}"
            for name in feature.field_names
            if record.fields.get(name) not in (None, "")
        )
        print(f"{format_for_display(record.timestamp)}  {values}")


async def _run(args: argparse.Namespace) -> int:
    from pod_records.core.dependencies import get_record_store
    from pod_records.services.csv_exporter import export_to_csv
    from pod_records.services.csv_importer import import_from_csv
    from pod_records.services.record_views import (
        latest_per_day,
        load_records_with_fallback,
        sort_records,
    )

    store = get_record_store()

    if args.command == "list":
        records, from_sample = await load_records_with_fallback(store, args.feature)
        if args.latest_per_day:
            records = latest_per_day(records)
        records = sort_records(records, descending=args.descending)
        if from_sample:
            print("⚠️ Pod unavailable - showing sample data")
        if not records:
            print("No records found.")
            return 0
        _print_records(args.feature, records)
        return 0

    if args.command == "export":
        ok = await export_to_csv(store, args.feature, args.destination)
        print(f"✅ Exported to {args.destination}" if ok else "❌ Nothing exported - check the log")
        return 0 if ok else 1

    if args.command == "import":
        if args.override:
            on_conflict = _always(True)
        elif args.keep_existing:
            on_conflict = _always(False)
        else:
            on_conflict = _prompt_override
        ok = await import_from_csv(store, args.feature, args.source, on_conflict=on_conflict)
        print("✅ Import completed" if ok else "❌ Import incomplete - check the log")
        return 0 if ok else 1

    if args.command == "delete":
        record = _record_from_args(args.feature, args.timestamp, args.field)
        ok = await store.delete_record(args.feature, record)
        print("✅ Deleted" if ok else "❌ Delete failed - check the log")
        return 0 if ok else 1

    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pod-records",
        description="List, export, import and delete health records kept in a Solid Pod",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("features", help="Show the known features and their CSV columns")

    list_cmd = sub.add_parser("list", help="List the records of a feature")
    list_cmd.add_argument("feature")
    list_cmd.add_argument(
        "--latest-per-day",
        action="store_true",
        help="Show only the latest record of each day"
    )
    list_cmd.add_argument("--descending", action="store_true", help="Newest first")

    export_cmd = sub.add_parser("export", help="Export a feature to CSV")
    export_cmd.add_argument("feature")
    export_cmd.add_argument("destination")

    import_cmd = sub.add_parser("import", help="Import a CSV file into a feature")
    import_cmd.add_argument("feature")
    import_cmd.add_argument("source")
    conflict = import_cmd.add_mutually_exclusive_group()
    conflict.add_argument(
        "--override",
        action="store_true",
        help="Delete existing records on the imported dates without asking"
    )
    conflict.add_argument(
        "--keep-existing",
        action="store_true",
        help="Abort instead of overriding existing records"
    )

    delete_cmd = sub.add_parser("delete", help="Delete one record")
    delete_cmd.add_argument("feature")
    delete_cmd.add_argument("--timestamp", required=True)
    delete_cmd.add_argument(
        "--field",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Field value of the record (repeat for every field)"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the pod-records command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=settings.log_level, json_format=settings.log_format == "json")

    if args.command == "features":
        for feature in list_features():
            print(f"{feature.name} ({feature.display_name}): {','.join(feature.csv_columns)}")
        return 0

    try:
        get_feature(args.feature)
    except KeyError as e:
        print(f"❌ {e.args[0]}")
        return 2

    try:
        return asyncio.run(_run(args))
    except argparse.ArgumentTypeError as e:
        print(f"❌ {e}")
        return 2
    except RecordStoreError as e:
        print(format_error(e, context=args.command))
        return 1
    except ValueError as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
