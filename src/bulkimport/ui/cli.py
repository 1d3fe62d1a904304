from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from bulkimport.app import SourceSpec, import_entries, init_database, migrate
from bulkimport.common import configure_logging
from bulkimport.config import ConfigurationError, get_import_settings
from bulkimport.config.importing import parse_choice
from bulkimport.domain.context import CancellationToken
from bulkimport.domain.model import Action, ProcessingMode, ResourceKind, UnidentifiedAction

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from bulkimport.config import ImportSettings

log = logging.getLogger(__name__)


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--json", type=str, help="JSON array or JSON Lines file to read")
    group.add_argument("--sql", type=str, help="SQLAlchemy URI of the legacy database")
    group.add_argument("--omeka", type=str, help="Omeka S API endpoint to read")
    parser.add_argument(
        "--mapping",
        type=Path,
        required=True,
        help="JSON mapping file (source field -> targets, per resource kind)",
    )
    parser.add_argument(
        "--filter",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Only read records whose field equals the value (repeatable)",
    )
    parser.add_argument("--order-by", type=str, help="Field to read the records by")
    parser.add_argument("--desc", action="store_true", help="Read in descending order")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Migrate legacy records into the content store")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create or upgrade the target schema")
    init_db.add_argument("--database-uri", type=str, help="Overrides DATABASE_URI")

    migrate_parser = subparsers.add_parser(
        "migrate", help="Reserve then fill every resource kind of the mapping file"
    )
    _add_source_arguments(migrate_parser)
    migrate_parser.add_argument(
        "--id-batch-size",
        type=int,
        help="Source ids per reservation statement (defaults to config)",
    )
    migrate_parser.add_argument(
        "--chunk-size",
        type=int,
        help="Resources filled between two flushes (defaults to config)",
    )

    import_parser = subparsers.add_parser(
        "import", help="Create, update or delete the entries of one resource kind"
    )
    _add_source_arguments(import_parser)
    import_parser.add_argument(
        "--kind",
        type=str,
        choices=[kind.value for kind in ResourceKind],
        help="Resource kind to import (defaults to the first one of the mapping)",
    )
    import_parser.add_argument(
        "--action",
        type=str,
        choices=[action.value for action in Action],
        help="Action applied to each entry (defaults to config)",
    )
    import_parser.add_argument(
        "--action-unidentified",
        type=str,
        choices=[action.value for action in UnidentifiedAction],
        help="What to do with entries that match no existing resource",
    )
    import_parser.add_argument(
        "--identifier-name",
        action="append",
        dest="identifier_names",
        help="Identifier used to find existing resources, in order (repeatable)",
    )
    import_parser.add_argument(
        "--batch-size",
        type=int,
        help="Entries dispatched together (defaults to config)",
    )
    import_parser.add_argument("--skip", type=int, help="Number of entries to skip")
    import_parser.add_argument("--max", type=int, help="Maximum number of entries to import")
    import_parser.add_argument(
        "--processing",
        type=str,
        choices=[mode.value for mode in ProcessingMode],
        help="continue_on_error, stop_on_error or dry_run",
    )
    return parser.parse_args(list(argv))


def _parse_filters(raw: Sequence[str]) -> dict[str, object]:
    filters: dict[str, object] = {}
    for entry in raw:
        name, separator, value = entry.partition("=")
        if not separator or not name.strip():
            raise ValueError(f"Invalid filter {entry!r}: expected FIELD=VALUE")
        filters[name.strip()] = value.strip()
    return filters


def _source_spec(args: argparse.Namespace) -> SourceSpec:
    filters = _parse_filters(args.filter) or None
    if args.json is not None:
        return SourceSpec("json", args.json, filters, args.order_by, args.desc)
    if args.sql is not None:
        return SourceSpec("sql", args.sql, filters, args.order_by, args.desc)
    return SourceSpec("omeka", args.omeka, filters, args.order_by, args.desc)


def _non_negative(value: int | None, option: str) -> int | None:
    if value is not None and value < 0:
        raise ValueError(f"{option} must be non-negative")
    return value


def _settings(args: argparse.Namespace) -> ImportSettings:
    settings = get_import_settings()
    overrides: dict[str, object] = {}
    if args.command == "migrate":
        if args.id_batch_size is not None:
            overrides["record_id_batch_size"] = max(1, args.id_batch_size)
        if args.chunk_size is not None:
            overrides["fill_chunk_size"] = max(1, args.chunk_size)
    elif args.command == "import":
        if args.action is not None:
            overrides["action"] = parse_choice(Action, args.action, setting="--action")
        if args.action_unidentified is not None:
            overrides["action_unidentified"] = parse_choice(
                UnidentifiedAction, args.action_unidentified, setting="--action-unidentified"
            )
        if args.identifier_names:
            overrides["identifier_names"] = tuple(args.identifier_names)
        if args.batch_size is not None:
            overrides["entries_by_batch"] = max(1, args.batch_size)
        if _non_negative(args.skip, "--skip") is not None:
            overrides["entries_to_skip"] = args.skip
        if _non_negative(args.max, "--max") is not None:
            overrides["entries_max"] = args.max
        if args.processing is not None:
            overrides["processing"] = parse_choice(
                ProcessingMode, args.processing, setting="--processing"
            )
    return replace(settings, **overrides)


def _sigint_handler(token: CancellationToken) -> Callable[[int, FrameType | None], None]:
    def handler(_signal_received: int, _frame: FrameType | None) -> None:
        if token.should_stop():
            log.warning("Interrupted again; exiting now.")
            sys.exit(130)
        log.warning("Stop requested (Ctrl+C); finishing the current entry.")
        token.cancel()

    return handler


def main(argv: Sequence[str] | None = None, *, token: CancellationToken | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    token = token or CancellationToken()
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        settings = _settings(parsed_args)
        source = None if parsed_args.command == "init-db" else _source_spec(parsed_args)
    except (ValueError, ConfigurationError):
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    has_error = False
    try:
        if parsed_args.command == "init-db":
            init_database(database_uri=parsed_args.database_uri)
        elif parsed_args.command == "migrate" and source is not None:
            report = migrate(
                source=source,
                mapping_path=parsed_args.mapping,
                settings=settings,
                job_host=token,
            )
            has_error = report.has_error
        elif parsed_args.command == "import" and source is not None:
            result = import_entries(
                source=source,
                mapping_path=parsed_args.mapping,
                kind=ResourceKind(parsed_args.kind) if parsed_args.kind else None,
                settings=settings,
                job_host=token,
            )
            has_error = result.has_error
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(1)

    if has_error:
        log.error("The run stopped on a structural error.")
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    token = CancellationToken()
    signal(SIGINT, _sigint_handler(token))
    main(token=token)


if __name__ == "__main__":
    run()
