import argparse
import json
from pathlib import Path

from . import __version__
from .config import Settings
from .database import init_database
from .errors import ValidationError
from .logger import get_logger
from .records import format_salary
from .schema import STATUSES, validate_application
from .store import JobFilter, Pagination, Sort, SqlJobStore


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if getattr(args, "database_url", None):
        settings.database_url = args.database_url
    return settings


def _store(settings: Settings) -> SqlJobStore:
    return SqlJobStore.from_url(
        settings.database_url,
        max_page_size=settings.max_page_size,
        reject_duplicates=settings.reject_duplicates,
    )


def cmd_serve(args: argparse.Namespace) -> None:
    from .api import create_app

    settings = _settings(args)
    if args.debug:
        settings.expose_errors = True
    get_logger(level="DEBUG" if args.debug else settings.log_level, log_dir=settings.log_dir)
    app = create_app(settings=settings)
    host = args.host or settings.host
    port = args.port or settings.port
    get_logger().info("JINDER API starting", host=host, port=port, database=settings.database_url)
    app.run(host=host, port=port, debug=args.debug)


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = _settings(args)
    engine = init_database(settings.database_url)
    engine.dispose()
    print(f"Database ready: {settings.database_url}")


def cmd_validate(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f"Invalid JSON in {input_path}: {e}")
    errors = validate_application(data)
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e['field']}: {e['message']}")
        raise SystemExit(2)
    print("Valid")


def cmd_list(args: argparse.Namespace) -> None:
    try:
        sort = Sort(field=args.sort_by, order=args.sort_order)
    except ValidationError as e:
        raise SystemExit(str(e))
    store = _store(_settings(args))
    try:
        result = store.query(
            JobFilter(status=args.status, company=args.company),
            Pagination(page=1, limit=args.limit),
            sort,
            owner=args.owner,
        )
    finally:
        store.close()
    if not result.items:
        print("No job applications found.")
        return
    print(f"Showing {len(result.items)} of {result.total} job applications:\n")
    for record in result.items:
        print(f"ID: {record['id']}")
        print(f"  Company: {record['company']}")
        print(f"  Position: {record['position']}")
        print(f"  Status: {record['status']}")
        print(f"  Applied: {record['applicationDate'].isoformat()}")
        print(f"  Location: {record['location'] or '-'}")
        print(f"  Salary: {format_salary(record['salary'])}")
        print()


def cmd_stats(args: argparse.Namespace) -> None:
    store = _store(_settings(args))
    try:
        stats = store.stats(owner=args.owner)
    finally:
        store.close()
    print(f"Total: {stats['total']}")
    for status, count in stats["byStatus"].items():
        print(f"  {status}: {count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jinder", description="JINDER - job application tracker API")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    srv = subparsers.add_parser("serve", help="Run the HTTP API server")
    srv.add_argument("--host", help="Bind address (default: JINDER_HOST or 127.0.0.1)")
    srv.add_argument("--port", type=int, help="Port (default: JINDER_PORT or 3001)")
    srv.add_argument("--database-url", help="SQLAlchemy database URL (default: JINDER_DATABASE_URL)")
    srv.add_argument("--debug", action="store_true", help="Flask debug mode; exposes error details")
    srv.set_defaults(func=cmd_serve)

    ini = subparsers.add_parser("init-db", help="Create database tables")
    ini.add_argument("--database-url", help="SQLAlchemy database URL (default: JINDER_DATABASE_URL)")
    ini.set_defaults(func=cmd_init_db)

    val = subparsers.add_parser("validate", help="Validate a job application JSON file")
    val.add_argument("--input", required=True, help="Path to job application JSON")
    val.set_defaults(func=cmd_validate)

    lst = subparsers.add_parser("list", help="List stored job applications")
    lst.add_argument("--status", choices=STATUSES, help="Only this status")
    lst.add_argument("--company", help="Company substring filter")
    lst.add_argument("--owner", help="Only records of this owner")
    lst.add_argument("--limit", type=int, default=20, help="Max rows (default 20)")
    lst.add_argument("--sort-by", default="createdAt", help="createdAt, applicationDate, title, company or salary")
    lst.add_argument("--sort-order", default="desc", choices=["asc", "desc"])
    lst.add_argument("--database-url", help="SQLAlchemy database URL (default: JINDER_DATABASE_URL)")
    lst.set_defaults(func=cmd_list)

    sts = subparsers.add_parser("stats", help="Count job applications per status")
    sts.add_argument("--owner", help="Only records of this owner")
    sts.add_argument("--database-url", help="SQLAlchemy database URL (default: JINDER_DATABASE_URL)")
    sts.set_defaults(func=cmd_stats)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
