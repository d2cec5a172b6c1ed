"""
Key service CLI — entry point for all operations.

Usage:
    keyservice serve                  # Start the HTTP API
    keyservice migrate status         # Show applied / pending / drifted migrations
    keyservice migrate apply          # Apply pending migrations
    keyservice genkey                 # Print a fresh ENCRYPTION_KEY
    keyservice prune-requirements     # Drop stale provider requirements
    keyservice version                # Show version
"""

from __future__ import annotations

import argparse
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="keyservice",
        description="Key service — API keys, encrypted provider secrets, provider requirements.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: KEYSERVICE_HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: KEYSERVICE_PORT)")

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Database migrations")
    migrate_sub = migrate_parser.add_subparsers(dest="migrate_command")
    migrate_sub.add_parser("status", help="Show migration status")
    apply_parser = migrate_sub.add_parser("apply", help="Apply pending migrations")
    apply_parser.add_argument("version", nargs="?", default=None, help="Apply only this version")
    apply_parser.add_argument("--dry-run", action="store_true", help="List without executing")

    # genkey
    subparsers.add_parser("genkey", help="Generate a new 32-byte ENCRYPTION_KEY (hex)")

    # prune-requirements
    subparsers.add_parser(
        "prune-requirements",
        help="Delete provider requirements older than KEYSERVICE_REQUIREMENT_RETENTION_DAYS",
    )

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from keyservice import __version__

        print(f"keyservice {__version__}")
        return 0

    if args.command == "genkey":
        return _cmd_genkey()

    _setup_logging()

    if args.command == "serve":
        return _cmd_serve(args)
    elif args.command == "migrate":
        return _cmd_migrate(args)
    elif args.command == "prune-requirements":
        return _cmd_prune()
    else:
        parser.print_help()
        return 0


def _setup_logging() -> None:
    from keyservice.config import get_config

    level = getattr(logging, get_config().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _cmd_genkey() -> int:
    from keyservice.vault.crypto import generate_encryption_key

    print(generate_encryption_key())
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from keyservice.config import get_config
    from keyservice.vault.crypto import load_encryption_key

    cfg = get_config()
    if not cfg.service_key_configured:
        print("Error: KEY_SERVICE_API_KEY is not set.", file=sys.stderr)
        return 1
    try:
        load_encryption_key(cfg.encryption_key)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Generate one with: keyservice genkey", file=sys.stderr)
        return 1

    host = args.host or cfg.host
    port = args.port or cfg.port
    print(f"Starting key service on {host}:{port}...")
    uvicorn.run(
        "keyservice.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=cfg.log_level.lower(),
    )
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    from keyservice.db import migrate
    from keyservice.db.connection import close_pool

    try:
        if args.migrate_command == "status":
            rows = migrate.status()
            if not rows:
                print("No migrations found.")
                return 0
            print(f"{'Version':<10} {'Status':<10} {'Applied At':<28} Filename")
            print("-" * 80)
            for r in rows:
                applied_at = str(r["applied_at"] or "")
                print(f"{r['version']:<10} {r['status']:<10} {applied_at:<28} {r['filename']}")
            return 1 if any(r["status"] == "DRIFT" for r in rows) else 0

        if args.migrate_command == "apply":
            applied = migrate.apply(version=args.version, dry_run=args.dry_run)
            verb = "Would apply" if args.dry_run else "Applied"
            print(f"{verb} {len(applied)} migration(s): {', '.join(applied) or '-'}")
            return 0

        print("Usage: keyservice migrate {status,apply}")
        return 1
    except Exception as e:
        print(f"Error: Migration failed: {e}", file=sys.stderr)
        print("Check KEYSERVICE_DB_* environment variables and ensure PostgreSQL is running.")
        return 1
    finally:
        close_pool()


def _cmd_prune() -> int:
    from keyservice.config import get_config
    from keyservice.db.connection import close_pool
    from keyservice.services import build_registry

    try:
        registry = build_registry(get_config())
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if registry.retention is None:
        print("KEYSERVICE_REQUIREMENT_RETENTION_DAYS is not set; nothing to prune.")
        return 0
    try:
        deleted = registry.prune()
    finally:
        close_pool()
    print(f"Pruned {deleted} provider requirement(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
