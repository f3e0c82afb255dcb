"""Sikupi marketplace management CLI.

Usage:
    python src/manage.py setup-db                      # Create all tables
    python src/manage.py drop-db                       # Drop all tables
    python src/manage.py purge-idempotency             # Delete expired webhook delivery claims
    python src/manage.py purge-notifications --days 30 # Delete old read notifications
"""

import argparse
import sys


def _domain():
    from marketplace.domain import marketplace

    marketplace.init()
    return marketplace


def setup_database():
    from marketplace.utils.db import setup_db

    print("Initializing marketplace domain...")
    providers = setup_db(_domain())
    if providers:
        print(f"  Schema ready on: {', '.join(providers)}")
    else:
        print("  No SQL provider configured (set PROTEAN_ENV=production); nothing to create.")
    print("Done.")


def drop_database():
    from marketplace.utils.db import drop_db

    print("Initializing marketplace domain...")
    providers = drop_db(_domain())
    print(f"  Schema dropped on: {', '.join(providers) or 'none'}")
    print("Done.")


def purge_idempotency():
    from marketplace.reconciliation.idempotency import PurgeExpiredClaims, claim_stats

    domain = _domain()
    with domain.domain_context():
        purged = domain.process(PurgeExpiredClaims(), asynchronous=False)
        stats = claim_stats()
    print(f"Purged {purged} expired delivery claims ({stats['active']} active remain).")


def purge_notifications(days: int, include_unread: bool):
    from marketplace.notifications.management import PurgeOldNotifications

    domain = _domain()
    with domain.domain_context():
        purged = domain.process(
            PurgeOldNotifications(older_than_days=days, read_only=not include_unread),
            asynchronous=False,
        )
    print(f"Purged {purged} notifications older than {days} days.")


def main():
    parser = argparse.ArgumentParser(description="Sikupi marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("purge-idempotency", help="Delete expired webhook delivery claims")

    purge_parser = subparsers.add_parser("purge-notifications", help="Delete old notifications")
    purge_parser.add_argument("--days", type=int, default=30, help="Age threshold in days (default: 30)")
    purge_parser.add_argument(
        "--include-unread",
        action="store_true",
        help="Also delete notifications that were never read",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "purge-idempotency":
        purge_idempotency()
    elif args.command == "purge-notifications":
        purge_notifications(args.days, args.include_unread)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
