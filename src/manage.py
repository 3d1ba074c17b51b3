"""Fuelstream management CLI.

Creates and drops the database schema, seeds the default system settings
and creates admin users.

Usage:
    python src/manage.py setup-db                       # Create all tables
    python src/manage.py drop-db                        # Drop all tables
    python src/manage.py seed-settings                  # Insert missing default settings
    python src/manage.py create-admin --name N --email E
"""

import argparse
import sys


def _domain():
    from delivery.domain import delivery

    print("Initializing delivery domain...")
    delivery.init()
    return delivery


def setup_database():
    from delivery.utils.db import setup_db

    domain = _domain()
    print("Creating database schema...")
    touched = setup_db(domain)
    if touched:
        print(f"  schema ready for: {', '.join(touched)}")
    else:
        print("  no relational providers configured; nothing to create.")
    print("Done.")


def drop_database():
    from delivery.utils.db import drop_db

    domain = _domain()
    print("Dropping database schema...")
    touched = drop_db(domain)
    if touched:
        print(f"  schema dropped for: {', '.join(touched)}")
    print("Done.")


def seed_settings():
    from delivery.pricing.management import seed_default_settings

    domain = _domain()
    with domain.domain_context():
        created = seed_default_settings()
    if created:
        for key in created:
            print(f"  created {key}")
    else:
        print("  all default settings already present.")
    print("Done.")


def create_admin(name, email, phone=None):
    from delivery.customer.customer import CustomerRole
    from delivery.services import build_services

    domain = _domain()
    with domain.domain_context():
        result = build_services().onboarding.register(
            name=name, email=email, phone=phone, role=CustomerRole.ADMIN.value
        )
    print(f"  admin created: {result.customer.id}")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Fuelstream management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed-settings", help="Insert missing default system settings")

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin user")
    admin_parser.add_argument("--name", required=True)
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--phone")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed-settings":
        seed_settings()
    elif args.command == "create-admin":
        create_admin(args.name, args.email, args.phone)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
