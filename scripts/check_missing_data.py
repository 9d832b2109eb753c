#!/usr/bin/env python3
"""
Check Catalog Data Completeness

Lists properties that have no details row or no payment schedule. Such
properties are still listed by the API (the embeds are outer joins) but the
normalizer falls back to default figures for them.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select
from sqlalchemy.orm import Session

from config.db import get_db
from model import load_all_models
from model.property.property import Property, PropertyDetails, PropertyPaymentSchedule


def find_missing_details(db: Session):
    stmt = (
        select(Property.id, Property.title, Property.type)
        .outerjoin(PropertyDetails, PropertyDetails.property_id == Property.id)
        .where(PropertyDetails.id.is_(None))
        .order_by(Property.id)
    )
    return db.execute(stmt).all()


def find_missing_schedules(db: Session):
    stmt = (
        select(Property.id, Property.title, Property.type)
        .outerjoin(PropertyPaymentSchedule, PropertyPaymentSchedule.property_id == Property.id)
        .where(PropertyPaymentSchedule.id.is_(None))
        .order_by(Property.id)
    )
    return db.execute(stmt).all()


def _print_rows(heading, rows):
    print(f"\n{heading} ({len(rows)}):")
    for row in rows:
        print(f"- {row.id}: {row.title} ({row.type})")


def check_missing_data(details=True, schedules=True) -> int:
    """
    Report incomplete properties.

    Returns the number of problems found, so the caller can use it as an
    exit status.
    """
    load_all_models()
    db = next(get_db())

    try:
        print("=" * 80)
        print("CATALOG DATA COMPLETENESS")
        print("=" * 80)

        missing_details = find_missing_details(db) if details else []
        missing_schedules = find_missing_schedules(db) if schedules else []

        if details:
            _print_rows("Properties missing details", missing_details)
        if schedules:
            _print_rows("Properties missing payment schedules", missing_schedules)

        print("\nSummary:")
        if details:
            print(f"- Total properties missing details: {len(missing_details)}")
        if schedules:
            print(f"- Total properties missing payment schedules: {len(missing_schedules)}")

        problems = len(missing_details) + len(missing_schedules)
        if problems == 0:
            print("All properties have the required data!")
        else:
            print("Some properties are missing required data; they are listed with default figures.")
        return problems
    finally:
        db.close()


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='List properties missing details or payment schedules')
    parser.add_argument('--details-only', action='store_true', help='Only check property details')
    parser.add_argument('--schedules-only', action='store_true', help='Only check payment schedules')
    parser.add_argument('--strict', action='store_true', help='Exit with status 1 when anything is missing')
    args = parser.parse_args()

    found = check_missing_data(
        details=not args.schedules_only,
        schedules=not args.details_only,
    )
    sys.exit(1 if (args.strict and found) else 0)
