#!/usr/bin/env python3
"""
Sales Daily Report — demo seed.

Creates the three positions, a director → manager → staff org chart and a
handful of customers.  Idempotent: rows are matched by id (positions),
e-mail (salespersons) or name (customers) and only missing ones are added.

Usage:
    python scripts/seed_demo_data.py              # add missing demo rows
    python scripts/seed_demo_data.py --reset      # drop + recreate tables first
    flask issue-token yamada@example.com          # then get a token to call the API
"""

import argparse
import logging
import sys

sys.path.insert(0, ".")

from sqlalchemy import select

from app import create_app
from app.models import db
from app.models.organization import Customer, Position, PositionLevel, Salesperson

logger = logging.getLogger(__name__)

POSITIONS = [
    (1, "担当", PositionLevel.STAFF),
    (2, "課長", PositionLevel.MANAGER),
    (3, "部長", PositionLevel.DIRECTOR),
]

# (name, email, position_id, manager email, director email)
SALESPERSONS = [
    ("田中 部長", "director@example.com", 3, None, None),
    ("鈴木 課長", "manager@example.com", 2, None, "director@example.com"),
    ("山田 太郎", "yamada@example.com", 1, "manager@example.com", "director@example.com"),
    ("佐藤 花子", "sato@example.com", 1, "manager@example.com", "director@example.com"),
]

CUSTOMERS = ["株式会社ABC", "株式会社XYZ", "DEF株式会社", "GHI商事"]


def seed_positions():
    added = 0
    for pid, name, level in POSITIONS:
        if db.session.get(Position, pid) is None:
            db.session.add(Position(id=pid, name=name, level=level))
            added += 1
    db.session.flush()
    return added


def seed_salespersons():
    by_email = {}
    added = 0
    for name, email, position_id, manager_email, director_email in SALESPERSONS:
        person = db.session.execute(
            select(Salesperson).where(Salesperson.email == email)
        ).scalar_one_or_none()
        if person is None:
            person = Salesperson(name=name, email=email, position_id=position_id)
            db.session.add(person)
            added += 1
        by_email[email] = person
        db.session.flush()
        # Chain members are seeded before their reports, so lookups always hit
        if manager_email:
            person.manager_id = by_email[manager_email].id
        if director_email:
            person.director_id = by_email[director_email].id
    db.session.flush()
    return added


def seed_customers():
    existing = set(db.session.execute(select(Customer.name)).scalars())
    added = 0
    for name in CUSTOMERS:
        if name not in existing:
            db.session.add(Customer(name=name))
            added += 1
    return added


def seed_demo_data() -> dict:
    """Seed everything in one transaction; returns per-table insert counts."""
    counts = {
        "positions": seed_positions(),
        "salespersons": seed_salespersons(),
        "customers": seed_customers(),
    }
    db.session.commit()
    return counts


def main():
    parser = argparse.ArgumentParser(description="Seed demo org chart and customers")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
            logger.info("Tables recreated")
        counts = seed_demo_data()
        logger.info("Seeded demo data: %s", counts)


if __name__ == "__main__":
    main()
