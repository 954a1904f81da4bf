#!/usr/bin/env python3
"""Create the marketplace tables and seed the default equipment categories."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from db.base import Base
from models.rental_models import Category


DEFAULT_CATEGORIES = [
    ("Imaging", "imaging", "scan", "X-ray, ultrasound, CT and MRI equipment"),
    ("Patient Monitoring", "patient-monitoring", "activity", "Vital signs monitors and telemetry"),
    ("Respiratory", "respiratory", "wind", "Ventilators, CPAP and oxygen concentrators"),
    ("Surgical", "surgical", "scissors", "Surgical instruments and operating room equipment"),
    ("Laboratory", "laboratory", "flask", "Analyzers, centrifuges and lab instruments"),
    ("Mobility", "mobility", "accessibility", "Wheelchairs, beds and patient lifts"),
    ("Cardiology", "cardiology", "heart", "ECG machines, defibrillators and cardiac devices"),
]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Create tables and seed equipment categories.",
    )
    parser.add_argument(
        "--db-url",
        default=os.environ.get("MEDRENT_DB_URL", "").strip(),
        help="SQLAlchemy DB URL; defaults to MEDRENT_DB_URL env var.",
    )
    parser.add_argument(
        "--skip-categories",
        action="store_true",
        help="Only create tables.",
    )
    return parser


def seed_categories(session: Session) -> int:
    existing = set(session.execute(select(Category.Slug)).scalars().all())
    created = 0
    for name, slug, icon, description in DEFAULT_CATEGORIES:
        if slug in existing:
            continue
        session.add(Category(Name=name, Slug=slug, Icon=icon, Description=description))
        created += 1
    return created


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    if not args.db_url:
        parser.error("Missing DB URL. Set MEDRENT_DB_URL or pass --db-url.")

    engine = create_engine(args.db_url, pool_pre_ping=True, future=True)
    Base.metadata.create_all(engine)

    created = 0
    if not args.skip_categories:
        with Session(engine) as session, session.begin():
            created = seed_categories(session)

    print(f"OK tables={len(Base.metadata.tables)} categories_created={created}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
