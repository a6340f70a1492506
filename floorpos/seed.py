#!/usr/bin/env python3
"""Seed the fixed seating plan and a starter menu.

Fifteen tables ``t1`` to ``t15`` are created along with seven menu items.
Existing rows are left alone, so running the seed twice is harmless. Pass
``--reset`` to drop and recreate the schema first.
"""

from __future__ import annotations

import argparse
import json
import logging
from decimal import Decimal

from sqlalchemy.orm import Session, sessionmaker

from .models import Base, DiningTable, MenuItem

logger = logging.getLogger(__name__)

TABLE_CAPACITIES = [2, 2, 2, 2, 2, 4, 4, 4, 4, 4, 8, 8, 10, 4, 4]

# (name, category, price, prep minutes, description)
MENU_ITEMS = [
    ("Margherita Pizza", "Main", "299", 20, "Classic pizza with fresh mozzarella, tomato sauce, and basil"),
    ("Caesar Salad", "Starters", "199", 10, "Crisp romaine lettuce with parmesan cheese, croutons, and caesar dressing"),
    ("Grilled Salmon", "Main", "599", 25, "Fresh Atlantic salmon grilled with herbs and lemon"),
    ("Tiramisu", "Dessert", "149", 5, "Coffee-soaked ladyfingers and mascarpone"),
    ("Iced Tea", "Beverage", "79", 3, "Iced tea with lemon and mint"),
    ("Pasta Carbonara", "Main", "349", 18, "Creamy pasta with bacon, eggs, and parmesan cheese"),
    ("Garlic Bread", "Starters", "99", 8, "Toasted bread with garlic butter and herbs"),
]


def _seed(session: Session) -> dict[str, int]:
    """Insert missing tables and menu items and return how many were added."""

    added = {"tables": 0, "menu_items": 0}
    for i, capacity in enumerate(TABLE_CAPACITIES, start=1):
        table_id = f"t{i}"
        if session.get(DiningTable, table_id) is None:
            session.add(DiningTable(id=table_id, number=f"{i:02d}", capacity=capacity))
            added["tables"] += 1

    for i, (name, category, price, prep, description) in enumerate(MENU_ITEMS, start=1):
        item_id = str(i)
        if session.get(MenuItem, item_id) is None:
            session.add(
                MenuItem(
                    id=item_id,
                    name=name,
                    category=category,
                    price=Decimal(price),
                    prep_minutes=prep,
                    description=description,
                    is_available=True,
                )
            )
            added["menu_items"] += 1
    return added


def seed(session_factory: sessionmaker) -> dict[str, int]:
    with session_factory() as session:
        added = _seed(session)
        session.commit()
    logger.info("seeded tables=%d menu_items=%d", added["tables"], added["menu_items"])
    return added


def main(reset: bool) -> None:
    from .db import SessionLocal, engine, init_db

    if reset:
        Base.metadata.drop_all(bind=engine)
    init_db(engine)
    print(json.dumps(seed(SessionLocal)))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed tables and menu")
    parser.add_argument(
        "--reset", action="store_true", help="Drop and recreate the schema first"
    )
    args = parser.parse_args()
    main(args.reset)
