#!/usr/bin/env python3
"""
Initialize database tables without alembic and seed the preference categories
"""

import asyncio
import logging
import sys

from sqlalchemy import select

from tripplanner.db.models import Category
from tripplanner.db.session import db_manager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# slug, display name, include_in_preferences
DEFAULT_CATEGORIES = [
    ("museum", "Museums", True),
    ("food", "Food", True),
    ("nature", "Nature", True),
    ("nightlife", "Nightlife", True),
    ("attraction", "Attractions", True),
    ("hotel", "Hotels", False),
    ("lodging", "Lodging", False),
    ("airport", "Airports", False),
    ("station", "Stations", False),
    ("other", "Other", False),
]


async def seed_categories() -> int:
    created = 0
    async with db_manager.get_session() as session:
        result = await session.execute(select(Category))
        existing = {c.slug: c for c in result.scalars().all()}
        for slug, name, include in DEFAULT_CATEGORIES:
            category = existing.get(slug)
            if category is None:
                session.add(Category(slug=slug, name=name, include_in_preferences=include))
                created += 1
            else:
                category.name = name
                category.include_in_preferences = include
        await session.commit()
    return created


async def init_database():
    await db_manager.initialize()
    try:
        await db_manager.init_db()
        created = await seed_categories()
        logger.info(f"Seeded {created} new categories")
    finally:
        await db_manager.close()


if __name__ == "__main__":
    try:
        asyncio.run(init_database())
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)
