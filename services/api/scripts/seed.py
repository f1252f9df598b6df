"""Seed script: populates dev DB with an organizer, a vendor and a wedding with open requirements."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.config import get_settings
from app.models.event import Event, EventStatus, EventType, RequirementCategory
from app.models.user import User, UserRole
from app.services.requirement_lifecycle import build_requirement

SEED_ORGANIZER_ID = uuid.UUID("aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee")
SEED_VENDOR_ID = uuid.UUID("bbbbbbbb-cccc-dddd-eeee-ffffffffffff")
SEED_ORGANIZER_EMAIL = "organizer@example.com"
SEED_VENDOR_EMAIL = "vendor@example.com"

SEED_REQUIREMENTS = [
    (RequirementCategory.CATERING, "Need catering service for 100 guests", 5000),
    (RequirementCategory.PHOTOGRAPHY, "Need professional photographer for 8 hours", 2000),
    (RequirementCategory.DECORATION, "Need wedding decoration for venue", 3000),
]


async def seed():
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as db:
        result = await db.execute(select(User.id).where(User.email == SEED_ORGANIZER_EMAIL))
        if result.scalar():
            print(f"Seed organizer {SEED_ORGANIZER_EMAIL} already exists, skipping.")
            await engine.dispose()
            return

        db.add_all(
            [
                User(id=SEED_ORGANIZER_ID, email=SEED_ORGANIZER_EMAIL, name="Demo Organizer", role=UserRole.USER),
                User(id=SEED_VENDOR_ID, email=SEED_VENDOR_EMAIL, name="Demo Vendor", role=UserRole.VENDOR),
            ]
        )
        await db.flush()

        event = Event(
            title="Test Wedding Event",
            description="A test wedding event with open vendor requirements",
            event_type=EventType.WEDDING,
            date=datetime.now(timezone.utc) + timedelta(days=30),
            location="Test Venue, Test City",
            organizer_id=SEED_ORGANIZER_ID,
            status=EventStatus.UPCOMING,
            budget=10000,
            guest_count=100,
            requirements=[
                build_requirement(category, description, budget, position=i)
                for i, (category, description, budget) in enumerate(SEED_REQUIREMENTS)
            ],
        )
        db.add(event)
        await db.commit()
        print(f"Seeded: organizer={SEED_ORGANIZER_EMAIL}, vendor={SEED_VENDOR_EMAIL}, event={event.id}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
