"""Development data seeder: one admin, three BDAs and a spread of leads.

Profile ids must match users that exist in the hosted auth backend,
otherwise the first sign-in provisions a fresh profile instead.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.models import Lead, Profile
from app.schemas.common import LeadInterest, LeadStatus, LeadTemperature, UserRole

ADMIN_ID = UUID("00000000-0000-4000-8000-000000000001")
AGENTS = [
    (UUID("00000000-0000-4000-8000-000000000011"), "Sara Khan", "sara@example.com"),
    (UUID("00000000-0000-4000-8000-000000000012"), "Omar Ali", "omar@example.com"),
    (UUID("00000000-0000-4000-8000-000000000013"), "Hina Raza", "hina@example.com"),
]
COMPANIES = [
    ("Northwind Traders", "Retail"),
    ("Blue Fern Clinic", "Healthcare"),
    ("Atlas Logistics", "Transport"),
    ("Crescent Foods", "Food & Beverage"),
    ("Pixel Forge", "Software"),
    ("Granite Build Co", "Construction"),
    ("Lumen Academy", "Education"),
    ("Harbor Realty", "Real Estate"),
    ("Orchid Salon", "Beauty"),
    ("Summit Fitness", "Fitness"),
    ("Nova Motors", "Automotive"),
    ("Cedar Legal", "Legal"),
]
SERVICES = ["Website", "Mobile App", "CRM Setup", "SEO"]
TEMPERATURES = [t for t in LeadTemperature]
INTERESTS = [i for i in LeadInterest]
# Days from now: overdue, today, upcoming and none
FOLLOW_UP_OFFSETS = [-3, -1, 0, 0, 2, 5, None]


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    now = datetime.now(timezone.utc)

    async with session_maker() as session:
        print("Seeding development data")

        await session.execute(text("TRUNCATE TABLE leads, profiles CASCADE"))

        session.add(
            Profile(
                id=ADMIN_ID,
                email=settings.ADMIN_EMAIL,
                full_name="Admin",
                role=UserRole.admin.value,
            )
        )
        for agent_id, name, email in AGENTS:
            session.add(
                Profile(id=agent_id, email=email, full_name=name, role=UserRole.bda.value)
            )
        await session.flush()
        print(f"Created 1 admin and {len(AGENTS)} BDA profiles")

        statuses = list(LeadStatus)
        for i, (company, industry) in enumerate(COMPANIES):
            offset = FOLLOW_UP_OFFSETS[i % len(FOLLOW_UP_OFFSETS)]
            follow_up = (
                now.replace(minute=0, second=0, microsecond=0) + timedelta(days=offset)
                if offset is not None
                else None
            )
            status = statuses[i % len(statuses)]
            # Every fourth lead stays unassigned
            agent_id = None if i % 4 == 3 else AGENTS[i % len(AGENTS)][0]
            session.add(
                Lead(
                    name=company,
                    phone=f"+92 300 {1000000 + i * 7919:07d}",
                    email=f"contact@{company.lower().replace(' ', '')}.com",
                    industry=industry,
                    service=SERVICES[i % len(SERVICES)],
                    lead_type="Inbound" if i % 2 == 0 else "Outbound",
                    status=status.value,
                    assigned_agent_id=agent_id,
                    follow_up_date=follow_up,
                    temperature=TEMPERATURES[i % len(TEMPERATURES)].value,
                    interests=[INTERESTS[i % len(INTERESTS)].value],
                    remarks="",
                    whatsapp_sent=status != LeadStatus.new,
                    email_sent=i % 2 == 0,
                    quotation_sent=status
                    in (LeadStatus.proposal, LeadStatus.negotiation, LeadStatus.closed_won),
                    sample_work_sent=i % 3 == 0,
                    created_at=now - timedelta(days=30 - i),
                    updated_at=now - timedelta(days=i % 8, hours=i),
                )
            )
        await session.commit()

        lead_cnt = (await session.execute(select(func.count(Lead.id)))).scalar_one()
        unassigned = (
            await session.execute(
                select(func.count(Lead.id)).where(Lead.assigned_agent_id.is_(None))
            )
        ).scalar_one()

        print("\nValidation:")
        print(f"  Leads: {lead_cnt}")
        print(f"  Unassigned: {unassigned}")
        print("Seeding complete")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
