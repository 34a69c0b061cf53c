"""
Create the schema and seed an administrator plus sample reference data.

Usage:
    ADMIN_PASSWORD=... python scripts/seed.py
"""

import asyncio
import os
import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from sqlalchemy import select

from retailer_desk.core.db import SessionLocal, engine
from retailer_desk.core.security import get_password_hash
from retailer_desk.models import Area, Base, Distributor, Region, SalesRep, Territory, UserRole

SAMPLE_HIERARCHY = {
    "Dhaka": {"Gulshan": ["Gulshan-1", "Gulshan-2"], "Dhanmondi": ["Dhanmondi East"]},
    "Chattogram": {"Agrabad": ["Agrabad North"]},
}
SAMPLE_DISTRIBUTORS = ["Prime Distribution", "Metro Supply"]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as session:
        admin_username = os.environ.get("ADMIN_USERNAME", "admin")
        if await session.scalar(select(SalesRep.id).where(SalesRep.username == admin_username)) is None:
            session.add(
                SalesRep(
                    username=admin_username,
                    name="Administrator",
                    phone=os.environ.get("ADMIN_PHONE", "0000000000"),
                    password_hash=get_password_hash(os.environ.get("ADMIN_PASSWORD", "admin123")),
                    role=UserRole.ADMIN.value,
                )
            )
            print(f"Created admin user '{admin_username}'")

        for region_name, areas in SAMPLE_HIERARCHY.items():
            region = await session.scalar(select(Region).where(Region.name == region_name))
            if region is None:
                region = Region(name=region_name)
                session.add(region)
                await session.flush()
            for area_name, territories in areas.items():
                area = await session.scalar(
                    select(Area).where(Area.name == area_name, Area.region_id == region.id)
                )
                if area is None:
                    area = Area(name=area_name, region_id=region.id)
                    session.add(area)
                    await session.flush()
                for territory_name in territories:
                    exists = await session.scalar(
                        select(Territory.id).where(
                            Territory.name == territory_name, Territory.area_id == area.id
                        )
                    )
                    if exists is None:
                        session.add(Territory(name=territory_name, area_id=area.id))

        for distributor_name in SAMPLE_DISTRIBUTORS:
            if await session.scalar(select(Distributor.id).where(Distributor.name == distributor_name)) is None:
                session.add(Distributor(name=distributor_name))

        await session.commit()
        print("Seed completed")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
