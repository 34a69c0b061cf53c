import os
import sys
from pathlib import Path

import pytest

# Ensure required environment variables are present before settings import
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["ENV"] = "test"
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_ENABLED"] = "false"

# Add the project root so `retailer_desk` imports resolve during tests
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402

from retailer_desk.core.cache import CacheStore  # noqa: E402
from retailer_desk.core.db import build_engine  # noqa: E402
from retailer_desk.models import (  # noqa: E402
    Area,
    Base,
    Distributor,
    Region,
    Retailer,
    SalesRep,
    Territory,
    UserRole,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def cache():
    return CacheStore()


@pytest.fixture
async def hierarchy(session):
    region = Region(name="Dhaka")
    distributor = Distributor(name="Prime Distribution")
    session.add_all([region, distributor])
    await session.flush()
    area = Area(name="Gulshan", region_id=region.id)
    session.add(area)
    await session.flush()
    territory = Territory(name="Gulshan-1", area_id=area.id)
    session.add(territory)
    await session.commit()
    return {
        "region_id": region.id,
        "area_id": area.id,
        "distributor_id": distributor.id,
        "territory_id": territory.id,
    }


@pytest.fixture
def make_retailer(session, hierarchy):
    async def factory(uid: str, name: str | None = None, **overrides) -> Retailer:
        fields = {**hierarchy, "phone": "01700000000", **overrides}
        retailer = Retailer(uid=uid, name=name or f"Retailer {uid}", **fields)
        session.add(retailer)
        await session.commit()
        return retailer

    return factory


@pytest.fixture
def make_rep(session):
    async def factory(username: str, role: UserRole = UserRole.SALES_REP, password_hash: str = "!") -> SalesRep:
        rep = SalesRep(
            username=username,
            name=username.title(),
            phone="01800000000",
            password_hash=password_hash,
            role=role.value,
        )
        session.add(rep)
        await session.commit()
        return rep

    return factory
