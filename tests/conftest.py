import pytest_asyncio
from tortoise import Tortoise

from linkreach.models import User


@pytest_asyncio.fixture
async def db():
    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={"models": ["linkreach.models"]},
        use_tz=True,
        timezone="UTC",
    )
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def user(db):
    return await User.create(email="owner@example.com", firstname="Olga", lastname="Owner")


@pytest_asyncio.fixture
async def other_user(db):
    return await User.create(email="someone@example.com", firstname="Sam")
