import httpx
import pytest_asyncio

from linkreach.app import create_app
from linkreach.auth.authenticate import authenticate
from linkreach.routers.executor import get_scheduler
from linkreach.services.dispatch import ActionScheduler


@pytest_asyncio.fixture
async def client(user):
    app = create_app()
    app.dependency_overrides[authenticate] = lambda: user
    scheduler = ActionScheduler()
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
