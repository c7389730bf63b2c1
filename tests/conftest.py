# tests/conftest.py

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Import 'app' AND the global 'service' from main.py
from main import app, service


@pytest_asyncio.fixture(scope="function")
async def client(tmp_path):
    """
    Test client with a fresh discovery queue and an empty database
    (in tmp_path) for every test function.
    """

    # --- SETUP ---
    service.store.path = str(tmp_path / "discovery.db")
    await service.reset_for_testing()

    # --- Yield Client ---
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # --- TEARDOWN ---
    # Drain the queue before the event loop of this test closes
    await service.shutdown()
