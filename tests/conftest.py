"""Shared fixtures: the portal app wired to an in-process fake backend"""
import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from app.core.session import SessionManager
from app.main import app
from tests.fake_backend import FakeBackend

PASSWORD = "correct-horse"

BLAST_FORM = {
    "Rock_Type": "Granite",
    "Rock_Density": 2700,
    "UCS": 120,
    "Rock_Elastic_Modulus": 50,
    "Fracture_Frequency": 2.5,
    "Hole_Diameter": 90,
    "Charge_Length": 6,
    "Stemming_Length": 3,
    "Explosive_Type": "ANFO",
    "Delay_Timing": 25,
    "Explosive_Weight": 120,
    "Burden": 3,
    "Spacing": 3.5,
    "SubDrilling": 0.5,
    "Hole_Depth": 10,
    "Stemming_Material": "Sand",
    "Water_Log_Status": "Dry",
}


@pytest.fixture
def backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def client(backend, tmp_path):
    """Portal client with a fresh session registry and backend"""
    http = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler), base_url="http://backend")
    app.state.http_client = http
    app.state.sessions = SessionManager(str(tmp_path / "storage"), recents_limit=10)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as portal:
        yield portal

    await http.aclose()
    app.state.http_client = None
    app.state.sessions = None


@pytest_asyncio.fixture
async def signed_in(client):
    response = await client.post(
        "/api/v1/auth/signin",
        json={"email": "blaster@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    return client
