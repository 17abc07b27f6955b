"""Test cases for service endpoints"""
import pytest


@pytest.mark.asyncio
async def test_root_endpoint(client):
    """Test root endpoint"""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "RockBlast" in data["message"]


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health check endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["backend_reachable"] is True
    assert "version" in data


@pytest.mark.asyncio
async def test_health_check_backend_down(client, backend):
    """Health degrades when the backend cannot be reached"""
    backend.overrides[("GET", "/")] = "network"
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["backend_reachable"] is False


@pytest.mark.asyncio
async def test_status_endpoint(client):
    """Test status endpoint"""
    response = await client.get("/status")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert data["backend"]["reachable"] is True
    assert data["endpoints"]["predictions"] == "/api/v1/predictions"


@pytest.mark.asyncio
async def test_docs_endpoint(client):
    """Test API documentation endpoint"""
    response = await client.get("/docs")
    assert response.status_code == 200
