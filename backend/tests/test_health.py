"""
Test health and readiness endpoints.
"""

from fastapi.testclient import TestClient

from app.main import create_app
from app.utils.config import Settings, verify_env_variables
from storage.memory_store import build_memory_stores

client = TestClient(create_app(stores=build_memory_stores(), settings=Settings()))


def test_health_endpoint():
    """Test that health endpoint returns correct status and version."""
    response = client.get("/health")
    assert response.status_code == 200

    json = response.json()
    assert json["status"] == "ok"
    assert json["version"] == "1.0.0"


def test_ready_endpoint_pings_every_collection():
    response = client.get("/ready")
    assert response.status_code == 200

    json = response.json()
    assert json["ready"] is True
    assert set(json["services"]) == {"players", "teams", "matches", "trophies"}


def test_supabase_backend_requires_credentials():
    assert verify_env_variables(Settings(STORE_BACKEND="memory"))
    assert not verify_env_variables(Settings(STORE_BACKEND="supabase"))
    assert verify_env_variables(
        Settings(STORE_BACKEND="supabase", SUPABASE_URL="https://x.supabase.co", SUPABASE_SERVICE_KEY="key")
    )
