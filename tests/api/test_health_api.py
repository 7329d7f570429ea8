"""
Tests for health and info endpoints.
"""
import pytest

from tests.conftest import make_settings


@pytest.mark.asyncio
async def test_root_info(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json()["api"] == "/api/v1"


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_liveness(client):
    assert (await client.get("/health/live")).json() == {"status": "alive"}


@pytest.mark.asyncio
async def test_readiness(client):
    resp = await client.get("/health/ready")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ready"
    assert body["checks"]["database"]["ok"] is True
    assert body["checks"]["config"] == {"ok": True, "missing": []}


@pytest.mark.asyncio
async def test_full_health(client):
    resp = await client.get("/health/full")
    assert resp.status_code == 200
    body = resp.json()
    assert body["providers"]["preview"] == {"name": "stub", "mode": "stub"}
    assert body["providers"]["plan"] == {"name": "stub", "mode": "stub"}
    assert body["operations_in_flight"] == 0
    assert body["environment"] == "test"
    assert body["env"]["openai_api_key"] == "unset"


class TestConfiguredSecrets:
    @pytest.fixture
    def settings(self, tmp_path):
        return make_settings(tmp_path, stripe_secret_key="sk_test_abcdef123456")

    @pytest.mark.asyncio
    async def test_secrets_are_masked(self, client):
        env = (await client.get("/health/full")).json()["env"]
        assert env["stripe_secret_key"] == "sk_t…3456"
        assert "abcdef" not in str(env)
