"""
Tests for the checkout endpoint and the payment webhook.
"""
import json

import pytest
import stripe

from tests.conftest import make_settings

USER = {"X-User-Id": "user-1"}


@pytest.mark.asyncio
async def test_webhook_unconfigured(client):
    resp = await client.post("/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})
    assert resp.status_code == 503
    assert resp.json()["error"] == "billing_not_configured"


@pytest.mark.asyncio
async def test_checkout_unconfigured(client):
    resp = await client.post("/api/v1/billing/checkout", json={"tier": "pro"}, headers=USER)
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_checkout_rejects_free_tier(client):
    resp = await client.post("/api/v1/billing/checkout", json={"tier": "free"}, headers=USER)
    assert resp.status_code == 422


class TestConfiguredWebhook:
    @pytest.fixture
    def settings(self, tmp_path):
        return make_settings(tmp_path, stripe_webhook_secret="whsec_test", api_key="service-key")

    @pytest.mark.asyncio
    async def test_bad_signature(self, client, monkeypatch):
        def reject(payload, sig_header, secret):
            raise stripe.SignatureVerificationError("No signatures found", sig_header)

        monkeypatch.setattr(stripe.Webhook, "construct_event", reject)
        resp = await client.post("/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=bad"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_signature"

    @pytest.mark.asyncio
    async def test_missing_signature(self, client):
        resp = await client.post("/webhook", content=b"{}")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_upgrade_through_webhook(self, client, monkeypatch):
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: None)
        auth = {**USER, "Authorization": "Bearer service-key"}

        # The webhook sits outside /api and needs no service key
        checkout = {"type": "checkout.session.completed",
                    "data": {"object": {"client_reference_id": "user-1", "customer": "cus_9"}}}
        resp = await client.post("/webhook", content=json.dumps(checkout), headers={"Stripe-Signature": "sig"})
        assert resp.json() == {"received": True, "action": "customer_linked"}

        subscription = {"type": "customer.subscription.created", "data": {"object": {
            "id": "sub_9", "customer": "cus_9", "status": "active",
            "items": {"data": [{"price": {"id": "price_pro"}}]},
        }}}
        resp = await client.post("/webhook", content=json.dumps(subscription), headers={"Stripe-Signature": "sig"})
        assert resp.json()["action"] == "subscription_updated"

        ent = (await client.get("/api/v1/me/entitlements", headers=auth)).json()
        assert ent["tier"] == "pro"
        assert ent["quota"] == 25
        assert ent["preview_allowed"] is True


class TestServiceKey:
    @pytest.fixture
    def settings(self, tmp_path):
        return make_settings(tmp_path, api_key="service-key", rate_limit_max_requests=2)

    @pytest.mark.asyncio
    async def test_missing_key(self, client):
        resp = await client.get("/api/v1/me/entitlements", headers=USER)
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_wrong_key(self, client):
        resp = await client.get(
            "/api/v1/me/entitlements", headers={**USER, "Authorization": "Bearer nope"}
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_health_is_open(self, client):
        assert (await client.get("/health")).status_code == 200

    @pytest.mark.asyncio
    async def test_rate_limited_per_caller(self, client):
        auth = {"Authorization": "Bearer service-key"}
        for _ in range(2):
            resp = await client.get("/api/v1/me/entitlements", headers={**auth, **USER})
            assert resp.status_code == 200
        resp = await client.get("/api/v1/me/entitlements", headers={**auth, **USER})
        assert resp.status_code == 429
        assert "Retry-After" in resp.headers

        other = await client.get("/api/v1/me/entitlements", headers={**auth, "X-User-Id": "user-2"})
        assert other.status_code == 200
