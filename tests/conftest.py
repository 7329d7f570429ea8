"""
Shared fixtures: a file-backed SQLite database per test, zero provider delays.
"""
import httpx
import pytest

from diygenie.config import Settings
from diygenie.infra.db.models import PlanTier
from diygenie.infra.db.repositories import ProfileRepository
from diygenie.infra.db.session import build_engine, build_session_factory, init_db
from diygenie.main import create_app


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        _env_file=None,
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        preview_provider="stub",
        plan_provider="stub",
        preview_stub_delay_seconds=0,
        plan_stub_delay_seconds=0,
        preview_poll_interval_seconds=0,
        api_key=None,
        dev_user_id=None,
        free_quota_override=None,
        entitlement_fail_open=False,
        stripe_secret_key=None,
        stripe_webhook_secret=None,
        casual_price_id="price_casual",
        pro_price_id="price_pro",
    )
    values.update(overrides)
    return Settings(**values)


async def set_tier(session_factory, user_id: str, tier: PlanTier) -> None:
    async with session_factory() as session:
        profiles = ProfileRepository(session)
        await profiles.get_or_create(user_id)
        await profiles.update(user_id, plan_tier=tier.value)


ENV_VARS = (
    "ENVIRONMENT",
    "DATABASE_URL",
    "API_KEY",
    "DEV_USER_ID",
    "FREE_QUOTA_OVERRIDE",
    "ENTITLEMENT_FAIL_OPEN",
    "PREVIEW_PROVIDER",
    "DECOR8_BASE_URL",
    "PLAN_PROVIDER",
    "OPENAI_API_KEY",
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell environment out of Settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    # ASGITransport does not run the lifespan
    await app.state.context.startup()
    yield app
    await app.state.context.shutdown()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
