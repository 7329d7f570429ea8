"""
Application context.

Everything built once per process (engine, session factory, providers, the
operation runner, the suggestion cache) lives here and is attached to
`app.state.context`, instead of module-level globals.
"""
import logging
import time
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from diygenie.adapters import (
    get_plan_provider,
    get_preview_provider,
    get_stub_plan_provider,
    get_stub_preview_provider,
)
from diygenie.config import Settings
from diygenie.infra.db.session import build_engine, build_session_factory, init_db
from diygenie.services.dispatch import ProviderDispatch
from diygenie.services.operations import OperationRunner
from diygenie.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    dispatch: ProviderDispatch
    runner: OperationRunner
    suggestions_cache: TTLCache
    started_at: float = field(default_factory=time.time)

    @classmethod
    def build(cls, settings: Settings) -> "AppContext":
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)
        dispatch = ProviderDispatch(
            preview_provider=get_preview_provider(settings),
            plan_provider=get_plan_provider(settings),
            preview_fallback=get_stub_preview_provider(settings),
            plan_fallback=get_stub_plan_provider(settings),
            poll_interval_seconds=settings.preview_poll_interval_seconds,
        )
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            dispatch=dispatch,
            runner=OperationRunner(session_factory, dispatch, settings),
            suggestions_cache=TTLCache(
                max_entries=settings.suggestions_cache_max_entries,
                ttl_seconds=settings.suggestions_cache_ttl_seconds,
            ),
        )

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.started_at

    async def startup(self) -> None:
        await init_db(self.engine)
        logger.info("Database tables initialized")
        resumed = await self.runner.resume_pending()
        if resumed:
            logger.info(f"[OPS] Resumed {resumed} pending operations")

    async def shutdown(self) -> None:
        await self.runner.shutdown()
        await self.dispatch.aclose()
        await self.engine.dispose()
