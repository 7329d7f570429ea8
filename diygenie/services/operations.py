"""
Background execution of pending preview/plan operations.

Each accepted request is persisted as a PendingOperation row before it is
scheduled here, so work interrupted by a restart is picked up again by
`resume_pending()` at startup. Provider calls run without holding a DB
session; each DB touch uses its own short session.
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from diygenie.adapters import ProviderMode
from diygenie.config import Settings
from diygenie.infra.db.models import OperationKind, PendingOperation
from diygenie.infra.db.repositories import PendingOperationRepository, ProjectRepository
from diygenie.services.dispatch import ProviderDispatch
from diygenie.services.lifecycle import ProjectLifecycle

logger = logging.getLogger(__name__)


class OperationRunner:
    """Runs pending operations as tracked asyncio tasks."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatch: ProviderDispatch,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.dispatch = dispatch
        self.settings = settings
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def schedule(self, operation_id: str) -> asyncio.Task:
        """Start (or return the already running) task for an operation."""
        existing = self._tasks.get(operation_id)
        if existing is not None and not existing.done():
            return existing
        task = asyncio.create_task(self._run(operation_id), name=f"operation-{operation_id}")
        self._tasks[operation_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(operation_id, None))
        logger.debug(f"[OPS] Scheduled operation {operation_id}")
        return task

    async def resume_pending(self) -> int:
        """Reschedule every operation left pending or running by a previous process."""
        async with self.session_factory() as session:
            operations = await PendingOperationRepository(session).get_active()
        for operation in operations:
            logger.info(
                f"[OPS] Resuming {operation.kind} operation {operation.id} "
                f"for project {operation.project_id} (attempt {operation.attempts + 1})"
            )
            self.schedule(operation.id)
        return len(operations)

    async def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Wait until no operation is running."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                raise asyncio.TimeoutError(f"{len(self._tasks)} operations still running")
            await asyncio.wait(list(self._tasks.values()), timeout=remaining)

    async def shutdown(self) -> None:
        """Cancel running tasks. Their rows stay active and resume on next startup."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"[OPS] Cancelled {len(tasks)} running operations; they will resume on restart")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run(self, operation_id: str) -> None:
        try:
            await self._execute(operation_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"[OPS] Operation {operation_id} crashed")
            await self._record_failure(operation_id, f"internal error: {e.__class__.__name__}")

    async def _execute(self, operation_id: str) -> None:
        async with self.session_factory() as session:
            operations = PendingOperationRepository(session)
            operation = await operations.mark_running(operation_id)
            if operation is None:
                logger.info(f"[OPS] Operation {operation_id} already finished; nothing to do")
                return
            project = await ProjectRepository(session).get_by_id(operation.project_id)
            if project is None:
                logger.error(
                    f"[OPS] Project {operation.project_id} was deleted before operation {operation_id} ran"
                )
                await operations.fail(operation_id, "project deleted")
                return
            image_url = project.input_image_url

        if operation.kind == OperationKind.PREVIEW.value:
            await self._run_preview(operation, image_url)
        else:
            await self._run_plan(operation)

    async def _run_preview(self, operation: PendingOperation, image_url: Optional[str]) -> None:
        if not image_url:
            await self._fail_preview(operation, "input image missing")
            return

        async def on_submitted(job_id: str, mode: ProviderMode) -> None:
            async with self.session_factory() as session:
                await PendingOperationRepository(session).set_job(operation.id, job_id, mode.value)
                await ProjectLifecycle(session, self.settings).mark_preview_processing(
                    operation.project_id, job_id, mode.value
                )

        outcome = await self.dispatch.generate_preview(
            image_url,
            operation.options or {},
            deadline=operation.deadline_at,
            job_id=operation.provider_job_id,
            on_submitted=on_submitted,
        )

        async with self.session_factory() as session:
            try:
                updated = await ProjectLifecycle(session, self.settings).complete_preview(
                    operation.project_id, outcome
                )
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"[PREVIEW] Could not store preview for project {operation.project_id}: {e}")
                await self._fail_preview(operation, "storage error while saving preview")
                return

            operations = PendingOperationRepository(session)
            if updated is None:
                logger.error(
                    f"[PREVIEW] Project {operation.project_id} no longer exists; dropping preview result"
                )
                await operations.fail(operation.id, "project deleted before completion")
                return
            await operations.complete(operation.id, mode=outcome.mode.value)

        logger.info(
            f"[PREVIEW] Project {operation.project_id} preview ready "
            f"(provider={outcome.provider}, mode={outcome.mode.value})"
        )

    async def _run_plan(self, operation: PendingOperation) -> None:
        options = operation.options or {}
        outcome = await self.dispatch.generate_plan(
            options.get("description") or "",
            options.get("budget"),
            options.get("skill_level"),
            deadline=operation.deadline_at,
        )

        async with self.session_factory() as session:
            try:
                updated = await ProjectLifecycle(session, self.settings).complete_plan(
                    operation.project_id, outcome
                )
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"[PLAN] Could not store plan for project {operation.project_id}: {e}")
                await self._fail_plan(operation, "storage error while saving plan")
                return

            operations = PendingOperationRepository(session)
            if updated is None:
                logger.error(f"[PLAN] Project {operation.project_id} no longer exists; dropping plan")
                await operations.fail(operation.id, "project deleted before completion")
                return
            await operations.complete(operation.id, mode=outcome.mode.value)

        logger.info(
            f"[PLAN] Project {operation.project_id} plan ready "
            f"(provider={outcome.provider}, mode={outcome.mode.value})"
        )

    async def _fail_preview(self, operation: PendingOperation, reason: str) -> None:
        try:
            async with self.session_factory() as session:
                await ProjectLifecycle(session, self.settings).fail_preview(operation.project_id, reason)
                await PendingOperationRepository(session).fail(operation.id, reason)
        except SQLAlchemyError:
            logger.exception(f"[PREVIEW] Could not record failure for project {operation.project_id}")

    async def _fail_plan(self, operation: PendingOperation, reason: str) -> None:
        try:
            async with self.session_factory() as session:
                await ProjectLifecycle(session, self.settings).fail_plan(operation.project_id, reason)
                await PendingOperationRepository(session).fail(operation.id, reason)
        except SQLAlchemyError:
            logger.exception(f"[PLAN] Could not record failure for project {operation.project_id}")

    async def _record_failure(self, operation_id: str, reason: str) -> None:
        try:
            async with self.session_factory() as session:
                operation = await PendingOperationRepository(session).get_by_id(operation_id)
            if operation is None:
                return
            if operation.kind == OperationKind.PREVIEW.value:
                await self._fail_preview(operation, reason)
            else:
                await self._fail_plan(operation, reason)
        except SQLAlchemyError:
            logger.exception(f"[OPS] Could not record failure of operation {operation_id}")
