"""
Tests for the project lifecycle controller.
"""
import asyncio

import pytest

from diygenie.adapters import ProviderMode
from diygenie.infra.db.models import OperationStatus, PlanTier, ProjectStatus
from diygenie.infra.db.repositories import PendingOperationRepository, ProjectRepository
from diygenie.services.dispatch import PlanOutcome, PreviewOutcome
from diygenie.services.errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from diygenie.services.lifecycle import ProjectLifecycle
from tests.conftest import make_settings, set_tier

IMAGE_URL = "https://cdn.example.com/rooms/kitchen.jpg"

RAW_PLAN = {
    "title": "Floating shelves",
    "materials": [{"item": "Oak board", "quantity": 2}],
    "steps": [{"order": 2, "text": "Mount"}, {"order": 1, "text": "Measure"}, {"order": 3, "text": "Finish"}],
}


@pytest.fixture
def scheduled():
    return []


@pytest.fixture
def lifecycle(session, settings, scheduled):
    return ProjectLifecycle(session, settings, scheduler=scheduled.append)


async def _project_with_image(lifecycle, user_id="user-1", name="Kitchen refresh"):
    project = await lifecycle.create_project(user_id, name, goal="Brighter kitchen", room_type="kitchen")
    return await lifecycle.attach_image(project.id, user_id, IMAGE_URL)


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_project(self, lifecycle):
        project = await lifecycle.create_project("user-1", "  Deck repair  ", budget="$300")
        assert project.name == "Deck repair"
        assert project.status == ProjectStatus.DRAFT.value
        assert project.budget == "$300"
        assert project.completed_steps == []
        assert project.current_step_index == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "  ", "ab", None])
    async def test_name_too_short(self, lifecycle, name):
        with pytest.raises(ValidationFailed):
            await lifecycle.create_project("user-1", name)

    @pytest.mark.asyncio
    async def test_free_quota_enforced(self, lifecycle):
        await lifecycle.create_project("user-1", "First project")
        await lifecycle.create_project("user-1", "Second project")
        with pytest.raises(PermissionDenied) as exc_info:
            await lifecycle.create_project("user-1", "Third project")
        assert exc_info.value.error == "quota_exhausted"
        assert len(await lifecycle.list_projects("user-1")) == 2

    @pytest.mark.asyncio
    async def test_concurrent_creates_respect_quota(self, session_factory, settings):
        await set_tier(session_factory, "user-1", PlanTier.FREE)

        async def create(n):
            async with session_factory() as session:
                return await ProjectLifecycle(session, settings).create_project("user-1", f"Project number {n}")

        results = await asyncio.gather(*(create(n) for n in range(6)), return_exceptions=True)

        created = [r for r in results if not isinstance(r, BaseException)]
        refused = [r for r in results if isinstance(r, BaseException)]
        assert len(created) == 2
        assert len(refused) == 4
        assert all(isinstance(e, PermissionDenied) and e.error == "quota_exhausted" for e in refused)
        async with session_factory() as session:
            assert await ProjectRepository(session).count_for_user("user-1") == 2

    @pytest.mark.asyncio
    async def test_quota_override(self, session, tmp_path):
        lifecycle = ProjectLifecycle(session, make_settings(tmp_path, free_quota_override=1))
        await lifecycle.create_project("user-1", "Only project")
        with pytest.raises(PermissionDenied):
            await lifecycle.create_project("user-1", "One too many")

    @pytest.mark.asyncio
    async def test_deleting_frees_quota(self, lifecycle):
        first = await lifecycle.create_project("user-1", "First project")
        await lifecycle.create_project("user-1", "Second project")
        await lifecycle.delete_project(first.id, "user-1")
        await lifecycle.create_project("user-1", "Third project")


class TestOwnership:
    @pytest.mark.asyncio
    async def test_other_users_project_is_not_found(self, lifecycle):
        project = await lifecycle.create_project("owner", "Garage shelves")
        with pytest.raises(NotFound):
            await lifecycle.get_project(project.id, "intruder")
        with pytest.raises(NotFound):
            await lifecycle.delete_project(project.id, "intruder")
        assert (await lifecycle.get_project(project.id, "owner")).id == project.id

    @pytest.mark.asyncio
    async def test_missing_project(self, lifecycle):
        with pytest.raises(NotFound):
            await lifecycle.get_project("does-not-exist", "user-1")


class TestImage:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["", "ftp://example.com/a.jpg", "not a url", "https://"])
    async def test_invalid_url(self, lifecycle, url):
        project = await lifecycle.create_project("user-1", "Bathroom")
        with pytest.raises(ValidationFailed):
            await lifecycle.attach_image(project.id, "user-1", url)

    @pytest.mark.asyncio
    async def test_attach_keeps_draft(self, lifecycle):
        project = await _project_with_image(lifecycle)
        assert project.input_image_url == IMAGE_URL
        assert project.status == ProjectStatus.DRAFT.value

    @pytest.mark.asyncio
    async def test_legacy_new_status_is_rewritten(self, lifecycle, session):
        project = await lifecycle.create_project("user-1", "Old project")
        await ProjectRepository(session).update(project.id, status="new")
        updated = await lifecycle.attach_image(project.id, "user-1", IMAGE_URL)
        assert updated.status == ProjectStatus.DRAFT.value


class TestRequestPreview:
    @pytest.mark.asyncio
    async def test_requires_image(self, lifecycle, session_factory):
        await set_tier(session_factory, "user-1", PlanTier.CASUAL)
        project = await lifecycle.create_project("user-1", "No photo yet")
        with pytest.raises(ValidationFailed) as exc_info:
            await lifecycle.request_preview(project.id, "user-1")
        assert exc_info.value.error == "image_required"

    @pytest.mark.asyncio
    async def test_free_tier_rejected_without_state_change(self, lifecycle, scheduled):
        project = await _project_with_image(lifecycle)
        with pytest.raises(PermissionDenied):
            await lifecycle.request_preview(project.id, "user-1")
        unchanged = await lifecycle.get_project(project.id, "user-1")
        assert unchanged.status == ProjectStatus.DRAFT.value
        assert unchanged.preview_status is None
        assert scheduled == []

    @pytest.mark.asyncio
    async def test_accepted_for_paid_tier(self, lifecycle, session, session_factory, scheduled):
        await set_tier(session_factory, "user-1", PlanTier.CASUAL)
        project = await _project_with_image(lifecycle)

        accepted = await lifecycle.request_preview(project.id, "user-1", {"design_style": "modern"})

        assert accepted.status == ProjectStatus.PREVIEW_REQUESTED.value
        assert accepted.project.preview_status == "queued"
        assert accepted.project.preview_url is None
        assert scheduled == [accepted.operation_id]

        operation = await PendingOperationRepository(session).get_by_id(accepted.operation_id)
        assert operation.status == OperationStatus.PENDING.value
        assert operation.kind == "preview"
        assert operation.options["design_style"] == "modern"
        assert operation.options["prompt"] == "Brighter kitchen"
        assert operation.options["room_type"] == "kitchen"

    @pytest.mark.asyncio
    async def test_second_request_while_in_flight_conflicts(self, lifecycle, session_factory, scheduled):
        await set_tier(session_factory, "user-1", PlanTier.PRO)
        project = await _project_with_image(lifecycle)
        await lifecycle.request_preview(project.id, "user-1")
        with pytest.raises(Conflict) as exc_info:
            await lifecycle.request_preview(project.id, "user-1")
        assert exc_info.value.error == "preview_in_progress"
        assert len(scheduled) == 1

    @pytest.mark.asyncio
    async def test_regeneration_allowed_by_default(self, lifecycle, session_factory):
        await set_tier(session_factory, "user-1", PlanTier.CASUAL)
        project = await _project_with_image(lifecycle)
        await lifecycle.request_preview(project.id, "user-1")
        await lifecycle.complete_preview(project.id, _preview_outcome())
        again = await lifecycle.request_preview(project.id, "user-1")
        assert again.status == ProjectStatus.PREVIEW_REQUESTED.value
        assert again.project.preview_url is None

    @pytest.mark.asyncio
    async def test_single_preview_policy(self, session, session_factory, tmp_path):
        lifecycle = ProjectLifecycle(session, make_settings(tmp_path, single_preview_per_project=True))
        await set_tier(session_factory, "user-1", PlanTier.CASUAL)
        project = await _project_with_image(lifecycle)
        await lifecycle.request_preview(project.id, "user-1")
        await lifecycle.complete_preview(project.id, _preview_outcome())
        with pytest.raises(Conflict) as exc_info:
            await lifecycle.request_preview(project.id, "user-1")
        assert exc_info.value.error == "preview_exists"


def _preview_outcome(url="https://cdn.example.com/previews/1.jpg", fallback_reason=None):
    return PreviewOutcome(
        preview_url=url,
        provider="stub",
        mode=ProviderMode.STUB,
        job_id="stub-abc",
        fallback_reason=fallback_reason,
    )


class TestPreviewCompletion:
    @pytest.mark.asyncio
    async def test_complete_preview(self, lifecycle, session_factory):
        await set_tier(session_factory, "user-1", PlanTier.CASUAL)
        project = await _project_with_image(lifecycle)
        await lifecycle.request_preview(project.id, "user-1")

        done = await lifecycle.complete_preview(project.id, _preview_outcome(fallback_reason="timeout"))

        assert done.status == ProjectStatus.PREVIEW_READY.value
        assert done.preview_status == "ready"
        assert done.preview_url == "https://cdn.example.com/previews/1.jpg"
        assert done.preview_meta["mode"] == "stub"
        assert done.preview_meta["fallback_reason"] == "timeout"

    @pytest.mark.asyncio
    async def test_fail_preview(self, lifecycle, session_factory):
        await set_tier(session_factory, "user-1", PlanTier.CASUAL)
        project = await _project_with_image(lifecycle)
        await lifecycle.request_preview(project.id, "user-1")
        failed = await lifecycle.fail_preview(project.id, "storage error")
        assert failed.status == ProjectStatus.PREVIEW_ERROR.value
        assert failed.preview_status == "error"
        assert failed.preview_url is None

    @pytest.mark.asyncio
    async def test_completion_after_skip_keeps_ready(self, lifecycle, session_factory):
        await set_tier(session_factory, "user-1", PlanTier.CASUAL)
        project = await _project_with_image(lifecycle)
        await lifecycle.request_preview(project.id, "user-1")
        await lifecycle.skip_preview(project.id, "user-1")

        done = await lifecycle.complete_preview(project.id, _preview_outcome())

        assert done.status == ProjectStatus.READY.value
        assert done.preview_status == "ready"
        assert done.preview_url is not None

    @pytest.mark.asyncio
    async def test_completion_for_deleted_project(self, lifecycle):
        assert await lifecycle.complete_preview("gone", _preview_outcome()) is None


class TestSkipAndPlan:
    @pytest.mark.asyncio
    async def test_skip_from_draft(self, lifecycle):
        project = await lifecycle.create_project("user-1", "Porch swing")
        skipped = await lifecycle.skip_preview(project.id, "user-1")
        assert skipped.status == ProjectStatus.READY.value

    @pytest.mark.asyncio
    async def test_skip_twice_is_illegal(self, lifecycle):
        project = await lifecycle.create_project("user-1", "Porch swing")
        await lifecycle.skip_preview(project.id, "user-1")
        with pytest.raises(Conflict):
            await lifecycle.skip_preview(project.id, "user-1")

    @pytest.mark.asyncio
    async def test_request_plan(self, lifecycle, session, scheduled):
        project = await lifecycle.create_project("user-1", "Bookcase", goal="Tall bookcase", budget="$150")
        accepted = await lifecycle.request_plan(project.id, "user-1", {"skill_level": "advanced"})
        assert accepted.status == ProjectStatus.PLAN_REQUESTED.value
        operation = await PendingOperationRepository(session).get_by_id(accepted.operation_id)
        assert operation.options == {"description": "Tall bookcase", "budget": "$150", "skill_level": "advanced"}
        with pytest.raises(Conflict):
            await lifecycle.request_plan(project.id, "user-1")

    @pytest.mark.asyncio
    async def test_complete_plan_normalizes_and_resets_progress(self, lifecycle):
        project = await lifecycle.create_project("user-1", "Shelves")
        await lifecycle.request_plan(project.id, "user-1")
        outcome = PlanOutcome(plan=RAW_PLAN, provider="stub", mode=ProviderMode.STUB)

        done = await lifecycle.complete_plan(project.id, outcome)

        assert done.status == ProjectStatus.PLAN_READY.value
        assert [s["text"] for s in done.plan_json["steps"]] == ["Measure", "Mount", "Finish"]
        assert done.plan_json["materials"] == [{"name": "Oak board", "qty": 2, "notes": None}]
        assert done.plan_json["overview"]["title"] == "Floating shelves"
        assert done.completed_steps == []
        assert done.current_step_index == 0


class TestProgress:
    async def _planned(self, lifecycle):
        project = await lifecycle.create_project("user-1", "Shelves")
        await lifecycle.request_plan(project.id, "user-1")
        outcome = PlanOutcome(plan=RAW_PLAN, provider="stub", mode=ProviderMode.STUB)
        return await lifecycle.complete_plan(project.id, outcome)

    @pytest.mark.asyncio
    async def test_progress_moves_to_in_progress(self, lifecycle):
        project = await self._planned(lifecycle)
        updated = await lifecycle.update_progress(project.id, "user-1", ["1", 0, 1], "2")
        assert updated.status == ProjectStatus.IN_PROGRESS.value
        assert updated.completed_steps == [0, 1]
        assert updated.current_step_index == 2

    @pytest.mark.asyncio
    async def test_photo_can_be_replaced_after_planning(self, lifecycle):
        project = await self._planned(lifecycle)
        replaced = await lifecycle.attach_image(project.id, "user-1", IMAGE_URL)
        assert replaced.status == ProjectStatus.PLAN_READY.value
        assert replaced.input_image_url == IMAGE_URL

        await lifecycle.update_progress(project.id, "user-1", [0], 1)
        replaced = await lifecycle.attach_image(project.id, "user-1", IMAGE_URL + "?v=2")
        assert replaced.status == ProjectStatus.IN_PROGRESS.value
        assert replaced.input_image_url == IMAGE_URL + "?v=2"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("completed,index", [
        ([], 3),
        ([], -1),
        ([5], 0),
        (["x"], 0),
        ([], "abc"),
        ([], 1.5),
    ])
    async def test_progress_bounds(self, lifecycle, completed, index):
        project = await self._planned(lifecycle)
        with pytest.raises(ValidationFailed):
            await lifecycle.update_progress(project.id, "user-1", completed, index)
        unchanged = await lifecycle.get_project(project.id, "user-1")
        assert unchanged.status == ProjectStatus.PLAN_READY.value

    @pytest.mark.asyncio
    async def test_no_steps_only_allows_zero(self, lifecycle):
        project = await lifecycle.create_project("user-1", "Unplanned")
        await lifecycle.skip_preview(project.id, "user-1")
        updated = await lifecycle.update_progress(project.id, "user-1", [], 0)
        assert updated.status == ProjectStatus.IN_PROGRESS.value
        with pytest.raises(ValidationFailed):
            await lifecycle.update_progress(project.id, "user-1", [], 1)

    @pytest.mark.asyncio
    async def test_progress_without_status_change(self, lifecycle):
        project = await lifecycle.create_project("user-1", "Draft only")
        updated = await lifecycle.update_progress(project.id, "user-1", None, None)
        assert updated.status == ProjectStatus.DRAFT.value
        assert updated.current_step_index == 0
