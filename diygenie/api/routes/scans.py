"""
Room Scans API Routes.

Scans are captured on the device and attached to a project; the measurement
is filled in later by an external collaborator via PATCH.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.api.deps import get_current_user_id, get_lifecycle
from diygenie.infra.db.models import MeasureStatus
from diygenie.infra.db.repositories import RoomScanRepository
from diygenie.infra.db.session import get_db
from diygenie.services.errors import NotFound
from diygenie.services.lifecycle import ProjectLifecycle
from ..schemas import MeasurementUpdate, ScanCreate, ScanResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["scans"])


@router.post(
    "/projects/{project_id}/scans",
    response_model=ScanResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_scan(
    project_id: str,
    data: ScanCreate,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db),
) -> ScanResponse:
    project = await lifecycle.get_project(project_id, user_id)
    scan = await RoomScanRepository(db, user_id=user_id).create(
        project_id=project.id,
        scan_json=data.scan_json,
        measure_status=MeasureStatus.PENDING.value,
    )
    logger.info(f"Created room scan {scan.id} for project {project.id}")
    return ScanResponse.model_validate(scan)


@router.get("/projects/{project_id}/scans", response_model=list[ScanResponse])
async def list_scans(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db),
) -> list[ScanResponse]:
    project = await lifecycle.get_project(project_id, user_id)
    scans = await RoomScanRepository(db, user_id=user_id).list_for_project(project.id)
    return [ScanResponse.model_validate(s) for s in scans]


@router.get("/scans/{scan_id}", response_model=ScanResponse)
async def get_scan(
    scan_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ScanResponse:
    scan = await RoomScanRepository(db, user_id=user_id).get_by_id(scan_id)
    if scan is None:
        raise NotFound(f"Scan {scan_id} not found")
    return ScanResponse.model_validate(scan)


@router.patch("/scans/{scan_id}/measurement", response_model=ScanResponse)
async def update_measurement(
    scan_id: str,
    data: MeasurementUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ScanResponse:
    scan = await RoomScanRepository(db, user_id=user_id).update(
        scan_id,
        measure_status=data.measure_status,
        measure_result=data.measure_result,
    )
    if scan is None:
        raise NotFound(f"Scan {scan_id} not found")
    return ScanResponse.model_validate(scan)
