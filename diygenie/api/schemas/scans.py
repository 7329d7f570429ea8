"""
API Schemas for room scans.
"""
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict


class ScanCreate(BaseModel):
    """Raw AR scan payload captured on the device."""
    scan_json: Optional[dict[str, Any]] = None


class MeasurementUpdate(BaseModel):
    """Written by the external measurement collaborator."""
    measure_status: Literal["pending", "measuring", "done", "failed"]
    measure_result: Optional[dict[str, Any]] = None


class ScanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    scan_json: Optional[dict[str, Any]] = None
    measure_status: str
    measure_result: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
