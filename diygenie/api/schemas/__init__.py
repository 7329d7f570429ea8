"""
API Schemas - Pydantic models for request/response validation.
"""
from .entitlements import CheckoutRequest, CheckoutResponse, EntitlementResponse, WebhookAck
from .projects import (
    ImageAttach,
    OperationAcceptedResponse,
    PlanRequest,
    PlanState,
    PreviewRequest,
    PreviewState,
    ProgressUpdate,
    ProjectCreate,
    ProjectDetail,
    ProjectList,
    ProjectSummary,
)
from .scans import MeasurementUpdate, ScanCreate, ScanResponse
from .suggestions import DesignSuggestion, SuggestionList

__all__ = [
    "CheckoutRequest",
    "CheckoutResponse",
    "EntitlementResponse",
    "WebhookAck",
    "ImageAttach",
    "OperationAcceptedResponse",
    "PlanRequest",
    "PlanState",
    "PreviewRequest",
    "PreviewState",
    "ProgressUpdate",
    "ProjectCreate",
    "ProjectDetail",
    "ProjectList",
    "ProjectSummary",
    "MeasurementUpdate",
    "ScanCreate",
    "ScanResponse",
    "DesignSuggestion",
    "SuggestionList",
]
