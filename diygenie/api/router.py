"""
API Router - Combines all route modules.
"""
from fastapi import APIRouter

from .routes import billing, entitlements, health, projects, scans, suggestions

# Main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(projects.router)
api_router.include_router(scans.router)
api_router.include_router(entitlements.router)
api_router.include_router(suggestions.router)
api_router.include_router(billing.router)

# Mounted at the root, outside /api (no service key)
root_router = APIRouter()
root_router.include_router(health.router)
root_router.include_router(billing.webhook_router)
