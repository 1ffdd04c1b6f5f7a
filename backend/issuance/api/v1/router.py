"""Aggregate all v1 sub-routers."""

from fastapi import APIRouter

from issuance.api.v1.documents import router as documents_router
from issuance.api.v1.health import router as health_router
from issuance.api.v1.sequences import router as sequences_router
from issuance.api.v1.tenants import router as tenants_router

api_v1_router = APIRouter()

api_v1_router.include_router(health_router, tags=["health"])
api_v1_router.include_router(tenants_router, prefix="/tenants", tags=["tenants"])
api_v1_router.include_router(
    sequences_router, prefix="/tenants/me/sequences", tags=["sequences"]
)
api_v1_router.include_router(
    documents_router, prefix="/tenants/me/documents", tags=["documents"]
)
