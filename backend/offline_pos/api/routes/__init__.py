"""API routes."""

from fastapi import APIRouter

from offline_pos.api.routes import offline, reconciliation

api_router = APIRouter()

api_router.include_router(offline.router, prefix="/offline", tags=["offline"])
api_router.include_router(reconciliation.router, prefix="/reconciliation", tags=["reconciliation"])
