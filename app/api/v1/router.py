"""Aggregates all v1 routers."""
from fastapi import APIRouter
from app.api.v1.reconciliation import router as reconciliation_router

router = APIRouter()
router.include_router(reconciliation_router)
