"""Administrative routers (user administration and audit investigation)."""

from fastapi import APIRouter

from .audit import router as audit_router
from .users import router as users_router

router = APIRouter(prefix="/admin", tags=["admin"])
router.include_router(users_router)
router.include_router(audit_router)

__all__ = ["router"]
