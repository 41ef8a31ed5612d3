from __future__ import annotations

"""Authentication router package: sign-in, second factor, registration and password recovery."""

from fastapi import APIRouter

from .routes import login as login_route
from .routes import password_reset as password_reset_route
from .routes import register as register_route
from .routes import two_factor as two_factor_route

router = APIRouter(prefix="/auth", tags=["auth"])

# Delegate to sub-routers ----------------------------------------------------

router.include_router(login_route.router)
router.include_router(two_factor_route.router)
router.include_router(register_route.router)
router.include_router(password_reset_route.router)

__all__ = ["router"]
