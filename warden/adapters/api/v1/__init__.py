"""API v1 router configuration.
"""

from fastapi import APIRouter

from .admin import router as admin_router
from .auth import router as auth_router
from .csrf import router as csrf_router
from .health import router as health_router
from .profile import router as profile_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(csrf_router, tags=["csrf"])
api_router.include_router(auth_router)
api_router.include_router(profile_router)
api_router.include_router(admin_router)
