"""
API routers, mounted under /api by edubridge/main.py
"""
from fastapi import APIRouter

from edubridge.routes import catalog, users, materials, approvals, comments, notifications, settings

router = APIRouter(prefix="/api")

router.include_router(catalog.router)
router.include_router(users.router)
router.include_router(materials.router)
router.include_router(approvals.router)
router.include_router(comments.router)
router.include_router(notifications.router)
router.include_router(settings.router)
