"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import auth, clients, health, projects, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(clients.router, prefix="/clients", tags=["clients"])
router.include_router(projects.router, prefix="/projects", tags=["projects"])
