"""API v1 router combining all route modules."""

from fastapi import APIRouter

from lingualetter.api.v1 import admin, consent, health, newsletter, users

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Current user profile and account deletion (requires auth)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
)

# Consent status and submission (requires auth)
api_router.include_router(
    consent.router,
    prefix="/consent",
    tags=["consent"],
)

# Newsletter subscription (public, optional auth for unsubscribe-by-email)
api_router.include_router(
    newsletter.router,
    prefix="/newsletter",
    tags=["newsletter"],
)

# Manual job triggers (admin only)
api_router.include_router(
    admin.router,
    prefix="/admin",
    tags=["admin"],
)
