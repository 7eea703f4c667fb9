"""Root-level routes reached by browser redirects and email links."""

from fastapi import APIRouter

from lingualetter.api.public import auth, newsletter

public_router = APIRouter()

# OAuth handoff and session (no /api/v1 prefix: provider redirect URIs point here)
public_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"],
)

# Confirmation and unsubscribe links embedded in emails
public_router.include_router(
    newsletter.router,
    prefix="/newsletter",
    tags=["newsletter-links"],
)
