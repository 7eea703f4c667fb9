"""Current user endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from lingualetter.core.deps import BearerToken, ConsentedUser, CurrentUser, DBSession
from lingualetter.schemas.auth import UserResponse
from lingualetter.schemas.common import ActionResponse
from lingualetter.services.identity_service import IdentityBroker

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(user: CurrentUser, db: DBSession) -> UserResponse:
    """Get the authenticated user's profile."""
    record = await IdentityBroker(db).get_user(UUID(str(user["sub"])))
    if record is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return UserResponse.model_validate(record)


@router.delete("/me", response_model=ActionResponse)
async def delete_me(user: ConsentedUser, token: BearerToken, db: DBSession) -> ActionResponse:
    """Delete the authenticated user's account and revoke the presented token."""
    deleted = await IdentityBroker(db).delete_account(UUID(str(user["sub"])), token)
    if not deleted:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return ActionResponse(success=True, message="Account deleted")
