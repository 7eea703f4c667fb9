"""Consent tracking endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from lingualetter.core.deps import CurrentUser, DBSession
from lingualetter.schemas.consent import ConsentCreate, ConsentInfo, ConsentRecordResponse
from lingualetter.services.consent_service import ConsentService

router = APIRouter()


@router.get("/status", response_model=ConsentInfo)
async def consent_status(user: CurrentUser, db: DBSession) -> ConsentInfo:
    """
    Check if user needs to consent (or re-consent).

    ``required`` is True when there is no consent on record, a required
    policy was declined, or the accepted terms/privacy versions are outdated.
    """
    return await ConsentService(db).get_info(UUID(str(user["sub"])))


@router.post("", response_model=ConsentRecordResponse, status_code=status.HTTP_201_CREATED)
async def submit_consent(
    data: ConsentCreate,
    user: CurrentUser,
    db: DBSession,
) -> ConsentRecordResponse:
    """Append a consent record for the current user."""
    record = await ConsentService(db).append(UUID(str(user["sub"])), data)
    return ConsentRecordResponse.model_validate(record)
