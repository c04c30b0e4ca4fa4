import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from signbox.auth.models import User
from signbox.auth.service import get_user_by_email
from signbox.database import get_db
from signbox.dependencies import get_current_user
from signbox.notifications.schemas import NotifyRequest
from signbox.notifications.service import EmailDeliveryError, build_invitation_payload, send_email

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def notify_signer(
    body: NotifyRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    if body.missing_required:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Missing required fields"})

    signer_name = body.signerName or body.to.split("@")[0]
    directory_entry = await get_user_by_email(db, body.to)
    if directory_entry is not None and directory_entry.name:
        signer_name = directory_entry.name

    payload = build_invitation_payload(
        body.to,
        signer_name,
        body.documentTitle,
        body.documentUrl,
        body.creatorName or current_user.display_name,
    )
    try:
        data = await send_email(payload)
    except EmailDeliveryError as e:
        logger.error("Failed to send email to %s: %s", body.to, e)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(e)})

    return {"success": True, "data": data}
