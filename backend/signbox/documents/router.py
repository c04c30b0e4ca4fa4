import json
import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import RedirectResponse
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from signbox.auth.models import User
from signbox.common.exceptions import SignBoxError
from signbox.common.storage import get_download_url
from signbox.config import settings
from signbox.database import get_db
from signbox.dependencies import get_current_user
from signbox.documents.models import SignerStatus
from signbox.documents.schemas import DocumentResponse, SignatureBoxCreate
from signbox.documents.service import (
    create_document,
    delete_document,
    get_document_for_user,
    list_assigned_documents,
    list_created_documents,
    queue_signing_invitations,
)

router = APIRouter()

_boxes_adapter = TypeAdapter(list[SignatureBoxCreate])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_new_document(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    title: str = Form(..., min_length=1, max_length=500),
    boxes: str = Form(...),
    file: UploadFile = File(...),
):
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")

    try:
        box_data = _boxes_adapter.validate_python(json.loads(boxes))
    except (json.JSONDecodeError, ValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid boxes payload: {e}")

    try:
        document = await create_document(
            db, current_user, title, file.filename or "document.pdf", content, box_data
        )
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    queue_signing_invitations(document, current_user)
    return document


@router.get("", response_model=list[DocumentResponse])
async def list_my_documents(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await list_created_documents(db, current_user)


@router.get("/assigned", response_model=list[DocumentResponse])
async def list_documents_assigned_to_me(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    signer_status: Optional[SignerStatus] = None,
):
    return await list_assigned_documents(db, current_user, signer_status)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document_detail(
    document_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        return await get_document_for_user(db, document_id, current_user)
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{document_id}/file")
async def download_original(
    document_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        document = await get_document_for_user(db, document_id, current_user)
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return RedirectResponse(url=get_download_url(document.file_url))


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_document(
    document_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        document = await get_document_for_user(db, document_id, current_user)
        await delete_document(db, document, current_user)
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
