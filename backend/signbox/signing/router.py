import uuid
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from signbox.auth.models import User
from signbox.common.exceptions import SignBoxError
from signbox.common.storage import get_download_url
from signbox.database import get_db
from signbox.dependencies import get_current_user
from signbox.documents.schemas import DocumentSignerResponse
from signbox.signing.schemas import (
    SavedSignatureResponse,
    SavedSignatureUpdate,
    SignatureSubmit,
    SignatureSubmitResponse,
    SigningBox,
    SigningDocumentInfo,
    SigningSessionResponse,
)
from signbox.signing.service import (
    composite_signed_document,
    delete_saved_signature,
    get_saved_signature,
    load_signing_session,
    save_signature,
    submit_signature,
)

router = APIRouter()
signatures_router = APIRouter()


# ── Signing ─────────────────────────────────────────────────────────────────────


@router.get("/{document_id}", response_model=SigningSessionResponse)
async def open_signing_session(
    document_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        session = await load_signing_session(db, document_id, current_user)
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return SigningSessionResponse(
        document=SigningDocumentInfo.model_validate(session.document, from_attributes=True),
        document_url=get_download_url(session.document.file_url),
        signer=DocumentSignerResponse.model_validate(session.signer),
        boxes=[SigningBox(height=b.height, **b.model_dump(exclude={"document_id", "signer_email"})) for b in session.boxes],
        saved_signature=session.saved_signature,
    )


@router.post("/{document_id}", response_model=SignatureSubmitResponse)
async def sign(
    document_id: uuid.UUID,
    body: SignatureSubmit,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        signer, document = await submit_signature(
            db,
            document_id,
            current_user,
            signature_data=body.signature_data,
            strokes=body.strokes,
            save_for_reuse=body.save_for_reuse,
        )
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return SignatureSubmitResponse(
        status=signer.status.value,
        signed_at=signer.signed_at,
        document_complete=document.is_complete,
    )


@router.get("/{document_id}/signed-pdf")
async def download_signed_pdf(
    document_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        document, content = await composite_signed_document(db, document_id, current_user)
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    filename = quote(f"{document.title}_signed.pdf")
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{filename}"},
    )


# ── Saved signature ─────────────────────────────────────────────────────────────


@signatures_router.get("/me", response_model=SavedSignatureResponse)
async def read_saved_signature(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    saved = await get_saved_signature(db, current_user.id)
    if saved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved signature")
    return saved


@signatures_router.put("/me", response_model=SavedSignatureResponse)
async def replace_saved_signature(
    body: SavedSignatureUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        return await save_signature(db, current_user.id, body.signature_data)
    except SignBoxError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@signatures_router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def remove_saved_signature(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    if not await delete_saved_signature(db, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved signature")
