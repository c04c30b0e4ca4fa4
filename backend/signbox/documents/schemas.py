import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from signbox.documents.models import SignerStatus

# ── Create schemas ──────────────────────────────────────────────────────────────


class SignatureBoxCreate(BaseModel):
    signer_email: str = Field(min_length=3, max_length=255)
    page: int
    x: float
    y: float
    width: float = 30.0
    aspect_ratio: float = 3.0


# ── Response schemas ────────────────────────────────────────────────────────────


class SignatureBoxResponse(BaseModel):
    id: uuid.UUID
    document_id: uuid.UUID
    signer_email: str
    page: int
    x: float
    y: float
    width: float
    aspect_ratio: float

    model_config = {"from_attributes": True}


class DocumentSignerResponse(BaseModel):
    id: uuid.UUID
    document_id: uuid.UUID
    signer_id: uuid.UUID
    signer_email: str
    status: SignerStatus
    signed_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class DocumentResponse(BaseModel):
    id: uuid.UUID
    title: str
    file_name: str
    created_by: uuid.UUID
    is_complete: bool
    signers: list[DocumentSignerResponse] = []
    signature_boxes: list[SignatureBoxResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
