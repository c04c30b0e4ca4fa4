import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from signbox.documents.schemas import DocumentSignerResponse


class SigningBox(BaseModel):
    id: str
    page: int
    x: float
    y: float
    width: float
    aspect_ratio: float
    height: float


class SigningDocumentInfo(BaseModel):
    id: uuid.UUID
    title: str
    file_name: str


class SigningSessionResponse(BaseModel):
    document: SigningDocumentInfo
    document_url: str
    signer: DocumentSignerResponse
    boxes: list[SigningBox]
    saved_signature: Optional[str] = None


class SignatureSubmit(BaseModel):
    signature_data: Optional[str] = None
    # canvas-space pointer samples, one list per stroke
    strokes: Optional[list[list[tuple[float, float]]]] = None
    save_for_reuse: bool = True


class SignatureSubmitResponse(BaseModel):
    status: str
    signed_at: datetime
    document_complete: bool


class SavedSignatureUpdate(BaseModel):
    signature_data: str = Field(min_length=1)


class SavedSignatureResponse(BaseModel):
    signature_data: str
    updated_at: datetime

    model_config = {"from_attributes": True}
