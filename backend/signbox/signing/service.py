"""Signer workflow: open an assignment, submit a signature, build the signed PDF.

A signer moves ``pending -> signed`` exactly once. The status flip is a
version-checked UPDATE, so two racing submissions for the same signer row
cannot both succeed.
"""

import asyncio
import logging
import uuid
from collections.abc import Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from signbox.auth.models import User
from signbox.capture.pad import Point, decode_data_uri, render_strokes
from signbox.common.exceptions import (
    AlreadySigned,
    AuthorizationDenied,
    CompositeInProgress,
    DocumentIncomplete,
    SerializationError,
    SignatureRequired,
)
from signbox.compositor.pdf import composite_pdf_async
from signbox.config import settings
from signbox.documents.models import Document, DocumentSigner, SignerStatus
from signbox.documents.service import document_registry, get_document_for_user, get_original_pdf
from signbox.placement.registry import SignatureBox
from signbox.signing.models import UserSignature

logger = logging.getLogger(__name__)


@dataclass
class SigningSession:
    document: Document
    signer: DocumentSigner
    boxes: list[SignatureBox]
    saved_signature: Optional[str]


class CompositeTracker:
    """Documents that currently have a signed-PDF build running in this process."""

    def __init__(self):
        self._in_flight: set[uuid.UUID] = set()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def claim(self, document_id: uuid.UUID):
        async with self._lock:
            if document_id in self._in_flight:
                raise CompositeInProgress()
            self._in_flight.add(document_id)
        try:
            yield
        finally:
            self._in_flight.discard(document_id)


composites = CompositeTracker()


def _signer_for(document: Document, user: User) -> DocumentSigner:
    for signer in document.signers:
        if signer.signer_id == user.id:
            return signer
    raise AuthorizationDenied("You are not a signer of this document")


async def load_signing_session(db: AsyncSession, document_id: uuid.UUID, user: User) -> SigningSession:
    document = await get_document_for_user(db, document_id, user)
    signer = _signer_for(document, user)
    if signer.status == SignerStatus.signed:
        raise AlreadySigned()

    boxes = document_registry(document).by_signer_email(signer.signer_email)
    saved = await get_saved_signature(db, user.id)
    return SigningSession(
        document=document,
        signer=signer,
        boxes=boxes,
        saved_signature=saved.signature_data if saved else None,
    )


def resolve_signature_image(
    signature_data: Optional[str],
    strokes: Optional[Sequence[Sequence[Point]]],
) -> str:
    """Pick the submitted image: an explicit PNG data URI wins over raw strokes."""
    if not signature_data and strokes:
        signature_data = render_strokes(
            strokes,
            width=settings.signature_canvas_width,
            height=settings.signature_canvas_height,
            history_depth=settings.signature_history_depth,
        )
    if not signature_data:
        raise SignatureRequired()
    decode_data_uri(signature_data)
    return signature_data


async def submit_signature(
    db: AsyncSession,
    document_id: uuid.UUID,
    user: User,
    signature_data: Optional[str] = None,
    strokes: Optional[Sequence[Sequence[Point]]] = None,
    save_for_reuse: bool = True,
) -> tuple[DocumentSigner, Document]:
    session = await load_signing_session(db, document_id, user)
    image = resolve_signature_image(signature_data, strokes)

    if save_for_reuse and image != session.saved_signature:
        try:
            async with db.begin_nested():
                await save_signature(db, user.id, image)
        except SQLAlchemyError:
            logger.warning("Could not store reusable signature for %s", user.email, exc_info=True)

    signer = session.signer
    result = await db.execute(
        update(DocumentSigner)
        .where(
            DocumentSigner.id == signer.id,
            DocumentSigner.version == signer.version,
            DocumentSigner.status == SignerStatus.pending,
        )
        .values(
            status=SignerStatus.signed,
            signature_data=image,
            signed_at=datetime.now(timezone.utc),
            version=signer.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadySigned()

    await db.refresh(signer)
    await db.refresh(session.document, attribute_names=["signers"])
    logger.info(
        "%s signed document %s (%s)",
        user.email, document_id, "complete" if session.document.is_complete else "awaiting other signers",
    )
    return signer, session.document


def _stored_signature_images(document: Document) -> dict[str, bytes]:
    images = {}
    for s in document.signers:
        if s.status != SignerStatus.signed or not s.signature_data:
            continue
        try:
            images[s.signer_email] = decode_data_uri(s.signature_data)
        except SignatureRequired as e:
            # accepted at submit time, so the stored row is damaged
            raise SerializationError(f"Stored signature for {s.signer_email} could not be decoded") from e
    return images


async def composite_signed_document(db: AsyncSession, document_id: uuid.UUID, user: User) -> tuple[Document, bytes]:
    document = await get_document_for_user(db, document_id, user)
    if not document.is_complete:
        raise DocumentIncomplete()

    async with composites.claim(document.id):
        original = await get_original_pdf(document)
        signatures = _stored_signature_images(document)
        boxes = list(document_registry(document))
        signed = await composite_pdf_async(original, boxes, signatures)

    logger.info("Built signed copy of document %s for %s", document.id, user.email)
    return document, signed


# ── Saved signatures ────────────────────────────────────────────────────────────


async def get_saved_signature(db: AsyncSession, user_id: uuid.UUID) -> Optional[UserSignature]:
    result = await db.execute(select(UserSignature).where(UserSignature.user_id == user_id))
    return result.scalar_one_or_none()


async def save_signature(db: AsyncSession, user_id: uuid.UUID, signature_data: str) -> UserSignature:
    decode_data_uri(signature_data)
    saved = await get_saved_signature(db, user_id)
    if saved is None:
        saved = UserSignature(user_id=user_id, signature_data=signature_data)
        db.add(saved)
    else:
        saved.signature_data = signature_data
        saved.updated_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(saved)
    return saved


async def delete_saved_signature(db: AsyncSession, user_id: uuid.UUID) -> bool:
    saved = await get_saved_signature(db, user_id)
    if saved is None:
        return False
    await db.delete(saved)
    await db.flush()
    return True
