import asyncio
import logging
import re
import uuid
from collections.abc import Sequence
from pathlib import PurePath
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signbox.auth.models import User
from signbox.auth.service import get_user_by_email
from signbox.common import storage
from signbox.common.exceptions import AuthorizationDenied, DocumentNotFound, InvalidBox, UnknownSigner
from signbox.compositor.pdf import count_pages
from signbox.config import settings
from signbox.documents.models import Document, DocumentSigner, SignatureBoxRecord, SignerStatus
from signbox.documents.schemas import SignatureBoxCreate
from signbox.placement.registry import BoxRegistry, SignatureBox, parse_box

logger = logging.getLogger(__name__)


def storage_key_for(owner_id: uuid.UUID, file_name: str) -> str:
    path = PurePath(file_name or "document.pdf")
    stem = re.sub(r"[^a-zA-Z0-9]", "_", path.stem)[:50] or "document"
    return f"{owner_id}/{uuid.uuid4().hex}_{stem}.pdf"


def record_to_box(record: SignatureBoxRecord) -> SignatureBox:
    return parse_box(
        {
            "id": str(record.id),
            "document_id": record.document_id,
            "signer_email": record.signer_email,
            "page": record.page,
            "x": record.x,
            "y": record.y,
            "width": record.width,
            "aspect_ratio": record.aspect_ratio,
        }
    )


def document_registry(document: Document) -> BoxRegistry:
    return BoxRegistry(record_to_box(r) for r in document.signature_boxes)


def build_registry(boxes: Sequence[SignatureBoxCreate], page_count: int) -> BoxRegistry:
    registry = BoxRegistry()
    for raw in boxes:
        box = parse_box(raw.model_dump())
        if box.page > page_count:
            raise InvalidBox(f"Signature box on page {box.page} but the document has {page_count} page(s)")
        registry.add(box)
    if not len(registry):
        raise InvalidBox("At least one signature box is required")
    return registry


async def resolve_signers(db: AsyncSession, emails: Sequence[str]) -> dict[str, User]:
    resolved = {}
    for email in emails:
        user = await get_user_by_email(db, email)
        if user is None:
            raise UnknownSigner(f"No registered user for {email}; ask them to sign in once first")
        resolved[email] = user
    return resolved


async def create_document(
    db: AsyncSession,
    creator: User,
    title: str,
    file_name: str,
    content: bytes,
    boxes: Sequence[SignatureBoxCreate],
) -> Document:
    page_count = await asyncio.to_thread(count_pages, content)
    registry = build_registry(boxes, page_count)
    signers = await resolve_signers(db, registry.unique_signer_emails())

    storage_key = storage_key_for(creator.id, file_name)
    await storage.upload_object(storage_key, content)

    document = Document(title=title, file_url=storage_key, file_name=file_name, created_by=creator.id)
    db.add(document)
    await db.flush()

    for position, box in enumerate(registry):
        db.add(
            SignatureBoxRecord(
                document_id=document.id,
                signer_email=box.signer_email,
                page=box.page,
                x=box.x,
                y=box.y,
                width=box.width,
                aspect_ratio=box.aspect_ratio,
                position=position,
            )
        )

    for email, user in signers.items():
        db.add(
            DocumentSigner(
                document_id=document.id,
                signer_id=user.id,
                signer_email=email,
                status=SignerStatus.pending,
            )
        )

    await db.flush()
    await db.refresh(document, attribute_names=["signature_boxes", "signers"])
    logger.info(
        "Document %s created by %s with %d box(es) for %d signer(s)",
        document.id, creator.email, len(registry), len(signers),
    )
    return document


def queue_signing_invitations(document: Document, creator: User) -> int:
    """Queue one invitation email per signer. Queue failures never fail the caller."""
    from signbox.notifications.celery_tasks import send_signing_invitation

    document_url = f"{settings.public_app_url.rstrip('/')}/pending/{document.id}"
    queued = 0
    for signer in document.signers:
        try:
            send_signing_invitation.delay(
                signer.signer_email,
                signer.signer_email.split("@")[0],
                document.title,
                document_url,
                creator.display_name,
            )
            queued += 1
        except Exception:
            logger.exception("Could not queue signing invitation for %s", signer.signer_email)
    return queued


async def get_document(db: AsyncSession, document_id: uuid.UUID) -> Optional[Document]:
    result = await db.execute(select(Document).where(Document.id == document_id))
    return result.scalar_one_or_none()


def can_view(document: Document, user: User) -> bool:
    return document.created_by == user.id or any(s.signer_id == user.id for s in document.signers)


async def get_document_for_user(db: AsyncSession, document_id: uuid.UUID, user: User) -> Document:
    document = await get_document(db, document_id)
    if document is None:
        raise DocumentNotFound()
    if not can_view(document, user):
        raise AuthorizationDenied()
    return document


async def list_created_documents(db: AsyncSession, user: User) -> list[Document]:
    result = await db.execute(
        select(Document).where(Document.created_by == user.id).order_by(Document.created_at.desc())
    )
    return result.scalars().all()


async def list_assigned_documents(
    db: AsyncSession,
    user: User,
    status: Optional[SignerStatus] = None,
) -> list[Document]:
    query = select(Document).join(DocumentSigner).where(DocumentSigner.signer_id == user.id)
    if status is not None:
        query = query.where(DocumentSigner.status == status)
    result = await db.execute(query.order_by(Document.created_at.desc()))
    return result.scalars().unique().all()


async def delete_document(db: AsyncSession, document: Document, user: User) -> None:
    if document.created_by != user.id:
        raise AuthorizationDenied("Only the creator can delete a document")

    try:
        await storage.remove_object(document.file_url)
    except Exception:
        logger.warning("Could not remove %s from object storage", document.file_url, exc_info=True)

    await db.delete(document)
    await db.flush()
    logger.info("Document %s deleted by %s", document.id, user.email)


async def get_original_pdf(document: Document) -> bytes:
    return await storage.download_object(document.file_url)
