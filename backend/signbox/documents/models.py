import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from signbox.common.base_models import GUID, CreatedAtMixin, TimestampMixin, UUIDBase


class SignerStatus(str, enum.Enum):
    pending = "pending"
    signed = "signed"


class Document(UUIDBase, TimestampMixin):
    __tablename__ = "documents"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("users.id"), nullable=False, index=True)

    signature_boxes = relationship(
        "SignatureBoxRecord",
        back_populates="document",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="SignatureBoxRecord.position",
    )
    signers = relationship("DocumentSigner", back_populates="document", lazy="selectin", cascade="all, delete-orphan")
    creator = relationship("User", lazy="selectin")

    @property
    def is_complete(self) -> bool:
        return bool(self.signers) and all(s.status == SignerStatus.signed for s in self.signers)


class SignatureBoxRecord(UUIDBase, CreatedAtMixin):
    __tablename__ = "signature_boxes"
    __table_args__ = (
        CheckConstraint("page >= 1", name="page"),
        CheckConstraint("width >= 10 AND width <= 80", name="width"),
        CheckConstraint("aspect_ratio >= 0.1", name="aspect_ratio"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    signer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    page: Mapped[int] = mapped_column(Integer, nullable=False)
    x: Mapped[float] = mapped_column(Float, nullable=False)
    y: Mapped[float] = mapped_column(Float, nullable=False)
    width: Mapped[float] = mapped_column(Float, nullable=False)
    aspect_ratio: Mapped[float] = mapped_column(Float, nullable=False)
    # insertion order within the document
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    document = relationship("Document", back_populates="signature_boxes")


class DocumentSigner(UUIDBase, CreatedAtMixin):
    __tablename__ = "document_signers"
    __table_args__ = (UniqueConstraint("document_id", "signer_id", name="uq_document_signer"),)

    document_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    signer_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    signer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    signature_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[SignerStatus] = mapped_column(
        Enum(SignerStatus, name="signerstatus"),
        default=SignerStatus.pending,
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    document = relationship("Document", back_populates="signers")
