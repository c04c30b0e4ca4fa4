from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from signbox.common.base_models import TimestampMixin, UUIDBase


class User(UUIDBase, TimestampMixin):
    """Directory entry for an identity-provider account.

    Rows share their id with the provider's subject so signer emails can be
    resolved to identities before those users ever sign in here.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]
