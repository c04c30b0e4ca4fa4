import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from signbox.auth.models import User
from signbox.common.exceptions import IdentityConflict
from signbox.config import settings

logger = logging.getLogger(__name__)


def create_access_token(user_id: str, email: str, name: Optional[str] = None, expires_minutes: int = 15) -> str:
    """Mint a token the way the identity provider does. Used by tests and local tooling."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": user_id, "email": email, "name": name, "type": "access", "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_or_provision_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    email: Optional[str],
    name: Optional[str] = None,
) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is not None or not email:
        return user

    existing = await get_user_by_email(db, email)
    if existing is not None:
        # documents and signers reference the old id, so it is never re-keyed
        logger.warning("Token subject %s claims %s, already held by user %s", user_id, existing.email, existing.id)
        raise IdentityConflict()

    user = User(id=user_id, email=email.strip().lower(), name=name)
    db.add(user)
    await db.flush()
    logger.info("Provisioned directory entry for %s", user.email)
    return user


async def list_users(db: AsyncSession) -> Sequence[User]:
    """Active directory entries for the signer picker, ordered by name then email."""
    result = await db.execute(
        select(User).where(User.is_active.is_(True)).order_by(User.name.is_(None), User.name, User.email)
    )
    return result.scalars().all()
