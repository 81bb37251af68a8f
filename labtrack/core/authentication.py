from typing import Annotated, Optional
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from labtrack.core.database import SessionDep
from labtrack.core.error_handling import ForbiddenError, UnauthenticatedError
from labtrack.core.logging import security_logger
from labtrack.core.settings import settings
from labtrack.src.models.users import User

# Tokens are issued by the main LabTrack auth service; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)


async def get_user(db: AsyncSession, username: str):
    result = await db.exec(select(User).where(User.username == username))
    user = result.first()
    return user


def verify_token(token: str):
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm]
        )
        username: str = payload.get("sub")
        if username is None:
            return None
        return username
    except JWTError as e:
        security_logger.warning(
            "Rejected bearer token",
            extra={"event_type": "token_rejected", "error_type": e.__class__.__name__},
        )
        return None


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)], db: SessionDep
) -> User:
    if not token:
        raise UnauthenticatedError()
    username = verify_token(token)
    if username is None:
        raise UnauthenticatedError("Invalid authentication credentials")
    user = await get_user(db, username=username)
    if user is None:
        raise UnauthenticatedError("User not found")
    if not user.is_active:
        security_logger.warning(
            f"Inactive account {username} attempted access",
            extra={"event_type": "inactive_account", "user_id": user.id},
        )
        raise ForbiddenError("Account is inactive")
    return user
