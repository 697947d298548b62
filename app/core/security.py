from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
import jwt

from app.core.config import Settings, settings as default_settings
from app.core.database import get_session
from app.models.user import Role
from app.services.auth_service import decode_access_token, get_user_by_id


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


class CurrentUser(BaseModel):
    """The verified identity attached to an authenticated request."""

    id: int
    username: str
    role: Role


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", default_settings)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    if not token:
        raise _unauthorized("Access token required")
    try:
        payload = decode_access_token(token, settings)
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
        raise _unauthorized("Could not validate credentials") from exc

    user = await get_user_by_id(session, user_id)
    if not user:
        raise _unauthorized("User not found")
    return CurrentUser(id=user.id, username=user.username, role=user.role)

