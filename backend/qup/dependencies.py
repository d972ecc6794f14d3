"""
FastAPI dependencies for bearer-token authentication.

`Authorization: Bearer <access token>` is resolved to a User through
AuthService.authenticate. A missing header raises AuthenticationError
(401 via the global handler) for get_current_user, and yields None for
get_optional_user.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.exceptions import AuthenticationError
from qup.models import User
from qup.services.auth_service import auth_service

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    return await auth_service.authenticate(db, credentials.credentials)


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthenticationError()
    return user
