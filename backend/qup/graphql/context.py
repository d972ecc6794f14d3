"""
Per-request GraphQL context: the database session and the caller.

HTTP requests authenticate with `Authorization: Bearer <token>`. Websocket
clients, which cannot always set headers, may pass `?token=<token>` instead.
A bad token does not fail the request outright; it is kept and raised by the
first resolver that needs a user, so the client gets a normal GraphQL error.
"""

from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection
from strawberry.fastapi import BaseContext

from qup.database import get_db_session
from qup.exceptions import AuthenticationError
from qup.models import User
from qup.services.auth_service import auth_service


class GraphQLContext(BaseContext):
    def __init__(
        self,
        db: AsyncSession,
        user: Optional[User] = None,
        auth_error: Optional[AuthenticationError] = None,
    ):
        super().__init__()
        self.db = db
        self.user = user
        self.auth_error = auth_error

    def require_user(self) -> User:
        if self.user is None:
            raise self.auth_error or AuthenticationError()
        return self.user


def _bearer_token(connection: HTTPConnection) -> Optional[str]:
    header = connection.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    if connection.scope.get("type") == "websocket":
        return connection.query_params.get("token") or None
    return None


async def get_context(
    connection: HTTPConnection,
    db: AsyncSession = Depends(get_db_session),
) -> GraphQLContext:
    token = _bearer_token(connection)
    if token is None:
        return GraphQLContext(db=db)
    try:
        user = await auth_service.authenticate(db, token)
    except AuthenticationError as e:
        return GraphQLContext(db=db, auth_error=e)
    return GraphQLContext(db=db, user=user)
