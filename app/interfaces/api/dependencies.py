"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.domain.entities import Identity
from app.infrastructure.security import identity_from_token

bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "access_token"


def resolve_identity(token: str) -> Identity:
    """Resolve the recipient identity for the provided token."""

    try:
        return identity_from_token(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    """Return the identity carried by the request's bearer token."""

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return resolve_identity(credentials.credentials)


def websocket_token(websocket: WebSocket) -> str | None:
    """Extract the identity token offered by a websocket handshake.

    Browsers cannot set headers on websocket upgrades, so the query string and
    the session cookie are accepted besides the ``Authorization`` header.
    """

    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return websocket.cookies.get(TOKEN_COOKIE) or None
