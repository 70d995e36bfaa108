"""Identity token helpers.

Sessions are established elsewhere; this service only verifies the signed
token that carries the recipient identity.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import get_settings
from app.domain.entities import Identity

ALGORITHM = "HS256"


def create_access_token(identity: Identity, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    expire = datetime.now(tz=timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {"sub": identity.recipient_id, "role": identity.role, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def identity_from_token(token: str) -> Identity:
    """Return the :class:`Identity` encoded in ``token``.

    Raises ``ValueError`` when the token is invalid, expired or incomplete.
    """

    payload = decode_access_token(token)
    recipient_id = payload.get("sub")
    role = payload.get("role")
    if not isinstance(recipient_id, str) or not recipient_id:
        raise ValueError("Token does not identify a recipient")
    if not isinstance(role, str) or not role:
        raise ValueError("Token does not carry a role")
    return Identity(recipient_id=recipient_id, role=role)
