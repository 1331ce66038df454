import uuid
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from tubely.core.config import settings
from tubely.core.errors import AuthError, InvalidToken

http_bearer = HTTPBearer(auto_error=False)

class Principal(BaseModel):
    user_id: uuid.UUID

def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], audience=settings.REQUIRED_AUDIENCE)
    except JWTError as e:
        raise InvalidToken(f"Couldn't validate JWT: {e}") from e

def verify_token(token: str) -> uuid.UUID:
    """Validate a bearer token and return the requester id from its ``sub`` claim."""
    data = _decode_token(token)
    subject = data.get("sub") or data.get("user_id")
    if not subject:
        raise InvalidToken("Couldn't validate JWT: missing subject")
    try:
        return uuid.UUID(str(subject))
    except ValueError as e:
        raise InvalidToken("Couldn't validate JWT: subject is not a user id") from e

async def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(http_bearer)) -> Principal:
    if creds is None:
        raise AuthError("Couldn't find JWT")
    return Principal(user_id=verify_token(creds.credentials))
