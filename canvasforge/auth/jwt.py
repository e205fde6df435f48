from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from canvasforge.config import get_settings

def create_access_token(owner_key: str, expires_minutes: int | None = None) -> str:
    """Issue a bearer token asserting ``owner_key`` (used by the wallet sign-in service)."""
    settings = get_settings()
    minutes = settings.JWT_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode = {"sub": owner_key, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

def decode_access_token(token: str) -> dict | None:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        return None
