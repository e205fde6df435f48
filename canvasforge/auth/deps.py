from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from canvasforge.config import settings
from canvasforge.auth.identity import Authenticator, PassThroughAuthenticator, TokenAuthenticator

security = HTTPBearer(auto_error=False)

_AUTHENTICATORS = {
    "passthrough": PassThroughAuthenticator,
    "token": TokenAuthenticator,
}

def get_authenticator() -> Authenticator:
    try:
        return _AUTHENTICATORS[settings.AUTH_MODE]()
    except KeyError:
        raise RuntimeError(f"Unknown AUTH_MODE {settings.AUTH_MODE!r}") from None

async def get_caller_key(
    x_owner_key: str | None = Header(default=None),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    authenticator: Authenticator = Depends(get_authenticator),
) -> str:
    token = credentials.credentials if credentials else None
    owner_key = authenticator.authenticate(x_owner_key, token)
    if owner_key is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Owner identity required")
    return owner_key

async def get_optional_caller_key(
    x_owner_key: str | None = Header(default=None),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    authenticator: Authenticator = Depends(get_authenticator),
) -> str | None:
    """Like get_caller_key, but anonymous callers get None instead of a 401."""
    token = credentials.credentials if credentials else None
    return authenticator.authenticate(x_owner_key, token)
