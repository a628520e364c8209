from fastapi import Cookie, HTTPException, Header
from wallet_hub.config import settings

# Set at initiation so the browser carries the token back on the gateway's redirect.
TOKEN_COOKIE = "wallet_token"


def require_bearer_token(
    authorization: str | None = Header(None, alias="Authorization"),
    wallet_token: str | None = Cookie(None),
) -> str:
    """
    FastAPI dependency returning the caller's bearer token so it can be forwarded
    to the backend. A navigation carries no Authorization header, so the token
    cookie is accepted next, then the configured token.
    """
    if authorization:
        if not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Unauthorized")
        token = authorization.split(" ", 1)[1].strip()
        if not token:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return token
    if wallet_token:
        return wallet_token
    if settings.bearer_token:
        return settings.bearer_token
    raise HTTPException(status_code=401, detail="Unauthorized")
