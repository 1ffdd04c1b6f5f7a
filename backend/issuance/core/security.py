"""Access-token verification for the hosted auth service (HS256 JWTs)."""

import time

from jose import JWTError, jwt

from issuance.core.config import settings

ALGORITHM = "HS256"


def decode_access_token(token: str) -> dict:
    """Verify signature, expiry and audience. Returns the claims dict."""
    claims = jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[ALGORITHM],
        audience=settings.AUTH_JWT_AUDIENCE,
        options={"verify_iss": False},
    )
    if not claims.get("sub"):
        raise JWTError("Token missing sub claim")
    return claims


def create_access_token(
    sub: str,
    email: str = "test@example.com",
    expires_in: int = 900,
) -> str:
    """Mint a token signed with AUTH_JWT_SECRET. Only usable when AUTH_MOCK=true."""
    if not settings.AUTH_MOCK:
        raise RuntimeError("Token minting is disabled outside mock mode")
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "aud": settings.AUTH_JWT_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.AUTH_JWT_SECRET, algorithm=ALGORITHM)
