"""Access-token decoding tests (no database)."""

import time

import pytest
from jose import JWTError, jwt

from issuance.core.config import settings
from issuance.core.security import ALGORITHM, create_access_token, decode_access_token


def test_round_trip_claims():
    token = create_access_token(sub="user-1", email="u1@example.com")
    claims = decode_access_token(token)
    assert claims["sub"] == "user-1"
    assert claims["email"] == "u1@example.com"
    assert claims["aud"] == settings.AUTH_JWT_AUDIENCE


def test_expired_token_rejected():
    token = create_access_token(sub="user-1", expires_in=-10)
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_wrong_audience_rejected():
    now = int(time.time())
    token = jwt.encode(
        {"sub": "user-1", "aud": "someone-else", "iat": now, "exp": now + 60},
        settings.AUTH_JWT_SECRET,
        algorithm=ALGORITHM,
    )
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_wrong_secret_rejected():
    now = int(time.time())
    token = jwt.encode(
        {"sub": "user-1", "aud": settings.AUTH_JWT_AUDIENCE, "exp": now + 60},
        "not-the-secret",
        algorithm=ALGORITHM,
    )
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_missing_sub_rejected():
    now = int(time.time())
    token = jwt.encode(
        {"aud": settings.AUTH_JWT_AUDIENCE, "exp": now + 60},
        settings.AUTH_JWT_SECRET,
        algorithm=ALGORITHM,
    )
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_minting_disabled_outside_mock(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MOCK", False)
    with pytest.raises(RuntimeError):
        create_access_token(sub="user-1")
