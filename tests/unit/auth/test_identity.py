"""
Tests for bearer-token identity verification with PyJWT.
"""

import time

import jwt
import pytest

from fitbit_token_bridge.auth.identity import JWTIdentityVerifier, extract_bearer_token
from fitbit_token_bridge.config import IdentityConfig
from fitbit_token_bridge.exceptions import AuthenticationError

SECRET = "test-signing-secret-that-is-long-enough"


def sign(claims, key=SECRET):
    return jwt.encode(claims, key, algorithm="HS256")


@pytest.fixture
def verifier():
    return JWTIdentityVerifier(
        key=SECRET, algorithms=["HS256"], audience="fitbit-bridge", issuer="https://id.example.test"
    )


def valid_claims(**overrides):
    claims = {
        "sub": "u1",
        "aud": "fitbit-bridge",
        "iss": "https://id.example.test",
        "exp": int(time.time()) + 300,
    }
    claims.update(overrides)
    return claims


class TestExtractBearerToken:
    """Test Authorization header parsing."""

    def test_bearer_header(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "bearer abc"])
    def test_rejects_missing_or_other_schemes(self, header):
        with pytest.raises(AuthenticationError) as exc_info:
            extract_bearer_token(header)
        assert exc_info.value.status_code == 401


class TestJWTIdentityVerifier:
    """Test token verification."""

    def test_returns_subject(self, verifier):
        assert verifier.verify(sign(valid_claims())) == "u1"

    def test_custom_subject_claim(self):
        verifier = JWTIdentityVerifier(key=SECRET, algorithms=["HS256"], subject_claim="uid")
        token = sign({"uid": "owner-7", "exp": int(time.time()) + 60})
        assert verifier.verify(token) == "owner-7"

    def test_expired_token(self, verifier):
        token = sign(valid_claims(exp=int(time.time()) - 10))
        with pytest.raises(AuthenticationError) as exc_info:
            verifier.verify(token)
        assert "expired" in exc_info.value.message

    def test_bad_signature(self, verifier):
        token = sign(valid_claims(), key="some-other-secret-that-is-long-enough")
        with pytest.raises(AuthenticationError):
            verifier.verify(token)

    def test_wrong_audience(self, verifier):
        with pytest.raises(AuthenticationError):
            verifier.verify(sign(valid_claims(aud="someone-else")))

    def test_wrong_issuer(self, verifier):
        with pytest.raises(AuthenticationError):
            verifier.verify(sign(valid_claims(iss="https://evil.example.test")))

    def test_missing_subject(self, verifier):
        claims = valid_claims()
        del claims["sub"]
        with pytest.raises(AuthenticationError):
            verifier.verify(sign(claims))

    def test_garbage_token(self, verifier):
        with pytest.raises(AuthenticationError):
            verifier.verify("not-a-jwt")

    def test_from_config(self):
        config = IdentityConfig(jwt_key=SECRET, algorithms=["HS256"], audience=None, issuer=None)
        verifier = JWTIdentityVerifier.from_config(config)
        assert verifier.verify(sign({"sub": "u2", "exp": int(time.time()) + 60})) == "u2"
