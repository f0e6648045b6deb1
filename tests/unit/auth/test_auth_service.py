import pytest
import time
from fastapi import HTTPException
from jose import jwt

from backend.configuration.config import Config
from backend.models.mod_auth import SessionUser, TokenPayload, UserRole
from backend.services.svc_auth import AuthService

@pytest.fixture(autouse=True)
def secret(monkeypatch):
    monkeypatch.setattr(Config, "JWT_SECRET_KEY", "unit-test-secret")
    monkeypatch.setattr(Config, "ACCESS_TOKEN_EXPIRE_MINUTES", 30)

@pytest.fixture
def trainer():
    return SessionUser(
        id="trainer1",
        email="trainer@example.com",
        name="Mehmetcan",
        role=UserRole.TRAINER,
        image="https://example.com/avatar.png"
    )

class TestAuthService:
    def test_token_round_trip_rebuilds_session(self, trainer):
        token = AuthService.issue_token(trainer)

        session = AuthService.build_session(AuthService.decode_token(token))

        assert session.user == trainer
        assert session.expires > time.time()

    def test_token_claims(self, trainer):
        token = AuthService.issue_token(trainer, expires_minutes=5)

        claims = jwt.get_unverified_claims(token)

        assert claims["sub"] == "trainer1"
        assert claims["role"] == "TRAINER"
        assert claims["picture"] == "https://example.com/avatar.png"
        assert claims["exp"] <= time.time() + 5 * 60 + 1

    def test_expired_token(self, trainer):
        token = AuthService.issue_token(trainer, expires_minutes=-5)

        with pytest.raises(HTTPException) as exc_info:
            AuthService.decode_token(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_signature(self, trainer, monkeypatch):
        token = AuthService.issue_token(trainer)
        monkeypatch.setattr(Config, "JWT_SECRET_KEY", "another-secret")

        with pytest.raises(HTTPException) as exc_info:
            AuthService.decode_token(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc_info:
            AuthService.decode_token("not-a-token")

        assert exc_info.value.detail == "Could not validate credentials"

    def test_unknown_role_rejected(self):
        token = jwt.encode({"id": "u1", "role": "OWNER", "email": "a@example.com", "name": "A"}, "unit-test-secret")

        with pytest.raises(HTTPException) as exc_info:
            AuthService.decode_token(token)

        assert exc_info.value.status_code == 401

    def test_session_requires_email_and_name(self):
        with pytest.raises(HTTPException) as exc_info:
            AuthService.build_session(TokenPayload(id="u1", role=UserRole.CLIENT, name="Ali"))

        assert exc_info.value.status_code == 401

    def test_session_without_image(self):
        session = AuthService.build_session(
            TokenPayload(id="u1", role=UserRole.CLIENT, email="ali@example.com", name="Ali")
        )

        assert session.user.image is None
        assert session.expires is None
