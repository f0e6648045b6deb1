from fastapi import HTTPException, status
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import ValidationError
from backend.configuration.config import Config
from backend.configuration.monitor import log_event
from backend.models.mod_auth import Session, SessionUser, TokenPayload
from typing import Optional
from datetime import datetime, timedelta, timezone

def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

class AuthService:
    @staticmethod
    def issue_token(user: SessionUser, expires_minutes: Optional[int] = None) -> str:
        """
        Sign a session token for a user.

        The token carries id and role next to the standard email, name and
        picture claims, so the session can be rebuilt without a database read.
        """
        expires_minutes = expires_minutes or Config.ACCESS_TOKEN_EXPIRE_MINUTES
        expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
        claims = {
            "sub": user.id,
            "id": user.id,
            "role": user.role.value,
            "email": user.email,
            "name": user.name,
            "picture": user.image,
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(claims, Config.JWT_SECRET_KEY, algorithm=Config.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> TokenPayload:
        """Verify signature and expiry, then return the token claims"""
        try:
            payload = jwt.decode(token, Config.JWT_SECRET_KEY, algorithms=[Config.JWT_ALGORITHM])
            return TokenPayload(**payload)
        except ExpiredSignatureError:
            raise _credentials_exception("Token has expired")
        except (JWTError, ValidationError):
            raise _credentials_exception()

    @staticmethod
    def build_session(token_data: TokenPayload) -> Session:
        if not token_data.email or not token_data.name:
            log_event("Session token missing identity claims", {"user_id": token_data.id})
            raise _credentials_exception()
        return Session(
            user=SessionUser(
                id=token_data.id,
                email=token_data.email,
                name=token_data.name,
                role=token_data.role,
                image=token_data.picture,
            ),
            expires=token_data.exp,
        )
