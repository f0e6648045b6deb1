from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from backend.models.mod_auth import Session, SessionUser, UserRole
from backend.services.svc_auth import AuthService

# Tokens are issued by the sign-in flow; this backend only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

def _forbidden() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Yetkisiz erişim"
    )

def get_current_session(token: str = Depends(oauth2_scheme)) -> Session:
    """
    Rebuild the session from the bearer token.
    This is the main dependency to be used in protected endpoints.
    """
    token_data = AuthService.decode_token(token)
    return AuthService.build_session(token_data)

def get_current_user(session: Session = Depends(get_current_session)) -> SessionUser:
    return session.user

def get_current_user_id(current_user: SessionUser = Depends(get_current_user)) -> str:
    """Get just the user ID from the current authenticated user"""
    return current_user.id

def get_current_admin(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
    """Dependency for endpoints that require admin access"""
    if current_user.role != UserRole.ADMIN:
        raise _forbidden()
    return current_user

def get_current_trainer(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
    """Dependency for endpoints that require trainer access"""
    if current_user.role not in [UserRole.TRAINER, UserRole.ADMIN]:
        raise _forbidden()
    return current_user

def get_current_client(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
    """Dependency for endpoints reserved to clients"""
    if current_user.role != UserRole.CLIENT:
        raise _forbidden()
    return current_user
