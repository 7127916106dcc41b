from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from .jwt_handler import verify_access_token

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

ADMIN_ROLE = "ADMIN"


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str = "USER"
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Dependency to validate the JWT and return the caller identity."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    payload = verify_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = user_id
    return CurrentUser(
        id=str(user_id),
        role=payload.get("role", "USER"),
        email=payload.get("email", ""),
    )


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized. Admin access required.",
        )
    return user
