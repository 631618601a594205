from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from dabus.auth.schemas import Role
from dabus.auth.service import UserService
from dabus.auth.utils import decode_access_token
from dabus.database import get_db
from dabus.exceptions import AuthError, ForbiddenError
from dabus.models import User

bearer_scheme = HTTPBearer(auto_error=False)

def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Current user when a valid token is sent, None for anonymous callers"""
    if credentials is None:
        return None
    return get_current_user(credentials, db)

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("No token provided")

    token_data = decode_access_token(credentials.credentials)

    user = UserService.get_user_by_id(db, token_data.user_id)
    if user is None:
        raise AuthError("Invalid token")

    return user

def require_role(role: Role) -> Callable[..., User]:
    """Dependency factory: the current user must carry ``role``"""
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role.value:
            raise ForbiddenError("Admin access required" if role is Role.ADMIN else "Access denied")
        return current_user
    return checker

require_admin = require_role(Role.ADMIN)

def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == Role.ADMIN.value
