"""
Authentication Module

- identity.py: credential store and access-token issuance
- service.py: user profiles, registration, login and role changes
- dependencies.py: FastAPI dependencies resolving the caller and checking roles
- bootstrap.py: startup creation of the configured admin account
- router.py: /auth endpoints
"""

from .router import router
from .identity import IdentityProvider, AuthSession
from .service import UserService
from .schemas import Role

__all__ = [
    "router",
    "IdentityProvider",
    "AuthSession",
    "UserService",
    "Role"
]
