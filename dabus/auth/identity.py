"""
Identity provider.

Owns credentials and session issuance. The rest of the application only sees
the stable user id it hands out and the access token returned by sign_in;
profiles and roles live in the ``users`` table managed by UserService.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dabus.auth.utils import create_access_token, get_password_hash, verify_password
from dabus.database import storage_guard
from dabus.exceptions import AuthError, NotFoundError, ValidationError
from dabus.models import Identity

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    user_id: str
    access_token: str


class IdentityProvider:
    """Credential store backed by the ``identities`` table"""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        """Register credentials and return the new user id"""
        identity = Identity(
            email=email.lower(),
            password_hash=get_password_hash(password),
            user_metadata=metadata or {},
        )
        with storage_guard(self.db, commit=False):
            try:
                self.db.add(identity)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise ValidationError("Email already registered")
        logger.info("Created identity %s", identity.id)
        return identity.id

    def sign_in(self, email: str, password: str, claims: Optional[Dict[str, Any]] = None) -> AuthSession:
        """Check credentials and issue an access token"""
        with storage_guard(self.db, commit=False):
            identity = self.db.execute(
                select(Identity).where(Identity.email == email.lower())
            ).scalar_one_or_none()

        if identity is None or not verify_password(password, identity.password_hash):
            raise AuthError("Invalid credentials")

        token_data = {"sub": identity.id, "email": identity.email}
        token_data.update(claims or {})
        return AuthSession(user_id=identity.id, access_token=create_access_token(token_data))

    def get_user_by_id(self, user_id: str) -> Optional[Identity]:
        with storage_guard(self.db, commit=False):
            return self.db.get(Identity, user_id)

    def get_user_by_email(self, email: str) -> Optional[Identity]:
        with storage_guard(self.db, commit=False):
            return self.db.execute(
                select(Identity).where(Identity.email == email.lower())
            ).scalar_one_or_none()

    def delete_user(self, user_id: str) -> None:
        with storage_guard(self.db):
            identity = self.db.get(Identity, user_id)
            if identity is None:
                raise NotFoundError("User not found")
            self.db.delete(identity)
        logger.info("Deleted identity %s", user_id)
