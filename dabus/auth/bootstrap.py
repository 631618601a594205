"""
Admin user initialization.

Ensures the admin configured through ADMIN_* settings exists when the server
starts: creates it, upgrades an existing account, or repairs a missing
profile for credentials that already exist.
"""

import logging

from sqlalchemy.orm import Session

from dabus.auth.identity import IdentityProvider
from dabus.auth.schemas import Role
from dabus.auth.service import UserService
from dabus.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def initialize_admin_user(db: Session, settings: Settings = default_settings) -> bool:
    """Returns True when an admin account is in place after the call"""
    email = settings.ADMIN_EMAIL
    password = settings.ADMIN_PASSWORD
    full_name = settings.ADMIN_FULL_NAME
    phone = settings.ADMIN_PHONE

    if not (email and password and full_name and phone):
        logger.warning("Admin credentials not configured, skipping admin initialization")
        return False

    logger.info("Checking for admin user: %s", email)

    existing = UserService.get_user_by_email(db, email)
    if existing is not None:
        if existing.role == Role.ADMIN.value:
            logger.info("Admin user already exists")
        else:
            UserService.set_role(db, existing.id, Role.ADMIN)
            logger.info("User %s upgraded to admin", existing.id)
        return True

    identity = IdentityProvider(db)
    credentials = identity.get_user_by_email(email)
    if credentials is not None:
        user_id = credentials.id
        logger.info("Credentials exist without a profile, creating admin profile")
    else:
        user_id = identity.create_user(email, password, {"full_name": full_name, "phone": phone})

    UserService.create_profile(db, user_id, email, full_name, phone, role=Role.ADMIN)
    logger.info("Admin user created successfully")
    return True
