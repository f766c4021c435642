from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from sqlalchemy import func, or_

from . import models
from .db import SessionLocal
from .services.passwords import hash_password

load_dotenv()

logger = logging.getLogger(__name__)


def ensure_seed_data() -> None:
    """
    Create the initial admin account when configured.

    Reads BLOG_ADMIN_USERNAME, BLOG_ADMIN_EMAIL and BLOG_ADMIN_PASSWORD. Does
    nothing if any of them is unset or a user with that username or email
    already exists.
    """
    username = os.getenv("BLOG_ADMIN_USERNAME")
    email = os.getenv("BLOG_ADMIN_EMAIL")
    password = os.getenv("BLOG_ADMIN_PASSWORD")

    if not (username and email and password):
        logger.info("ensure_seed_data: No admin account configured.")
        return

    email = email.lower().strip()
    session = SessionLocal()
    try:
        existing = (
            session.query(models.User)
            .filter(or_(models.User.username == username, func.lower(models.User.email) == email))
            .first()
        )
        if existing:
            logger.info("ensure_seed_data: Admin account %s already exists.", existing.username)
            return

        session.add(
            models.User(
                username=username,
                email=email,
                password_hash=hash_password(password),
                role="admin",
                is_active=True,
            )
        )
        session.commit()
        logger.info("ensure_seed_data: Created admin account %s.", username)
    finally:
        session.close()


if __name__ == "__main__":
    logging.basicConfig(level="INFO")
    ensure_seed_data()
