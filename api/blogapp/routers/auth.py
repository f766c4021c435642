"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import check_user_can_authenticate, create_access_token, get_current_user
from ..deps import get_db
from ..models import utcnow
from ..services.passwords import hash_password, verify_password
from ..services.user_stats import annotate_users_with_follow_counts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _private_user(db: Session, user: models.User) -> schemas.UserPrivate:
    annotate_users_with_follow_counts(db, [user])
    return schemas.UserPrivate.model_validate(user)


@router.post(
    "/register",
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: schemas.RegisterRequest,
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """
    Register a new account and sign it in.

    Username and email must both be unused.
    """
    email = payload.email.lower().strip()

    existing = (
        db.query(models.User.id)
        .filter(
            or_(
                func.lower(models.User.email) == email,
                models.User.username == payload.username,
            )
        )
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email or username already exists",
        )

    user = models.User(
        username=payload.username,
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role="user",
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email or username already exists",
        )
    db.refresh(user)

    logger.info("Registered user %s (%s)", user.id, user.username)

    return schemas.AuthResponse(
        message="User registered successfully",
        token=create_access_token(user.id),
        user=_private_user(db, user),
    )


@router.post("/login", response_model=schemas.AuthResponse)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """Login with email and password."""
    email = payload.email.lower().strip()

    user = db.query(models.User).filter(func.lower(models.User.email) == email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    check_user_can_authenticate(user)

    user.last_login = utcnow()
    db.commit()
    db.refresh(user)

    return schemas.AuthResponse(
        message="Login successful",
        token=create_access_token(user.id),
        user=_private_user(db, user),
    )


@router.get("/me", response_model=schemas.MeResponse)
def get_me(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.MeResponse:
    """Get the current user's full profile."""
    return schemas.MeResponse(user=_private_user(db, current_user))


@router.post("/change-password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.MessageResponse:
    """
    Change the current user's password.

    Requires the current password.
    """
    if not verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    current_user.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info("User %s changed password", current_user.id)

    return schemas.MessageResponse(message="Password changed successfully")
