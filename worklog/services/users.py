from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from ..auth.policy import Role
from ..auth.security import get_password_hash, verify_password
from ..errors import Unauthenticated, ValidationError
from ..models.models import User


logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 8


def create_user(
    db: Session,
    username: str,
    password: str,
    role: str,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
) -> User:
    username = (username or "").strip().lower()
    email = (email or "").strip().lower() or None
    errors = {}
    if not username:
        errors["username"] = "Username is required"
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if role not in [r.value for r in Role]:
        errors["role"] = f"Role must be one of: {', '.join(r.value for r in Role)}"
    if username and db.query(User).filter(User.username == username).first():
        errors["username"] = "Username already exists"
    if email and db.query(User).filter(User.email == email).first():
        errors["email"] = "Email already exists"
    if errors:
        raise ValidationError(errors)

    user = User(
        username=username,
        email=email,
        full_name=(full_name or "").strip() or None,
        password_hash=get_password_hash(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_created", user_id=str(user.id), role=role)
    return user


def authenticate(db: Session, identifier: str, password: str) -> User:
    """Resolve a username or email plus password to an active user."""
    identifier = (identifier or "").strip().lower()
    user = db.query(User).filter((User.username == identifier) | (User.email == identifier)).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid credentials")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return user
