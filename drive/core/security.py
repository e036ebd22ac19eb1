# drive/core/security.py
import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from drive.core.exceptions import AuthError, DuplicateEmailError, NotAuthenticated, ValidationError
from drive.models.database import get_db
from drive.models.user import User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def register_user(db: Session, email: str, password: str) -> User:
    if not email or not password:
        raise ValidationError("Email and password are required.")

    user = User(email=email, password=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as error:
        # unique index on users.email
        db.rollback()
        raise DuplicateEmailError("Email already exists.") from error

    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise AuthError("Incorrect email.")
    if not verify_password(user.password, password):
        raise AuthError("Incorrect password.")
    return user


def establish_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def clear_session(request: Request) -> None:
    request.session.clear()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        clear_session(request)
        return None

    user = db.get(User, user_id)
    if user is None:
        # the account is gone; drop the stale cookie
        clear_session(request)
    return user


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise NotAuthenticated()
    return user
