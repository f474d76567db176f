# Overview: Accounts: registration, login, profile and password changes.

"""
Accounts

Passwords are bcrypt-hashed (12 rounds) and must pass PASSWORD_RULES.
Usernames and emails are kept lowercase, so login ignores case. Sessions
live in session_service.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, AppSettings
from bizsight.time_utils import utcnow


class PasswordValidationError(Exception):
    """Weak new password, or wrong current password."""


class RegistrationError(ValueError):
    """Account data is incomplete or already belongs to someone else."""


MOBILE_NUMBER_RE = re.compile(r"^\d{10}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 8
PASSWORD_RULES = (
    (r"[A-Z]", "an uppercase letter"),
    (r"[a-z]", "a lowercase letter"),
    (r"\d", "a digit"),
    (r"[!@#$%^&*(),.'\":{}|<>]", "a special character"),
)
BCRYPT_ROUNDS = 12


def validate_password_strength(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    for pattern, what in PASSWORD_RULES:
        if not re.search(pattern, password):
            raise PasswordValidationError(f"Password must contain {what}")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    # Corrupt hashes count as a mismatch
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _ensure_unique(*, username: str | None, email: str | None, mobile_number: str | None, exclude_user_id: int | None = None) -> None:
    checks = (
        ("username", username, "Username already taken"),
        ("email", email, "Email already registered"),
        ("mobile_number", mobile_number, "Mobile number already registered"),
    )
    for column, value, message in checks:
        if value is None:
            continue
        query = db.session.query(User).filter(getattr(User, column) == value)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first():
            raise RegistrationError(message)


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise RegistrationError("A valid email address is required")
    return email


def _normalize_mobile(mobile_number: str) -> str:
    mobile_number = (mobile_number or "").strip()
    if not MOBILE_NUMBER_RE.match(mobile_number):
        raise RegistrationError("Mobile number must be exactly 10 digits")
    return mobile_number


def create_user(
    *,
    full_name: str,
    username: str,
    email: str,
    password: str,
    mobile_number: str,
) -> User:
    """
    Create a new user with a bcrypt password hash and default app settings.

    Raises:
        RegistrationError: missing fields or username/email/mobile already in use
        PasswordValidationError: if password doesn't meet requirements
    """
    full_name = (full_name or "").strip()
    username = (username or "").strip().lower()
    if not full_name or not username:
        raise RegistrationError("Please enter all fields")

    email = _normalize_email(email)
    mobile_number = _normalize_mobile(mobile_number)
    _ensure_unique(username=username, email=email, mobile_number=mobile_number)

    password_hash = hash_password(password)

    user = User(
        full_name=full_name,
        username=username,
        email=email,
        mobile_number=mobile_number,
        password_hash=password_hash,
    )
    db.session.add(user)
    db.session.flush()

    db.session.add(AppSettings(user_id=user.id))
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """The active user matching these credentials (stamping last_login_at), else None."""
    user = db.session.query(User).filter(
        User.username == (username or "").strip().lower(),
        User.is_active.is_(True),
    ).first()
    if user is None or not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def update_profile(user: User, *, full_name: str | None = None, email: str | None = None, mobile_number: str | None = None) -> User:
    if full_name is not None:
        full_name = full_name.strip()
        if not full_name:
            raise RegistrationError("Full name cannot be blank")
    if email is not None:
        email = _normalize_email(email)
    if mobile_number is not None:
        mobile_number = _normalize_mobile(mobile_number)

    _ensure_unique(username=None, email=email, mobile_number=mobile_number, exclude_user_id=user.id)

    if full_name is not None:
        user.full_name = full_name
    if email is not None:
        user.email = email
    if mobile_number is not None:
        user.mobile_number = mobile_number
    db.session.commit()
    return user


def change_password(user: User, *, current_password: str, new_password: str) -> None:
    """
    Change password after verifying the current one.

    Raises PasswordValidationError for a wrong current password or a weak new one.
    """
    if not verify_password(current_password or "", user.password_hash):
        raise PasswordValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
