# Overview: User profile management (admin screen).

from ..extensions import db
from ..models import User, ROLES, CURRENCIES
from .auth_service import hash_password
from .session_service import revoke_all_user_sessions


class UserError(Exception):
    """Raised for user management errors."""
    pass


def add_user(
    username: str,
    email: str,
    password: str,
    role: str,
    display_name: str | None = None,
    default_currency: str = "EGP",
) -> User:
    """
    Create a user profile.

    Raises UserError for an unknown role/currency or a taken
    username/email, PasswordValidationError for a weak password.
    """
    if role not in ROLES:
        raise UserError(f"role must be one of: {', '.join(ROLES)}")
    if default_currency not in CURRENCIES:
        raise UserError(f"default_currency must be one of: {', '.join(CURRENCIES)}")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise UserError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        display_name=display_name or "",
        password_hash=hash_password(password),
        role=role,
        default_currency=default_currency,
    )
    db.session.add(user)
    db.session.commit()
    return user


def get_all_users() -> list[User]:
    return db.session.query(User).order_by(User.username).all()


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def update_user_role(user_id: int, role: str) -> User:
    """Change role and force re-login so no session keeps the old role."""
    if role not in ROLES:
        raise UserError(f"role must be one of: {', '.join(ROLES)}")

    user = db.session.get(User, user_id)
    if not user:
        raise UserError("User not found")

    user.role = role
    db.session.commit()
    revoke_all_user_sessions(user_id)
    return user


def delete_user(user_id: int, *, acting_user_id: int | None = None) -> None:
    if acting_user_id is not None and acting_user_id == user_id:
        raise UserError("Cannot delete your own account")

    user = db.session.get(User, user_id)
    if not user:
        raise UserError("User not found")

    db.session.delete(user)
    db.session.commit()
