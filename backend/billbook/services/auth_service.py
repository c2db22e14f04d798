# Overview: Service-layer operations for users; password hashing and authentication.

"""
Authentication Service

Passwords are stored as bcrypt hashes (BCRYPT_ROUNDS, 12 by default). The
same hash is what travels, obfuscated, in the shared sync document; documents
written by older workstations may still carry plaintext, which
store_password_from_document hashes on the way in.

Only `admin` is an elevated role (invoice delete, purchase revert).
"""

import uuid

import bcrypt
from flask import current_app

from ..errors import InvalidInput
from ..extensions import db
from ..models import ELEVATED_ROLES, ROLE_ADMIN, ROLES, User

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def is_bcrypt_hash(value: str | None) -> bool:
    return bool(value) and value.startswith(BCRYPT_PREFIXES) and len(value) == 60


def hash_password(password: str) -> str:
    if not password:
        raise InvalidInput("Password cannot be empty", details={"field": "password"})
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    A stored value that is not a bcrypt hash never verifies.
    """
    if not password or not is_bcrypt_hash(password_hash):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def store_password_from_document(value: str) -> str:
    """Stored form of a password read back from the sync document."""
    if is_bcrypt_hash(value):
        return value
    return hash_password(value)


def is_elevated(role: str | None) -> bool:
    return role in ELEVATED_ROLES


def authenticate(username: str, password: str) -> User | None:
    """Return the enabled user matching the credentials, else None."""
    if not username or not password:
        return None
    user = db.session.query(User).filter_by(username=username.strip()).first()
    if user is None or not user.enabled:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def create_user(
    username: str,
    password: str,
    role: str = "employee",
    *,
    first_name: str = "",
    last_name: str = "",
    email: str | None = None,
    phone: str | None = None,
) -> User:
    """
    Create a user. Does not commit.

    Raises InvalidInput for an unknown role or a taken username.
    """
    username = (username or "").strip()
    if not username:
        raise InvalidInput("Username is required", details={"field": "username"})
    if role not in ROLES:
        raise InvalidInput(f"Unknown role: {role}", details={"field": "role", "value": role})
    if db.session.query(User).filter_by(username=username).first() is not None:
        raise InvalidInput(f"Username {username} already exists", details={"field": "username"})

    user = User(
        id=uuid.uuid4().hex,
        username=username,
        password_hash=hash_password(password),
        role=role,
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        enabled=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def ensure_default_admin() -> User:
    """Seed the `admin` account (DEFAULT_ADMIN_PASSWORD) if no admin exists. Commits."""
    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if admin is not None:
        return admin
    admin = create_user(
        "admin",
        current_app.config["DEFAULT_ADMIN_PASSWORD"],
        ROLE_ADMIN,
        first_name="System",
        last_name="Admin",
    )
    db.session.commit()
    return admin
