from __future__ import annotations

from ..extensions import db

ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
ROLES = (ROLE_ADMIN, ROLE_EMPLOYEE)

# Roles allowed to delete invoices and revert purchases
ELEVATED_ROLES = frozenset({ROLE_ADMIN})


class User(db.Model):
    """
    Staff account.

    password_hash holds a bcrypt hash. In the shared sync document the same
    value travels in the `password` field, passed through
    credential_service.obfuscate.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
    )

    id = db.Column(db.String(32), primary_key=True)
    username = db.Column(db.String(64), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_EMPLOYEE)
    first_name = db.Column(db.String(64), nullable=False, default="")
    last_name = db.Column(db.String(64), nullable=False, default="")
    enabled = db.Column(db.Boolean, nullable=False, default=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "enabled": self.enabled,
            "email": self.email,
            "phone": self.phone,
        }
