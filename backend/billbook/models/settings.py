from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_iso

# Both tables hold exactly one row with this id
SINGLETON_ID = 1


class CompanyConfig(db.Model):
    """
    Company identity and the invoice counter.

    invoice_sequence is the ONLY source of the next invoice serial. It is
    written by order_service alone, in the same transaction as the invoice
    that consumed it.
    """
    __tablename__ = "company_config"

    id = db.Column(db.Integer, primary_key=True, default=SINGLETON_ID)

    name = db.Column(db.String(255), nullable=False, default="")
    address = db.Column(db.Text, nullable=False, default="")
    gstin = db.Column(db.String(32), nullable=False, default="")
    phone = db.Column(db.String(64), nullable=False, default="")
    email = db.Column(db.String(255), nullable=False, default="")
    tagline = db.Column(db.String(255), nullable=False, default="")
    state_code = db.Column(db.String(64), nullable=False, default="")
    bank_name = db.Column(db.String(128), nullable=False, default="")
    bank_ifsc = db.Column(db.String(32), nullable=False, default="")
    bank_account_no = db.Column(db.String(64), nullable=False, default="")
    bank_account_holder = db.Column(db.String(128), nullable=False, default="")

    invoice_prefix = db.Column(db.String(16), nullable=False, default="TE")
    invoice_sequence = db.Column(db.Integer, nullable=False, default=1001)

    low_stock_threshold = db.Column(db.Integer, nullable=False, default=500)

    # Fields the settings API may edit; invoice_sequence is not among them
    EDITABLE_FIELDS = (
        "name", "address", "gstin", "phone", "email", "tagline", "state_code",
        "bank_name", "bank_ifsc", "bank_account_no", "bank_account_holder",
        "invoice_prefix",
    )

    def to_dict(self) -> dict:
        data = {field: getattr(self, field) for field in self.EDITABLE_FIELDS}
        data["invoice_sequence"] = self.invoice_sequence
        data["low_stock_threshold"] = self.low_stock_threshold
        return data


class SyncStatus(str, enum.Enum):
    LOCAL = "local"          # cloud mode off
    SYNCING = "syncing"
    SYNCED = "synced"
    NOT_SYNCED = "not_synced"  # last push/pull failed; local state still authoritative


class SyncSession(db.Model):
    """
    Cloud link state for this workstation: mode flag, access token, the
    remote file id (resolved once, then cached) and the outcome of the last
    network exchange.
    """
    __tablename__ = "sync_session"

    id = db.Column(db.Integer, primary_key=True, default=SINGLETON_ID)

    cloud_enabled = db.Column(db.Boolean, nullable=False, default=False)
    access_token = db.Column(db.Text, nullable=True)
    remote_file_id = db.Column(db.String(128), nullable=True)

    status = db.Column(
        db.Enum(SyncStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        default=SyncStatus.LOCAL,
    )
    last_error = db.Column(db.Text, nullable=True)
    last_pushed_at = db.Column(db.DateTime, nullable=True)
    last_pulled_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "cloud_enabled": self.cloud_enabled,
            "linked": bool(self.access_token),
            "remote_file_id": self.remote_file_id,
            "status": self.status.value,
            "last_error": self.last_error,
            "last_pushed_at": to_iso(self.last_pushed_at),
            "last_pulled_at": to_iso(self.last_pulled_at),
        }
