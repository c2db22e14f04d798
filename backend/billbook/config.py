# backend/billbook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/billbook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///billbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Invoices are numbered <PREFIX>/<year>/<sequence>; the sequence restarts
    # at the baseline on the first invoice of every calendar year.
    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "TE")
    INVOICE_SEQUENCE_BASELINE = int(os.environ.get("INVOICE_SEQUENCE_BASELINE", "1001"))

    # Business clock used for invoice dates and year rollover
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "Asia/Kolkata")

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "500"))

    # Cloud sync (shared JSON document in Google Drive)
    SYNC_QUIET_INTERVAL_SECONDS = float(os.environ.get("SYNC_QUIET_INTERVAL_SECONDS", "2.0"))
    SYNC_FILE_NAME = os.environ.get("SYNC_FILE_NAME", "tevolta_cloud_db.json")
    SYNC_HTTP_TIMEOUT_SECONDS = float(os.environ.get("SYNC_HTTP_TIMEOUT_SECONDS", "30"))
    DRIVE_API_BASE = os.environ.get("DRIVE_API_BASE", "https://www.googleapis.com/drive/v3")
    DRIVE_UPLOAD_BASE = os.environ.get("DRIVE_UPLOAD_BASE", "https://www.googleapis.com/upload/drive/v3")

    # Salt for the reversible password obfuscation used in the shared document.
    # Changing it breaks compatibility with documents written by other workstations.
    CREDENTIAL_SALT = os.environ.get("CREDENTIAL_SALT", "TEVOLTA_INTERNAL_2025")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")
