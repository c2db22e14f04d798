# Overview: Company configuration, low-stock threshold and the sync session record.

from __future__ import annotations

from flask import current_app

from ..errors import InvalidInput
from ..extensions import db
from ..models import CompanyConfig, SyncSession, SINGLETON_ID
from .concurrency import lock_for_update
from .ledger_service import ledger_operation


def get_company_config(*, lock: bool = False) -> CompanyConfig:
    """
    Return the company config row, creating it from app config on first use.

    With lock=True the row is selected FOR UPDATE; order_service takes this
    lock before reading invoice_sequence.
    """
    query = db.session.query(CompanyConfig).filter_by(id=SINGLETON_ID)
    if lock:
        query = lock_for_update(query)
    config = query.first()
    if config is None:
        config = CompanyConfig(
            id=SINGLETON_ID,
            invoice_prefix=current_app.config["INVOICE_PREFIX"],
            invoice_sequence=current_app.config["INVOICE_SEQUENCE_BASELINE"],
            low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
        )
        db.session.add(config)
        db.session.flush()
    return config


def get_sync_session() -> SyncSession:
    session = db.session.query(SyncSession).filter_by(id=SINGLETON_ID).first()
    if session is None:
        session = SyncSession(id=SINGLETON_ID)
        db.session.add(session)
        db.session.flush()
    return session


@ledger_operation
def update_company_config(changes: dict) -> CompanyConfig:
    """
    Update company identity fields.

    invoice_sequence is not editable here; it only moves when an invoice is
    issued.
    """
    unknown = sorted(set(changes) - set(CompanyConfig.EDITABLE_FIELDS))
    if unknown:
        raise InvalidInput(
            f"Fields not editable: {', '.join(unknown)}",
            details={"fields": unknown},
        )

    config = get_company_config(lock=True)
    for field, value in changes.items():
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise InvalidInput(f"{field} must be a string", details={"field": field})
        setattr(config, field, value.strip())

    if not config.invoice_prefix:
        raise InvalidInput("invoice_prefix cannot be empty", details={"field": "invoice_prefix"})

    db.session.flush()
    return config


@ledger_operation
def set_low_stock_threshold(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInput(
            "low_stock_threshold must be a non-negative integer",
            details={"field": "low_stock_threshold"},
        )
    config = get_company_config(lock=True)
    config.low_stock_threshold = value
    db.session.flush()
    return value
