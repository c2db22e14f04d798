# Overview: Sync reconciler; debounced push of local state and explicit pull-and-replace.

"""
Sync Reconciler

Local state is authoritative for the running session. The shared remote
document is kept loosely in step with it:

- mark_dirty(): called after every committed ledger operation. When cloud
  mode is on, (re)schedules a push after SYNC_QUIET_INTERVAL_SECONDS; a new
  mutation inside the window cancels the pending timer and starts a fresh
  one, so a burst of edits costs one upload. In local mode nothing is
  scheduled and no network call is made.
- push_now(): snapshots the whole state under ledger_write_lock (no torn
  reads) and overwrites the remote document.
- pull(): downloads the document and replaces local collections wholesale.
  An empty remote document triggers an initial push instead.

Failures never roll back the local mutation that triggered them. They are
logged, recorded on SyncSession (status NOT_SYNCED, last_error) and returned
as a failed OperationResult; the next mutation schedules another attempt.
An in-flight push is not cancelled; when two pushes overlap, the status
reflects whichever response arrived last.
"""

from __future__ import annotations

import threading

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from ..errors import OperationResult, SyncFailed, SyncUnavailable
from ..extensions import db
from ..models import SyncStatus
from ..time_utils import business_now
from .cloud_storage import DriveDocumentStore, RemoteStoreError
from .concurrency import ledger_write_lock
from .settings_service import get_sync_session
from .sync_document import InvalidDocument, apply_document, build_document, is_empty_document


def drive_store_factory(access_token: str) -> DriveDocumentStore:
    config = current_app.config
    return DriveDocumentStore(
        access_token,
        api_base=config["DRIVE_API_BASE"],
        upload_base=config["DRIVE_UPLOAD_BASE"],
        timeout=config["SYNC_HTTP_TIMEOUT_SECONDS"],
    )


class SyncReconciler:
    """
    Flask extension, installed as app.extensions["sync"].

    timer_factory(interval, callback) must return an object with start() and
    cancel() (threading.Timer by default). store_factory(access_token)
    returns the remote document store.
    """

    def __init__(self, app=None, *, timer_factory=None, store_factory=None):
        self.timer_factory = timer_factory or threading.Timer
        self.store_factory = store_factory or drive_store_factory
        self._timer = None
        self._timer_lock = threading.Lock()
        self.app = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.app = app
        app.extensions["sync"] = self

    # -- debounce --------------------------------------------------------

    @property
    def push_pending(self) -> bool:
        return self._timer is not None

    def mark_dirty(self) -> bool:
        """Schedule a push if cloud mode is on. Returns whether one was scheduled."""
        session = get_sync_session()
        if not session.cloud_enabled or not session.access_token:
            return False

        interval = current_app.config["SYNC_QUIET_INTERVAL_SECONDS"]
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self.timer_factory(interval, lambda: self._fire(timer))
            timer.daemon = True
            self._timer = timer
            timer.start()
        return True

    def cancel_pending(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, timer=None) -> None:
        with self._timer_lock:
            # A superseded timer that was already running leaves the newer one alone
            if self._timer is timer:
                self._timer = None
        if has_app_context():
            self.push_now()
            return
        with self.app.app_context():
            self.push_now()

    # -- network operations ----------------------------------------------

    def _now(self):
        return business_now(current_app.config["BUSINESS_TIMEZONE"])

    def _fail(self, action: str, exc: Exception, *, forget_file: bool = False) -> OperationResult:
        db.session.rollback()
        session = get_sync_session()
        session.status = SyncStatus.NOT_SYNCED
        session.last_error = str(exc)
        if forget_file:
            session.remote_file_id = None
        db.session.commit()
        current_app.logger.warning("Cloud %s failed: %s", action, exc)
        return OperationResult.failure(
            SyncFailed(f"Cloud {action} failed: {exc}", details={"action": action})
        )

    def push_now(self) -> OperationResult:
        """
        Upload the whole local state now.

        Silent no-op (ok, pushed=False) in local mode or without a token.
        """
        session = get_sync_session()
        if not session.cloud_enabled or not session.access_token:
            return OperationResult.success({"pushed": False})

        token = session.access_token
        file_id = session.remote_file_id
        file_name = current_app.config["SYNC_FILE_NAME"]

        with ledger_write_lock:
            document = build_document()
            session.status = SyncStatus.SYNCING
            db.session.commit()

        try:
            with self.store_factory(token) as store:
                if not file_id:
                    file_id = store.find_or_create(file_name)
                store.write(file_id, document, name=file_name)
        except RemoteStoreError as exc:
            # A stale cached id is resolved again on the next attempt
            return self._fail("push", exc, forget_file=exc.status_code == 404)
        except Exception as exc:
            self._fail("push", exc)
            raise

        session = get_sync_session()
        session.remote_file_id = file_id
        session.status = SyncStatus.SYNCED
        session.last_error = None
        session.last_pushed_at = self._now()
        db.session.commit()
        current_app.logger.info("Cloud database updated (%s)", file_id)
        return OperationResult.success({
            "pushed": True,
            "file_id": file_id,
            "last_updated": document["lastUpdated"],
        })

    def pull(self) -> OperationResult:
        """
        Replace local state with the remote document.

        Requires a linked token (SyncUnavailable otherwise). Turns cloud mode
        on when it succeeds.
        """
        session = get_sync_session()
        if not session.access_token:
            return OperationResult.failure(
                SyncUnavailable("Link a cloud account to enable shared data")
            )

        token = session.access_token
        file_name = current_app.config["SYNC_FILE_NAME"]
        session.status = SyncStatus.SYNCING
        db.session.commit()

        try:
            with self.store_factory(token) as store:
                file_id = store.find_or_create(file_name)
                document = store.read(file_id)
        except RemoteStoreError as exc:
            return self._fail("pull", exc)
        except Exception as exc:
            self._fail("pull", exc)
            raise

        if is_empty_document(document):
            session = get_sync_session()
            session.remote_file_id = file_id
            session.cloud_enabled = True
            db.session.commit()
            current_app.logger.info("Remote database is empty; uploading local state")
            result = self.push_now()
            if result.ok:
                result.value = {"pulled": False, "initialized": True, "file_id": file_id}
            return result

        with ledger_write_lock:
            try:
                counts = apply_document(document, current_app.config["BUSINESS_TIMEZONE"])
            except (InvalidDocument, SQLAlchemyError) as exc:
                return self._fail("pull", exc)
            except Exception as exc:
                # The session never stays SYNCING; the error still propagates
                self._fail("pull", exc)
                raise

            session = get_sync_session()
            session.remote_file_id = file_id
            session.cloud_enabled = True
            session.status = SyncStatus.SYNCED
            session.last_error = None
            session.last_pulled_at = self._now()
            db.session.commit()

        current_app.logger.info("Local state replaced from cloud: %s", counts)
        return OperationResult.success({"pulled": True, "file_id": file_id, "counts": counts})

    # -- mode ------------------------------------------------------------

    def link(self, access_token: str) -> OperationResult:
        """Store the account token, enable cloud mode and fetch shared data."""
        if not access_token:
            return OperationResult.failure(SyncUnavailable("An access token is required"))
        session = get_sync_session()
        session.access_token = access_token
        session.cloud_enabled = True
        session.remote_file_id = None
        db.session.commit()
        return self.pull()

    def unlink(self) -> OperationResult:
        self.cancel_pending()
        session = get_sync_session()
        session.access_token = None
        session.cloud_enabled = False
        session.remote_file_id = None
        session.status = SyncStatus.LOCAL
        session.last_error = None
        db.session.commit()
        return OperationResult.success(session.to_dict())

    def set_cloud_enabled(self, enabled: bool) -> OperationResult:
        session = get_sync_session()
        if enabled and not session.access_token:
            return OperationResult.failure(
                SyncUnavailable("Link a cloud account before enabling cloud mode")
            )
        session.cloud_enabled = bool(enabled)
        if not enabled:
            self.cancel_pending()
            session.status = SyncStatus.LOCAL
        db.session.commit()
        return OperationResult.success(session.to_dict())

    def status(self) -> dict:
        data = get_sync_session().to_dict()
        data["push_pending"] = self.push_pending
        return data
