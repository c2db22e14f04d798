# backend/billbook/services/cloud_storage.py
"""
Remote document store for cloud sync.

One JSON file in Google Drive (private or shared drive) holds the whole
shared state. The sync layer only needs three operations:

    find_or_create(name) -> file id
    write(file_id, document)
    read(file_id) -> document | None   (None when the file is gone)

Every transport error and non-2xx response is raised as RemoteStoreError.
"""
import json
import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://www.googleapis.com/drive/v3"
DEFAULT_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"


class RemoteStoreError(Exception):
    """Network or remote-side failure talking to the document store."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DriveDocumentStore:
    def __init__(
        self,
        access_token: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        upload_base: str = DEFAULT_UPLOAD_BASE,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.upload_base = upload_base.rstrip("/")
        self.client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, url: str, *, allow_404: bool = False, **kwargs) -> httpx.Response | None:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Drive request failed: {method} {url}: {e}")
            raise RemoteStoreError(f"Could not reach document store: {e}") from e

        if allow_404 and response.status_code == 404:
            return None
        if response.is_error:
            logger.error(f"Drive error {response.status_code}: {response.text[:500]}")
            raise RemoteStoreError(
                f"Document store returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def find_or_create(self, name: str) -> str:
        """
        Id of the file called `name`, searching every drive the token can
        see; creates the file in the user's root when none exists.
        """
        params = {
            "q": f"name='{name}' and trashed=false",
            "fields": "files(id, name)",
            "spaces": "drive",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        response = self._request("GET", f"{self.api_base}/files", params=params)
        files = response.json().get("files") or []
        if files:
            # Several matches: the first is taken (usually the shared copy)
            return files[0]["id"]

        response = self._request(
            "POST",
            f"{self.api_base}/files",
            params={"supportsAllDrives": "true"},
            json={
                "name": name,
                "mimeType": "application/json",
                "description": "Shared billing database",
            },
        )
        file_id = response.json().get("id")
        if not file_id:
            raise RemoteStoreError("Document store did not return a file id")
        logger.info(f"Created remote document {name} ({file_id})")
        return file_id

    def write(self, file_id: str, document: dict, *, name: str | None = None) -> None:
        """Overwrite the whole file with `document`."""
        metadata = {"mimeType": "application/json"}
        if name:
            metadata["name"] = name
        self._request(
            "PATCH",
            f"{self.upload_base}/files/{file_id}",
            params={"uploadType": "multipart", "supportsAllDrives": "true"},
            files={
                "metadata": (None, json.dumps(metadata), "application/json"),
                "file": (name or "document.json", json.dumps(document), "application/json"),
            },
        )

    def read(self, file_id: str) -> dict | None:
        """
        Whole document, {} for a file with no content yet, None when the
        file no longer exists.
        """
        response = self._request(
            "GET",
            f"{self.api_base}/files/{file_id}",
            params={"alt": "media", "supportsAllDrives": "true"},
            allow_404=True,
        )
        if response is None:
            return None
        if not response.content.strip():
            return {}
        try:
            document = response.json()
        except ValueError as e:
            raise RemoteStoreError(f"Remote document is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise RemoteStoreError("Remote document is not a JSON object")
        return document
