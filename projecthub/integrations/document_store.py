"""
Receipt storage gateway.

Receipts are uploaded to an external document store over HTTP and
referenced by the returned file id. Without ``DOCUMENT_STORE_URL`` uploads
and downloads fail with DownstreamError; there is no local fallback.

Testability: pass a mock ``session`` to DocumentStore().
"""

from __future__ import annotations

import logging

import requests
from flask import current_app

from projecthub.core.exceptions import DownstreamError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30


class DocumentStore:
    """HTTP client for the receipt store.

    Usage:
        from projecthub.integrations.document_store import document_store
        meta = document_store.upload("receipt.png", data, "image/png")
        content, mimetype = document_store.download(meta["id"])
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _base_url(self) -> str:
        url = current_app.config.get("DOCUMENT_STORE_URL")
        if not url:
            raise DownstreamError("Document store", "DOCUMENT_STORE_URL is not configured")
        return url.rstrip("/")

    def _headers(self) -> dict:
        token = current_app.config.get("DOCUMENT_STORE_TOKEN")
        return {"Authorization": f"Bearer {token}"} if token else {}

    def upload(self, name: str, content: bytes, mimetype: str) -> dict:
        """Store a file and return ``{"id": ..., "name": ...}``."""
        url = f"{self._base_url()}/files"
        try:
            resp = self.session.post(
                url,
                files={"file": (name, content, mimetype)},
                headers=self._headers(),
                timeout=_DEFAULT_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise DownstreamError("Document store", str(exc)[:500]) from exc
        if not resp.ok:
            raise DownstreamError("Document store", f"HTTP {resp.status_code}: {resp.text[:500]}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise DownstreamError("Document store", "upload response was not JSON") from exc
        if not body.get("id"):
            raise DownstreamError("Document store", "upload response missing file id")
        logger.info("Uploaded file %s as %s", name, body["id"])
        return {"id": body["id"], "name": body.get("name", name)}

    def download(self, file_id: str) -> tuple[bytes, str]:
        """Fetch a stored file, returning ``(content, mimetype)``."""
        url = f"{self._base_url()}/files/{file_id}"
        try:
            resp = self.session.get(url, headers=self._headers(), timeout=_DEFAULT_TIMEOUT)
        except requests.RequestException as exc:
            raise DownstreamError("Document store", str(exc)[:500]) from exc
        if not resp.ok:
            raise DownstreamError("Document store", f"HTTP {resp.status_code}: {resp.text[:500]}")
        mimetype = resp.headers.get("Content-Type", "application/octet-stream")
        return resp.content, mimetype


document_store = DocumentStore()
