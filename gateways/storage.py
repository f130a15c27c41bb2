# gateways/storage.py
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from gateways.http import RequestPolicy, error_details
from utils.exceptions import StoreError
from utils.logger import get_logger

log = get_logger(__name__)


class ObjectStorage:
    """Thin client for the hosted storage REST API (one bucket)."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str = "images",
        session: Optional[requests.Session] = None,
        policy: Optional[RequestPolicy] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._key = service_key
        self.session = session or requests.Session()
        self.policy = policy or RequestPolicy()

    def _headers(self, **extra) -> Dict[str, str]:
        h = {"Authorization": f"Bearer {self._key}", "apikey": self._key}
        h.update(extra)
        return h

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, "storage/v1", *parts])

    def _check(self, resp: requests.Response, action: str) -> None:
        if not resp.ok:
            msg = error_details(resp)
            log.error("storage %s failed (%s): %s", action, resp.status_code, msg)
            raise StoreError(f"{action} failed: {msg}", details=msg)

    def public_url(self, path: str) -> str:
        return self._url("object/public", self.bucket, quote(path))

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        resp = self.policy.send(
            self.session, "POST", self._url("object", self.bucket, quote(path)),
            data=data,
            headers=self._headers(**{"Content-Type": content_type, "cache-control": "3600", "x-upsert": "false"}),
        )
        self._check(resp, "Upload")
        return self.public_url(path)

    def list(self, folder: str, limit: int = 100) -> List[Dict[str, Any]]:
        resp = self.policy.send(
            self.session, "POST", self._url("object/list", self.bucket),
            json={
                "prefix": folder,
                "limit": limit,
                "offset": 0,
                "sortBy": {"column": "created_at", "order": "desc"},
            },
            headers=self._headers(),
        )
        self._check(resp, "List")
        return resp.json() or []

    def remove(self, paths: List[str]) -> None:
        resp = self.policy.send(
            self.session, "DELETE", self._url("object", self.bucket),
            json={"prefixes": paths},
            headers=self._headers(),
        )
        self._check(resp, "Delete")

    def list_buckets(self) -> List[Dict[str, Any]]:
        resp = self.policy.send(self.session, "GET", self._url("bucket"), headers=self._headers())
        self._check(resp, "List buckets")
        return resp.json() or []
